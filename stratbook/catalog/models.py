from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

UTC = timezone.utc

LIST_FIELDS = ("tags", "timeframes", "indicators", "entry_rules", "exit_rules")
TEXT_FIELDS = ("name", "description", "stoploss_rule", "takeprofit_rule", "position_size_rule")


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, extra="ignore")


# --- Management options ---


class TrailingStop(_Frozen):
    enabled: bool = False
    multiplier: str = ""


class ScaleOut(_Frozen):
    enabled: bool = False
    percent_first: str = ""


class Toggle(_Frozen):
    enabled: bool = False


class Management(_Frozen):
    """Four independent trade-management switches.

    `multiplier` and `percent_first` are kept verbatim even when the option is
    disabled; consumers only read them when `enabled` is true.
    """

    trailing_stop: TrailingStop = Field(default_factory=TrailingStop)
    scale_out: ScaleOut = Field(default_factory=ScaleOut)
    dca: Toggle = Field(default_factory=Toggle)
    manual: Toggle = Field(default_factory=Toggle)


# --- Strategy records ---


class StrategyFields(_Frozen):
    """Complete, typed set of user-editable strategy fields.

    Text is trimmed and sequence items are trimmed with empty entries dropped.
    Sequences are tuples so a stored record cannot be changed in place. A
    record built here already satisfies the per-item invariants. The name
    rules (required, max length) are checked by `validation.validate_fields`.
    """

    name: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    timeframes: tuple[str, ...] = ()
    indicators: tuple[str, ...] = ()
    entry_rules: tuple[str, ...] = ()
    exit_rules: tuple[str, ...] = ()
    stoploss_rule: str = ""
    takeprofit_rule: str = ""
    position_size_rule: str = ""
    management: Management = Field(default_factory=Management)

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _strip_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator(*LIST_FIELDS, mode="before")
    @classmethod
    def _clean_items(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, (list, tuple)):
            items = [item.strip() if isinstance(item, str) else item for item in v]
            return tuple(item for item in items if item != "")
        return v


class Meta(_Frozen):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    version: int = Field(default=1, ge=1)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)


class Strategy(StrategyFields):
    id: str
    meta: Meta

    def fields(self) -> StrategyFields:
        """Editable part of the record, e.g. to prefill an edit form."""
        return StrategyFields.model_validate(self.model_dump(exclude={"id", "meta"}))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


_COLLECTION = TypeAdapter(list[Strategy])


def dump_collection(strategies: list[Strategy]) -> bytes:
    return _COLLECTION.dump_json(strategies, by_alias=True)


def load_collection(data: bytes | str) -> list[Strategy]:
    """Parse a serialized collection.

    Raises pydantic.ValidationError on malformed JSON or records and
    ValueError when two records share an id.
    """
    strategies = _COLLECTION.validate_json(data)
    seen: set[str] = set()
    for s in strategies:
        if s.id in seen:
            raise ValueError(f"duplicate strategy id: {s.id}")
        seen.add(s.id)
    return strategies
