from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from .models import Strategy, StrategyFields

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_TRUTHY = {"1", "true", "yes", "on"}

CSV_KEYS = ("tags", "timeframes", "indicators")
LINE_KEYS = ("entry_rules", "exit_rules")
TEXT_KEYS = ("name", "description", "stoploss_rule", "takeprofit_rule", "position_size_rule")
FLAG_KEYS = ("trailing_stop_enabled", "scale_out_enabled", "dca_enabled", "manual_enabled")


def split_csv(text: str | None) -> list[str]:
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def split_lines(text: str | None) -> list[str]:
    if not text:
        return []
    return [line.strip() for line in _LINE_BREAK.split(text) if line.strip()]


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def extract_fields(form: Mapping[str, Any]) -> StrategyFields:
    """Build typed strategy fields from raw form text.

    Keys missing from `form` become zero values: an update always carries a
    complete field set, never a partial patch.
    """
    return StrategyFields(
        name=_text(form.get("name")).strip(),
        description=_text(form.get("description")).strip(),
        tags=split_csv(_text(form.get("tags"))),
        timeframes=split_csv(_text(form.get("timeframes"))),
        indicators=split_csv(_text(form.get("indicators"))),
        entry_rules=split_lines(_text(form.get("entry_rules"))),
        exit_rules=split_lines(_text(form.get("exit_rules"))),
        stoploss_rule=_text(form.get("stoploss_rule")).strip(),
        takeprofit_rule=_text(form.get("takeprofit_rule")).strip(),
        position_size_rule=_text(form.get("position_size_rule")).strip(),
        management={
            "trailing_stop": {
                "enabled": _flag(form.get("trailing_stop_enabled")),
                "multiplier": _text(form.get("trailing_stop_multiplier")),
            },
            "scale_out": {
                "enabled": _flag(form.get("scale_out_enabled")),
                "percent_first": _text(form.get("scale_out_percent")),
            },
            "dca": {"enabled": _flag(form.get("dca_enabled"))},
            "manual": {"enabled": _flag(form.get("manual_enabled"))},
        },
    )


def form_from_strategy(strategy: Strategy | StrategyFields) -> dict[str, Any]:
    """Inverse of `extract_fields`, used to prefill an edit form."""
    mgmt = strategy.management
    form: dict[str, Any] = {key: getattr(strategy, key) for key in TEXT_KEYS}
    for key in CSV_KEYS:
        form[key] = ", ".join(getattr(strategy, key))
    for key in LINE_KEYS:
        form[key] = "\n".join(getattr(strategy, key))
    form.update(
        trailing_stop_enabled=mgmt.trailing_stop.enabled,
        trailing_stop_multiplier=mgmt.trailing_stop.multiplier,
        scale_out_enabled=mgmt.scale_out.enabled,
        scale_out_percent=mgmt.scale_out.percent_first,
        dca_enabled=mgmt.dca.enabled,
        manual_enabled=mgmt.manual.enabled,
    )
    return form
