from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import StrategyFields

NAME_MAX_LEN = 80


def coerce_fields(candidate: StrategyFields | Mapping[str, Any]) -> StrategyFields:
    """Turn a mapping into `StrategyFields`; raise ValidationError on bad types."""
    if isinstance(candidate, StrategyFields):
        return candidate
    try:
        return StrategyFields.model_validate(dict(candidate))
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ())) or None
        raise ValidationError(f"invalid fields: {loc}: {first.get('msg')}", field=loc) from exc


def validate_fields(candidate: StrategyFields | Mapping[str, Any]) -> tuple[bool, str | None]:
    """Check candidate fields before they enter the collection.

    Returns (ok, reason_if_invalid). First failing rule wins:
    empty trimmed name -> "name required"; trimmed name over 80 chars ->
    "name too long". No side effects.
    """
    try:
        fields = coerce_fields(candidate)
    except ValidationError as exc:
        return False, exc.reason

    name = fields.name.strip()
    if not name:
        return False, "name required"
    if len(name) > NAME_MAX_LEN:
        return False, "name too long"
    return True, None


def ensure_valid(candidate: StrategyFields | Mapping[str, Any]) -> StrategyFields:
    fields = coerce_fields(candidate)
    ok, reason = validate_fields(fields)
    if not ok:
        raise ValidationError(reason or "invalid fields", field="name")
    return fields
