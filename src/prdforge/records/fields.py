"""Declarative field specifications and the one generic coercion function.

A :class:`FieldSpec` names a record attribute, the input keys it may arrive
under (canonical name first, then aliases), its :class:`FieldKind`, and its
default.  :func:`coerce` applies permissive conversion rules per kind and
falls back to the default instead of raising.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class FieldKind(str, Enum):
    """How a raw parsed value is coerced."""

    STRING = "string"
    STRING_ARRAY = "string_array"
    NUMBER = "number"
    ENUM = "enum"


_MISSING = object()


@dataclass(frozen=True)
class FieldSpec:
    """Description of one record field.

    Attributes:
        attr: Attribute name on the record model.
        kind: Coercion rule to apply.
        keys: Input keys to try in order; the first is the canonical name.
        default: Value used when the field is absent or malformed.  For
            ``STRING_ARRAY`` fields, any iterable (copied on use).
        choices: Allowed values for ``ENUM`` fields (canonical spelling).
        substring_match: ``ENUM`` only; also accept input that contains a
            choice, e.g. ``"Senior Backend Engineer"`` -> ``"Backend"``.
        minimum: ``NUMBER`` only; values at or below are replaced by the
            default.
        maximum: ``NUMBER`` only; values above are capped.
        integer: ``NUMBER`` only; round to the nearest integer.
    """

    attr: str
    kind: FieldKind
    keys: tuple[str, ...] = ()
    default: Any = None
    choices: tuple[str, ...] = ()
    substring_match: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    integer: bool = False

    def __post_init__(self) -> None:
        if not self.keys:
            object.__setattr__(self, "keys", (self.attr,))
        if self.kind is FieldKind.ENUM:
            if not self.choices:
                raise ValueError(f"ENUM field '{self.attr}' needs choices")
            if self.default not in self.choices:
                raise ValueError(
                    f"Default {self.default!r} of field '{self.attr}' is not one of its choices"
                )

    def default_value(self) -> Any:
        """Return a fresh copy of the default."""
        if self.kind is FieldKind.STRING_ARRAY:
            return list(self.default or ())
        return self.default


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def lookup(data: Mapping[str, Any], field: FieldSpec) -> Any:
    """Return the first present value among ``field.keys``, or ``_MISSING``.

    ``None`` and blank strings count as absent, so an empty canonical key
    falls through to its aliases.
    """
    for key in field.keys:
        value = data.get(key)
        if not _is_absent(value):
            return value
    return _MISSING


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def _scalar_text(value: Any) -> Optional[str]:
    """Render a JSON scalar as text; ``None`` for containers and nulls."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return str(int(value)) if value.is_integer() else repr(value)
    return None


def _coerce_string(value: Any, field: FieldSpec) -> Any:
    if isinstance(value, list):
        parts = [t for t in (_scalar_text(item) for item in value) if t]
        return ", ".join(parts) if parts else field.default_value()
    text = _scalar_text(value)
    return text if text else field.default_value()


def _coerce_string_array(value: Any, field: FieldSpec) -> list[str]:
    if isinstance(value, list):
        return [t for t in (_scalar_text(item) for item in value) if t]
    if isinstance(value, str):
        text = value.strip()
        return [text] if text else []
    return field.default_value()


def _coerce_number(value: Any, field: FieldSpec) -> Any:
    if isinstance(value, bool):
        return field.default_value()
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return field.default_value()
    else:
        return field.default_value()

    if not math.isfinite(number):
        return field.default_value()
    if field.minimum is not None and number <= field.minimum:
        return field.default_value()
    if field.maximum is not None and number > field.maximum:
        number = field.maximum
    if field.integer:
        return int(round(number))
    return number


def _coerce_enum(value: Any, field: FieldSpec) -> str:
    text = _scalar_text(value)
    if not text:
        return field.default
    lowered = text.lower()
    for choice in field.choices:
        if choice.lower() == lowered:
            return choice
    if field.substring_match:
        for choice in field.choices:
            if choice.lower() in lowered:
                return choice
    return field.default


_COERCERS = {
    FieldKind.STRING: _coerce_string,
    FieldKind.STRING_ARRAY: _coerce_string_array,
    FieldKind.NUMBER: _coerce_number,
    FieldKind.ENUM: _coerce_enum,
}


def coerce(value: Any, field: FieldSpec) -> Any:
    """Coerce a raw parsed value according to ``field.kind``.

    Rules:
        STRING: scalars become text; lists are joined with ``", "``;
            anything else (or empty text) yields the default.
        STRING_ARRAY: list items are stringified and blank ones dropped; a
            bare string becomes a one-element list.
        NUMBER: numbers and numeric strings are accepted; non-finite values,
            values at or below ``minimum`` and non-numeric input yield the
            default; values above ``maximum`` are capped.
        ENUM: case-insensitive match against ``choices`` (optionally by
            substring); no match yields the default.

    Never raises.
    """
    if _is_absent(value):
        return field.default_value()
    return _COERCERS[field.kind](value, field)
