"""
Normalization of raw sensor and chemistry values.

The realtime database stores numbers, numeric strings, booleans and sentinel
strings ("neg", "normal", ...) side by side. Everything is funnelled through
`normalize_reading` once so classification never re-derives sentinel checks.
"""

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

NEGATIVE_SENTINELS = frozenset({"neg", "negative", "false"})
NORMAL_SENTINELS = frozenset({"norm", "normal"})
POSITIVE_SENTINELS = frozenset({"pos", "positive", "true"})


class ReadingKind(str, Enum):
    NEGATIVE = "negative"
    NORMAL = "normal"
    POSITIVE = "positive"
    NUMERIC = "numeric"
    UNKNOWN = "unknown"


class Reading(BaseModel):
    """A raw value after normalization."""

    model_config = ConfigDict(frozen=True)

    kind: ReadingKind
    value: float | None = None
    text: str | None = None

    @property
    def is_known(self) -> bool:
        return self.kind != ReadingKind.UNKNOWN

    @property
    def is_zero(self) -> bool:
        return self.kind == ReadingKind.NUMERIC and self.value == 0


UNKNOWN = Reading(kind=ReadingKind.UNKNOWN)


def normalize_reading(raw: Any) -> Reading:
    """Map a raw stored value onto a typed reading."""
    if raw is None:
        return UNKNOWN

    # bool is an int subclass, so it has to be checked first
    if isinstance(raw, bool):
        return Reading(kind=ReadingKind.POSITIVE if raw else ReadingKind.NEGATIVE, text=str(raw))

    if isinstance(raw, int | float):
        try:
            value = float(raw)
        except OverflowError:
            return UNKNOWN
        if math.isnan(value) or math.isinf(value):
            return UNKNOWN
        return Reading(kind=ReadingKind.NUMERIC, value=value)

    text = str(raw).strip()
    if not text:
        return UNKNOWN

    lowered = text.lower()
    if lowered in NEGATIVE_SENTINELS:
        return Reading(kind=ReadingKind.NEGATIVE, text=text)
    if lowered in NORMAL_SENTINELS:
        return Reading(kind=ReadingKind.NORMAL, text=text)
    if lowered in POSITIVE_SENTINELS:
        return Reading(kind=ReadingKind.POSITIVE, text=text)

    try:
        value = float(text)
    except ValueError:
        return Reading(kind=ReadingKind.POSITIVE, text=text)

    if math.isnan(value) or math.isinf(value):
        return UNKNOWN
    return Reading(kind=ReadingKind.NUMERIC, value=value, text=text)
