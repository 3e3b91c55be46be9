"""Numeric precision policy for decimal attributes.

Each attribute resolves to a ``(delta, scale)`` pair. ``delta`` decides whether
a newly polled value differs from the stored one, ``scale`` is the number of
decimals kept when rounding. Attributes without an entry use the integer
policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pymilllan.models import Attribute


__all__ = [
    "INTEGER",
    "DecimalPrecision",
    "precision_for",
    "round_value",
    "same_value",
]


@dataclass(frozen=True)
class DecimalPrecision:
    """Comparison delta and display scale for one attribute.

    Attributes:
        delta: Largest difference still considered the same value.
        scale: Number of decimals kept when rounding.
    """

    delta: Decimal
    scale: int

    def round(self, value: float | Decimal) -> Decimal:
        """Round a value half-up to this scale."""
        return _to_decimal(value).quantize(Decimal(1).scaleb(-self.scale), rounding=ROUND_HALF_UP)

    def same(self, first: float | Decimal, second: float | Decimal) -> bool:
        """Check if two values are within delta of each other."""
        return abs(_to_decimal(first) - _to_decimal(second)) <= self.delta


INTEGER = DecimalPrecision(Decimal(0), 0)

_TEMPERATURE = DecimalPrecision(Decimal("0.0001"), 2)

PRECISION_TABLE: dict[Attribute, DecimalPrecision] = {
    Attribute.AMBIENT_TEMPERATURE: _TEMPERATURE,
    Attribute.RAW_AMBIENT_TEMPERATURE: _TEMPERATURE,
    Attribute.SET_TEMPERATURE: _TEMPERATURE,
    Attribute.NORMAL_SET_TEMPERATURE: _TEMPERATURE,
    Attribute.COMFORT_SET_TEMPERATURE: _TEMPERATURE,
    Attribute.SLEEP_SET_TEMPERATURE: _TEMPERATURE,
    Attribute.AWAY_SET_TEMPERATURE: _TEMPERATURE,
    Attribute.INDEPENDENT_SET_TEMPERATURE: _TEMPERATURE,
    Attribute.TEMPERATURE_CALIBRATION_OFFSET: _TEMPERATURE,
    Attribute.PID_KP: DecimalPrecision(Decimal("0.0001"), 2),
    Attribute.PID_KI: DecimalPrecision(Decimal("0.000001"), 4),
    Attribute.PID_KD: DecimalPrecision(Decimal("0.0001"), 2),
    Attribute.PID_KD_FILTER_N: DecimalPrecision(Decimal("0.0001"), 2),
    Attribute.PID_WINDUP_LIMIT_PCT: DecimalPrecision(Decimal("0.001"), 1),
    Attribute.HYSTERESIS_UPPER: _TEMPERATURE,
    Attribute.HYSTERESIS_LOWER: _TEMPERATURE,
    Attribute.COMMERCIAL_LOCK_MIN_TEMP: _TEMPERATURE,
    Attribute.COMMERCIAL_LOCK_MAX_TEMP: _TEMPERATURE,
    Attribute.OPEN_WINDOW_DROP_TEMP_THRESHOLD: _TEMPERATURE,
    Attribute.OPEN_WINDOW_INCREASE_TEMP_THRESHOLD: _TEMPERATURE,
}


def _to_decimal(value: float | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps the shortest repr, so 21.1 doesn't become 21.10000000000000142...
    return Decimal(str(value))


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float | Decimal) and not isinstance(value, bool)


def precision_for(attribute: Attribute | str) -> DecimalPrecision:
    """Get the precision policy of an attribute.

    Args:
        attribute: Mirror attribute or its name.

    Returns:
        The attribute's policy, or ``INTEGER`` if it has none.
    """
    try:
        return PRECISION_TABLE.get(Attribute(attribute), INTEGER)
    except ValueError:
        return INTEGER


def round_value(attribute: Attribute | str, value: float | None) -> float | None:
    """Round a value to the attribute's display scale.

    Rounding is idempotent: ``round_value(a, round_value(a, v)) == round_value(a, v)``.

    Args:
        attribute: Mirror attribute or its name.
        value: Value to round.

    Returns:
        The rounded value, an int for integer policies, or None.
    """
    if value is None:
        return None
    policy = precision_for(attribute)
    rounded = policy.round(value)
    if policy.scale == 0:
        return int(rounded)
    return float(rounded)


def same_value(attribute: Attribute | str, first: Any, second: Any) -> bool:
    """Check if two values of an attribute are considered the same.

    Numbers are compared with the attribute's delta, anything else by
    equality. Two missing values are the same, one missing value is not.

    Args:
        attribute: Mirror attribute or its name.
        first: First value.
        second: Second value.

    Returns:
        True if the values don't differ materially.
    """
    if first is None or second is None:
        return first is None and second is None
    if _is_number(first) and _is_number(second):
        return precision_for(attribute).same(first, second)
    if isinstance(first, Enum) or isinstance(second, Enum):
        return first is second
    return bool(first == second)
