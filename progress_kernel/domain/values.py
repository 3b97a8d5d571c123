"""
Values -- Decimal percentage and hours helpers.

Responsibility:
    Converts loosely typed numeric inputs (ints, floats, Decimals, locale
    strings such as ``"45,5%"``) into ``Decimal`` and clamps percentages
    into the closed interval [0, 100].  Every engine routes its inputs,
    intermediate sums and outputs through these helpers.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    PERCENT_BOUNDS -- ``clamp_percent`` is the single clamping point.
    Decimal-only arithmetic: floats are converted through ``str()`` so
    ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.

Failure modes:
    None.  Unparseable or non-finite inputs yield ``None`` (or zero from
    ``clamp_percent``); booleans are rejected as numbers.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal | None:
    """
    Convert a numeric-looking value to a finite Decimal.

    Accepts int, float, Decimal and strings; in strings a ``%`` sign is
    dropped and the first ``,`` is read as the decimal separator.

    Returns:
        The Decimal, or None when the value is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.replace("%", "").strip().replace(",", ".", 1)
        if not cleaned:
            return None
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def clamp_percent(value: Decimal | int | None) -> Decimal:
    """Clamp to [0, 100]. None and non-finite values become 0."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(value)
    if not value.is_finite():
        return ZERO
    return max(ZERO, min(HUNDRED, value))


def parse_percent(value: Any) -> Decimal | None:
    """Parse and clamp a percentage. None when unparseable."""
    parsed = to_decimal(value)
    if parsed is None:
        return None
    return clamp_percent(parsed)


def positive_hours(value: Any) -> Decimal | None:
    """Parse an hours figure; only strictly positive values survive."""
    parsed = to_decimal(value)
    if parsed is None or parsed <= ZERO:
        return None
    return parsed


def round_percent(value: Decimal, places: int = 2) -> Decimal:
    """Round half-up to ``places`` decimals (display precision)."""
    exponent = Decimal(1).scaleb(-places)
    return clamp_percent(value).quantize(exponent, rounding=ROUND_HALF_UP)
