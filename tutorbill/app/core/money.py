"""Decimal helpers shared by every currency and hours computation."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal("0.01")
THOUSANDTHS = Decimal("0.001")
ZERO = Decimal("0")
MINUTES_PER_HOUR = Decimal("60")


def to_decimal(value) -> Decimal | None:
    """Coerce a raw record value to a finite Decimal, or None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            return None
    if not result.is_finite():
        return None
    return result


def round_currency(value) -> Decimal:
    """Round to cents, half away from zero. Non-numeric input becomes 0.00."""
    amount = to_decimal(value)
    if amount is None:
        return ZERO.quantize(CENTS)
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_hours(value) -> Decimal:
    """Round to thousandths of an hour, half away from zero."""
    hours = to_decimal(value)
    if hours is None:
        return ZERO.quantize(THOUSANDTHS)
    return hours.quantize(THOUSANDTHS, rounding=ROUND_HALF_UP)


def non_negative(value) -> Decimal:
    amount = to_decimal(value)
    if amount is None or amount < 0:
        return ZERO
    return amount


def minutes_to_hours(minutes) -> Decimal:
    value = to_decimal(minutes)
    if value is None:
        return ZERO
    return value / MINUTES_PER_HOUR
