"""Time utilities for parsing record dates into comparable datetimes."""

from datetime import UTC, date, datetime, time


def _coerce_datetime(value) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        # Naive record dates are stored in UTC
        return parsed.replace(tzinfo=UTC)
    return parsed


def parse_datetime(value) -> datetime | None:
    """Parse a record date (datetime, date or ISO string) into an aware UTC datetime.

    Anything unparseable returns None.
    """
    parsed = _coerce_datetime(value)
    if parsed is None:
        return None
    return parsed.astimezone(UTC)


def end_of_day(value) -> datetime | None:
    """Return 23:59:59.999 on the calendar day of ``value``, expressed in UTC."""
    parsed = _coerce_datetime(value)
    if parsed is None:
        return None
    return parsed.replace(hour=23, minute=59, second=59, microsecond=999000).astimezone(UTC)
