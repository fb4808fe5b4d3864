"""Timestamps in the service's wire format."""

from datetime import UTC, datetime


def format_timestamp(dt: datetime) -> str:
    """Format an aware datetime as ISO-8601 with seven fractional digits.

    ``2025-07-14T22:19:02.1234560-04:00``. Python keeps microseconds, so the
    seventh digit is always zero.

    Raises:
        ValueError: If ``dt`` is naive.
    """
    offset = dt.utcoffset()
    if offset is None:
        raise ValueError("Timestamp must be timezone-aware")

    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{dt:%Y-%m-%dT%H:%M:%S}.{dt.microsecond:06d}0{sign}{hours:02d}:{minutes:02d}"


def now_timestamp() -> str:
    """The current time in UTC, formatted for the wire."""
    return format_timestamp(datetime.now(UTC))
