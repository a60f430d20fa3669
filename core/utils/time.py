"""
Time Utilities

The Zaif stream reports time in two shapes:
- Trade records: seconds since epoch (e.g., 1704110400)
- Message timestamp: a local (Asia/Tokyo) wall-clock string,
  e.g. "2024-01-01 21:00:00.123456"

The helpers here normalize both into timezone-aware UTC datetimes.
"""

from datetime import datetime, timezone
from typing import Optional, Union

from dateutil import parser as dateparser
from dateutil import tz

# Zaif reports wall-clock time without an offset
EXCHANGE_TZ = tz.gettz("Asia/Tokyo")


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a timestamp (seconds or milliseconds) to UTC datetime.

    Detection Logic:
        - If timestamp > 1e12: assumed to be milliseconds
        - Otherwise: assumed to be seconds

    Args:
        timestamp: Unix timestamp in seconds or milliseconds

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If timestamp is negative or invalid

    Examples:
        >>> to_utc_datetime(1704110400)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    if timestamp > 1e12:
        timestamp = timestamp / 1000.0

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def parse_exchange_timestamp(value: str) -> Optional[datetime]:
    """
    Parse a stream message timestamp string into a UTC datetime.

    Naive values are interpreted in exchange local time (Asia/Tokyo);
    values carrying an offset keep it.

    Args:
        value: Timestamp string from the wire (may be empty)

    Returns:
        UTC datetime, or None for an empty string

    Raises:
        ValueError: If the string is not a recognizable timestamp

    Examples:
        >>> parse_exchange_timestamp("2024-01-01 21:00:00")
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
        >>> parse_exchange_timestamp("") is None
        True
    """
    if not value:
        return None

    try:
        parsed = dateparser.parse(value)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid exchange timestamp: {value!r}. Error: {e}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=EXCHANGE_TZ)

    return parsed.astimezone(timezone.utc)
