# connectsphere/utils/datetime_utils.py
"""
Central date/time helpers shared by every service.

Goals of this module:
1. One way to get "now" (UTC, timezone-aware)
2. Firestore-compatible values on write and on read
3. ISO-8601 formatting for the JSON API and event streams
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Any, Optional

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """Date/time utilities. Everything is normalized to UTC."""

    @staticmethod
    def now() -> datetime:
        """Current time as a UTC timezone-aware datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """Format a datetime as ISO-8601 with a 'Z' suffix."""
        try:
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            else:
                dt = dt.astimezone(timezone.utc)
            return dt.isoformat().replace('+00:00', 'Z')
        except Exception as e:
            logger.error(f"ISO format failed: {dt} - {e}")
            raise ValueError(f"Cannot format datetime as ISO string: {dt}")

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Convert date/time values before a Firestore write.

        - date -> datetime at 00:00:00 UTC
        - naive datetime -> UTC-aware datetime
        - dicts and lists are converted recursively
        """
        if isinstance(obj, date) and not isinstance(obj, datetime):
            return datetime.combine(obj, time.min).replace(tzinfo=timezone.utc)
        elif isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        elif isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def from_firestore(obj: Any) -> Any:
        """
        Normalize values read from Firestore.

        Firestore timestamps become UTC-aware datetimes; dicts and lists are
        converted recursively. On failure the original object is returned.
        """
        try:
            if isinstance(obj, datetime):
                if obj.tzinfo is None:
                    return obj.replace(tzinfo=timezone.utc)
                return datetime.fromtimestamp(obj.timestamp(), tz=timezone.utc)
            elif hasattr(obj, 'timestamp') and callable(obj.timestamp):
                return datetime.fromtimestamp(obj.timestamp(), tz=timezone.utc)
            elif isinstance(obj, dict):
                return {k: DateTimeUtils.from_firestore(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [DateTimeUtils.from_firestore(item) for item in obj]
            return obj
        except Exception as e:
            logger.error(f"Firestore read conversion failed: {obj} ({type(obj)}) - {e}")
            return obj

    @staticmethod
    def to_timestamp_ms(dt: datetime) -> int:
        """Unix epoch milliseconds for a datetime (naive values are taken as UTC)."""
        if not isinstance(dt, datetime):
            raise ValueError(f"expected a datetime, got {type(dt)}")
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)

    @staticmethod
    def sort_key(value: Optional[Any]) -> datetime:
        """
        Ordering key for a stored timestamp.

        A value the store has not resolved yet (pending server timestamp or a
        missing field) orders as "now", the same way a client shows a message
        it has just written.
        """
        normalized = DateTimeUtils.from_firestore(value)
        if isinstance(normalized, datetime):
            return normalized
        return DateTimeUtils.now()
