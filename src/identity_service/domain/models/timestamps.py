"""Timestamp helpers shared by the domain models"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def parse_utc_timestamp(timestamp_str: str) -> datetime:
    """Parse UTC timestamp string to datetime object"""
    if isinstance(timestamp_str, datetime):
        return timestamp_str
    return datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))


def to_json_compatible(value):
    """Convert datetime to JSON-compatible ISO format string"""
    if isinstance(value, datetime):
        return value.isoformat()
    return value
