"""Timezone-aware date/time helpers for hotel-local calendars."""

from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_timezone(tz_name: str = None) -> ZoneInfo:
    """Get a timezone by name, falling back to the configured default."""
    if not tz_name:
        tz_name = current_app.config.get('TIMEZONE', 'UTC')
    return ZoneInfo(tz_name)


def is_valid_timezone(tz_name: str) -> bool:
    """Check whether a name is a known IANA timezone."""
    if not tz_name:
        return False
    try:
        ZoneInfo(tz_name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def get_today(tz_name: str = None) -> date:
    """Get today's date in the given (or configured) timezone."""
    return datetime.now(get_timezone(tz_name)).date()


def get_now(tz_name: str = None) -> datetime:
    """Get current datetime in the given (or configured) timezone."""
    return datetime.now(get_timezone(tz_name))


def now_timestamp(tz_name: str = None) -> str:
    """Current time as a sortable timestamp string."""
    return get_now(tz_name).strftime(TIMESTAMP_FORMAT)
