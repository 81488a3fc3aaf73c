"""
Per-hotel settings stored as key/value rows.
"""

import re

from database import get_db
from utils.audit import log_audit
from utils.datetime_helpers import now_timestamp
from utils.errors import ValidationError

DEFAULT_SETTINGS = {
    'currency': 'USD',
    'check_in_time': '14:00',
    'check_out_time': '11:00',
}

_TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')


def _validate_setting(key: str, value) -> str:
    if key not in DEFAULT_SETTINGS:
        raise ValidationError(f"Unknown setting '{key}'", field=key)
    if not isinstance(value, str):
        raise ValidationError(f'{key} must be text', field=key)

    value = value.strip()
    if key == 'currency':
        value = value.upper()
        if not re.match(r'^[A-Z]{3}$', value):
            raise ValidationError('currency must be a 3-letter ISO code', field=key)
    elif not _TIME_PATTERN.match(value):
        raise ValidationError(f'{key} must be a time in HH:MM format', field=key)
    return value


def get_hotel_settings(hotel_id: int) -> dict:
    """
    Get all settings for a hotel, defaults filled in.

    Returns:
        Dict of key -> value
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT key, value FROM hotel_settings WHERE hotel_id = ?', (hotel_id,))

    settings = dict(DEFAULT_SETTINGS)
    settings.update({row['key']: row['value'] for row in cursor.fetchall()})
    return settings


def update_hotel_settings(hotel_id: int, values: dict, actor=None) -> dict:
    """
    Update one or more known settings.

    Args:
        hotel_id: Hotel ID
        values: Dict of key -> new value
        actor: User performing the action

    Returns:
        Full settings dict after the update

    Raises:
        ValidationError: Unknown key or invalid value
    """
    if not values:
        raise ValidationError('No settings to update')

    cleaned = {key: _validate_setting(key, value) for key, value in values.items()}
    now = now_timestamp()

    db = get_db()
    try:
        for key, value in cleaned.items():
            db.execute('''
                INSERT INTO hotel_settings (hotel_id, key, value, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(hotel_id, key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            ''', (hotel_id, key, value, now))
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_audit('settings.updated', hotel_id=hotel_id, metadata={'changes': cleaned}, actor=actor)
    return get_hotel_settings(hotel_id)
