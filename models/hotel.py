"""
Hotel (tenant) data access functions.
Hotels own rooms, reservations, staff accounts and settings.
"""

import logging

from flask import current_app

from database import get_db
from utils.api_response import paginate_meta
from utils.audit import log_audit
from utils.datetime_helpers import is_valid_timezone, now_timestamp
from utils.errors import HotelInUse, NotFound, ValidationError
from utils.validators import require_text, sanitize_input, validate_email, validate_phone

logger = logging.getLogger(__name__)

HOTEL_FIELDS = ('name', 'city', 'country', 'phone', 'email', 'description', 'timezone')


def _clean_hotel_fields(data: dict, partial: bool = False) -> dict:
    """Validate hotel input. Only keys present in data are returned when partial."""
    cleaned = {}

    if 'name' in data or not partial:
        cleaned['name'] = require_text(data.get('name'), 'name', 150)

    for field, limit in (('city', 100), ('country', 100), ('description', 1000)):
        if field in data:
            cleaned[field] = sanitize_input(data.get(field), limit) or None

    if 'email' in data:
        email = sanitize_input(data.get('email'), 255)
        if email and not validate_email(email):
            raise ValidationError('Email is not valid', field='email')
        cleaned['email'] = email or None

    if 'phone' in data:
        phone = sanitize_input(data.get('phone'), 30)
        if phone and not validate_phone(phone):
            raise ValidationError('Phone number is not valid', field='phone')
        cleaned['phone'] = phone or None

    if 'timezone' in data or not partial:
        tz_name = sanitize_input(data.get('timezone'), 64) or current_app.config.get('TIMEZONE', 'UTC')
        if not is_valid_timezone(tz_name):
            raise ValidationError(f"Unknown timezone '{tz_name}'", field='timezone')
        cleaned['timezone'] = tz_name

    return cleaned


# =============================================================================
# READ
# =============================================================================

def get_hotel(hotel_id: int) -> dict:
    """
    Get hotel by ID with its active rooms count.

    Raises:
        NotFound: Hotel does not exist
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT h.*,
               (SELECT COUNT(*) FROM rooms r WHERE r.hotel_id = h.id AND r.active = 1) as rooms_count
        FROM hotels h
        WHERE h.id = ?
    ''', (hotel_id,))
    row = cursor.fetchone()
    if not row:
        raise NotFound('Hotel not found')
    return dict(row)


def hotel_exists(hotel_id: int) -> bool:
    db = get_db()
    row = db.execute('SELECT 1 FROM hotels WHERE id = ?', (hotel_id,)).fetchone()
    return row is not None


def get_hotel_timezone(hotel_id: int) -> str:
    """Get the hotel's IANA timezone name (configured default when unset)."""
    db = get_db()
    row = db.execute('SELECT timezone FROM hotels WHERE id = ?', (hotel_id,)).fetchone()
    if row and row['timezone']:
        return row['timezone']
    return current_app.config.get('TIMEZONE', 'UTC')


def list_hotels(search: str = None, page: int = 1, per_page: int = 20) -> dict:
    """
    List hotels alphabetically with rooms count.

    Args:
        search: Substring of name, city or country
        page: 1-based page number
        per_page: Hotels per page

    Returns:
        Dict with 'data' and 'meta'
    """
    db = get_db()
    cursor = db.cursor()

    where = '1=1'
    params = []
    if search:
        term = f'%{search.strip()}%'
        where = '(h.name LIKE ? OR h.city LIKE ? OR h.country LIKE ?)'
        params = [term, term, term]

    cursor.execute(f'SELECT COUNT(*) as count FROM hotels h WHERE {where}', params)
    total = cursor.fetchone()['count']

    cursor.execute(f'''
        SELECT h.*,
               (SELECT COUNT(*) FROM rooms r WHERE r.hotel_id = h.id AND r.active = 1) as rooms_count
        FROM hotels h
        WHERE {where}
        ORDER BY h.name, h.id
        LIMIT ? OFFSET ?
    ''', params + [per_page, (page - 1) * per_page])

    return {
        'data': [dict(row) for row in cursor.fetchall()],
        'meta': paginate_meta(total, page, per_page)
    }


# =============================================================================
# CREATE / UPDATE / DELETE
# =============================================================================

def create_hotel(data: dict, actor=None) -> dict:
    """
    Create a hotel.

    Args:
        data: name (required), city, country, phone, email, description, timezone
        actor: User performing the action

    Returns:
        Created hotel dict
    """
    fields = _clean_hotel_fields(data)
    now = now_timestamp()
    fields['created_at'] = now
    fields['updated_at'] = now

    columns = ', '.join(fields)
    placeholders = ', '.join('?' for _ in fields)

    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute(f'INSERT INTO hotels ({columns}) VALUES ({placeholders})', list(fields.values()))
        db.commit()
    except Exception:
        db.rollback()
        raise

    hotel_id = cursor.lastrowid
    logger.info('Hotel %s created (%s)', hotel_id, fields['name'])
    log_audit('hotel.created', hotel_id=hotel_id,
              metadata={'hotel_id': hotel_id, 'name': fields['name']}, actor=actor)
    return get_hotel(hotel_id)


def update_hotel(hotel_id: int, data: dict, actor=None) -> dict:
    """
    Update hotel fields (partial).

    Raises:
        NotFound: Hotel does not exist
        ValidationError: Invalid value or nothing to update
    """
    get_hotel(hotel_id)
    fields = _clean_hotel_fields({k: v for k, v in data.items() if k in HOTEL_FIELDS}, partial=True)
    if not fields:
        raise ValidationError('No fields to update')

    fields['updated_at'] = now_timestamp()
    assignments = ', '.join(f'{field} = ?' for field in fields)

    db = get_db()
    try:
        db.execute(f'UPDATE hotels SET {assignments} WHERE id = ?', list(fields.values()) + [hotel_id])
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_audit('hotel.updated', hotel_id=hotel_id,
              metadata={'hotel_id': hotel_id,
                        'fields': sorted(f for f in fields if f != 'updated_at')},
              actor=actor)
    return get_hotel(hotel_id)


def delete_hotel(hotel_id: int, actor=None) -> None:
    """
    Delete a hotel that owns nothing.

    Raises:
        NotFound: Hotel does not exist
        HotelInUse: Rooms, reservations or users still reference it
    """
    hotel = get_hotel(hotel_id)

    db = get_db()
    cursor = db.cursor()
    cursor.execute('BEGIN IMMEDIATE')
    try:
        counts = {}
        for table in ('rooms', 'reservations', 'users'):
            cursor.execute(f'SELECT COUNT(*) as count FROM {table} WHERE hotel_id = ?', (hotel_id,))
            counts[table] = cursor.fetchone()['count']

        if any(counts.values()):
            raise HotelInUse(
                'Hotel still has rooms, reservations or users and cannot be deleted',
                references=counts
            )

        cursor.execute('DELETE FROM hotel_settings WHERE hotel_id = ?', (hotel_id,))
        cursor.execute('DELETE FROM hotels WHERE id = ?', (hotel_id,))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info('Hotel %s deleted', hotel_id)
    log_audit('hotel.deleted', hotel_id=hotel_id,
              metadata={'hotel_id': hotel_id, 'name': hotel['name']}, actor=actor)
