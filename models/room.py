"""
Room catalog data access functions.
Handles CRUD for the rooms of one hotel.
"""

import logging

from flask import current_app

from database import get_db
from utils.api_response import paginate_meta
from utils.audit import log_audit
from utils.datetime_helpers import now_timestamp
from utils.errors import NotFound, RoomInUse, ValidationError
from utils.locks import room_lock
from utils.validators import parse_bool, parse_int, parse_price, require_text, sanitize_input

logger = logging.getLogger(__name__)

# Statuses that keep a room referenced
OPEN_STATUSES = ('pending', 'confirmed', 'checked_in')

UPDATABLE_FIELDS = ('number', 'room_type', 'price', 'capacity', 'is_available', 'description')


def _serialize_room(row) -> dict:
    room = dict(row)
    room['is_available'] = bool(room['is_available'])
    room['active'] = bool(room['active'])
    return room


def _check_capacity(value, confirm_large_capacity: bool) -> int:
    """Capacity >= 1; above the configured threshold the caller must confirm."""
    capacity = parse_int(value, 'capacity', minimum=1)
    threshold = current_app.config.get('ROOM_CAPACITY_CONFIRM_THRESHOLD', 100)
    if capacity > threshold and not confirm_large_capacity:
        raise ValidationError(
            f'Capacity {capacity} is above {threshold}; confirm to save it',
            field='capacity',
            requires_confirmation=True
        )
    return capacity


def _clean_room_fields(data: dict, partial: bool, confirm_large_capacity: bool) -> dict:
    cleaned = {}

    if 'room_type' in data or not partial:
        cleaned['room_type'] = require_text(data.get('room_type'), 'room_type', 100)
    if 'price' in data or not partial:
        cleaned['price'] = parse_price(data.get('price'))
    if 'capacity' in data or not partial:
        cleaned['capacity'] = _check_capacity(data.get('capacity'), confirm_large_capacity)
    if 'is_available' in data:
        cleaned['is_available'] = 1 if parse_bool(data['is_available'], 'is_available') else 0
    if 'description' in data:
        cleaned['description'] = sanitize_input(data.get('description'), 1000)
    if 'number' in data:
        cleaned['number'] = sanitize_input(data.get('number'), 20) or None

    return cleaned


# =============================================================================
# READ
# =============================================================================

def get_room(room_id: int, hotel_id: int, include_deleted: bool = False) -> dict:
    """
    Get a room of the given hotel.

    Args:
        room_id: Room ID
        hotel_id: Hotel the room must belong to
        include_deleted: Also return soft-deleted rooms

    Raises:
        NotFound: Missing, deleted, or owned by another hotel
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM rooms WHERE id = ? AND hotel_id = ?', (room_id, hotel_id))
    row = cursor.fetchone()
    if not row or (not row['active'] and not include_deleted):
        raise NotFound('Room not found')
    return _serialize_room(row)


def list_rooms(
    hotel_id: int,
    search: str = None,
    room_type: str = None,
    is_available: bool = None,
    page: int = 1,
    per_page: int = 20
) -> dict:
    """
    List active rooms of a hotel ordered by number.

    Args:
        hotel_id: Hotel ID
        search: Substring of number, type or description
        room_type: Exact room type (case-insensitive)
        is_available: Filter on the operator availability flag
        page: 1-based page number
        per_page: Rooms per page

    Returns:
        Dict with 'data' and 'meta'
    """
    db = get_db()
    cursor = db.cursor()

    where = ['hotel_id = ?', 'active = 1']
    params = [hotel_id]

    if search:
        term = f'%{search.strip()}%'
        where.append('(number LIKE ? OR room_type LIKE ? OR description LIKE ?)')
        params.extend([term, term, term])
    if room_type:
        where.append('LOWER(room_type) = ?')
        params.append(room_type.strip().lower())
    if is_available is not None:
        where.append('is_available = ?')
        params.append(1 if is_available else 0)

    where_sql = ' AND '.join(where)

    cursor.execute(f'SELECT COUNT(*) as count FROM rooms WHERE {where_sql}', params)
    total = cursor.fetchone()['count']

    cursor.execute(f'''
        SELECT * FROM rooms
        WHERE {where_sql}
        ORDER BY number IS NULL, number, id
        LIMIT ? OFFSET ?
    ''', params + [per_page, (page - 1) * per_page])

    return {
        'data': [_serialize_room(row) for row in cursor.fetchall()],
        'meta': paginate_meta(total, page, per_page)
    }


# =============================================================================
# CREATE / UPDATE / DELETE
# =============================================================================

def create_room(
    hotel_id: int,
    room_type: str,
    price,
    capacity,
    is_available=True,
    description: str = '',
    number: str = None,
    confirm_large_capacity: bool = False,
    actor=None
) -> dict:
    """
    Create a room.

    Args:
        hotel_id: Owning hotel
        room_type: Free-text category (non-empty)
        price: Nightly price, non-negative
        capacity: Max guests, integer >= 1
        is_available: Operator availability flag
        description: Optional description
        number: Optional room number/label
        confirm_large_capacity: Required for capacities above the threshold
        actor: User performing the action

    Returns:
        Created room dict

    Raises:
        ValidationError: Invalid field (with requires_confirmation for large capacities)
    """
    fields = _clean_room_fields({
        'room_type': room_type,
        'price': price,
        'capacity': capacity,
        'is_available': is_available,
        'description': description,
        'number': number,
    }, partial=False, confirm_large_capacity=confirm_large_capacity)

    now = now_timestamp()
    fields.update({'hotel_id': hotel_id, 'created_at': now, 'updated_at': now})
    columns = ', '.join(fields)
    placeholders = ', '.join('?' for _ in fields)

    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute(f'INSERT INTO rooms ({columns}) VALUES ({placeholders})', list(fields.values()))
        db.commit()
    except Exception:
        db.rollback()
        raise

    room_id = cursor.lastrowid
    logger.info('Room %s created in hotel %s', room_id, hotel_id)
    log_audit('room.created', hotel_id=hotel_id, metadata={
        'room_id': room_id,
        'room_type': fields['room_type'],
        'price': fields['price'],
        'capacity': fields['capacity'],
    }, actor=actor)

    return get_room(room_id, hotel_id)


def update_room(room_id: int, hotel_id: int, fields: dict, confirm_large_capacity: bool = False,
                actor=None) -> dict:
    """
    Partially update a room.

    Args:
        room_id: Room ID
        hotel_id: Hotel the room must belong to
        fields: Subset of number, room_type, price, capacity, is_available, description
        confirm_large_capacity: Required when raising capacity above the threshold
        actor: User performing the action

    Returns:
        Updated room dict

    Raises:
        NotFound: Missing room or room of another hotel
        ValidationError: Invalid value or nothing to update
    """
    before = get_room(room_id, hotel_id)

    unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown room field(s): {', '.join(unknown)}")

    cleaned = _clean_room_fields(fields, partial=True, confirm_large_capacity=confirm_large_capacity)
    if not cleaned:
        raise ValidationError('No fields to update')

    changes = {
        field: {'from': before[field], 'to': value}
        for field, value in cleaned.items()
        if before[field] != (bool(value) if field == 'is_available' else value)
    }

    cleaned['updated_at'] = now_timestamp()
    assignments = ', '.join(f'{field} = ?' for field in cleaned)

    db = get_db()
    try:
        db.execute(f'UPDATE rooms SET {assignments} WHERE id = ? AND hotel_id = ?',
                   list(cleaned.values()) + [room_id, hotel_id])
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_audit('room.updated', hotel_id=hotel_id,
              metadata={'room_id': room_id, 'changes': changes}, actor=actor)

    return get_room(room_id, hotel_id)


def delete_room(room_id: int, hotel_id: int, actor=None) -> None:
    """
    Delete a room.

    Rooms with open reservations (pending, confirmed, checked in) cannot be
    deleted. Otherwise the room is soft-deleted so closed reservations keep
    their room reference.

    Raises:
        NotFound: Missing room or room of another hotel
        RoomInUse: Open reservations reference the room
    """
    room = get_room(room_id, hotel_id)

    with room_lock(room_id):
        db = get_db()
        cursor = db.cursor()
        cursor.execute('BEGIN IMMEDIATE')
        try:
            placeholders = ', '.join('?' for _ in OPEN_STATUSES)
            cursor.execute(f'''
                SELECT COUNT(*) as count FROM reservations
                WHERE room_id = ? AND status IN ({placeholders})
            ''', (room_id, *OPEN_STATUSES))
            open_count = cursor.fetchone()['count']

            if open_count:
                raise RoomInUse(
                    f'Room has {open_count} open reservation(s) and cannot be deleted',
                    open_reservations=open_count
                )

            cursor.execute('''
                UPDATE rooms SET active = 0, is_available = 0, updated_at = ?
                WHERE id = ? AND hotel_id = ?
            ''', (now_timestamp(), room_id, hotel_id))
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info('Room %s deleted from hotel %s', room_id, hotel_id)
    log_audit('room.deleted', hotel_id=hotel_id, metadata={
        'room_id': room_id,
        'room_type': room['room_type'],
        'number': room['number'],
    }, actor=actor)
