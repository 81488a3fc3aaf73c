"""
Reservation CRUD operations.
Handles create, update and delete for reservations of one hotel.
"""

import logging

from database import get_db
from models.role import Capability, require_capability
from utils.audit import log_audit
from utils.datetime_helpers import now_timestamp
from utils.errors import NotFound, ValidationError
from utils.locks import room_lock
from utils.messages import MESSAGES
from utils.validators import (
    parse_int, parse_stay_dates, sanitize_input, validate_email, validate_phone
)
from .reservation_availability import ACTIVE_STATUSES, find_conflicts
from .reservation_queries import get_reservation
from .reservation_state import (
    OPEN_STATUSES, TERMINAL_STATUSES, conflict_error, parse_status, record_status_change
)

logger = logging.getLogger(__name__)

GUEST_FIELDS = ('guest_name', 'guest_email', 'guest_phone')
UPDATABLE_FIELDS = ('room_id', 'check_in', 'check_out', 'guests', 'user_id',
                    'special_requests') + GUEST_FIELDS


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

def _get_bookable_room(cursor, room_id, hotel_id: int) -> dict:
    """Get an active room of the hotel or raise NotFound."""
    room_id = parse_int(room_id, 'room_id', minimum=1)
    cursor.execute('SELECT * FROM rooms WHERE id = ? AND hotel_id = ? AND active = 1',
                   (room_id, hotel_id))
    row = cursor.fetchone()
    if not row:
        raise NotFound('Room not found')
    return dict(row)


def _get_current_room(cursor, room_id: int, hotel_id: int) -> dict:
    """Get the room a reservation already holds, including soft-deleted rooms."""
    cursor.execute('SELECT * FROM rooms WHERE id = ? AND hotel_id = ?', (room_id, hotel_id))
    row = cursor.fetchone()
    if not row:
        raise NotFound('Room not found')
    return dict(row)


def _check_guest_account(cursor, user_id, hotel_id: int):
    """A linked guest account must exist and not belong to another hotel."""
    if user_id is None:
        return None
    user_id = parse_int(user_id, 'user_id', minimum=1)
    cursor.execute('SELECT id, hotel_id, active FROM users WHERE id = ?', (user_id,))
    row = cursor.fetchone()
    if not row or not row['active'] or row['hotel_id'] not in (None, hotel_id):
        raise NotFound('User not found')
    return user_id


def _clean_guest_fields(data: dict) -> dict:
    cleaned = {}
    if 'guest_name' in data:
        cleaned['guest_name'] = sanitize_input(data.get('guest_name'), 120) or None
    if 'guest_email' in data:
        email = sanitize_input(data.get('guest_email'), 255)
        if email and not validate_email(email):
            raise ValidationError('guest_email is not valid', field='guest_email')
        cleaned['guest_email'] = email or None
    if 'guest_phone' in data:
        phone = sanitize_input(data.get('guest_phone'), 30)
        if phone and not validate_phone(phone):
            raise ValidationError('guest_phone is not valid', field='guest_phone')
        cleaned['guest_phone'] = phone or None
    return cleaned


def _booking_warnings(room: dict, guests: int, status: str, conflicts: list) -> list:
    """Soft checks: reported to the caller, never blocking."""
    warnings = []
    if guests > room['capacity']:
        warnings.append(MESSAGES['guests_exceed_capacity'].format(
            guests=guests, capacity=room['capacity']))
    if not room['is_available']:
        warnings.append(MESSAGES['room_flagged_unavailable'])
    if status == 'pending' and conflicts:
        warnings.append(MESSAGES['room_has_active_booking'])
    return warnings


# =============================================================================
# CREATE
# =============================================================================

def create_reservation(
    hotel_id: int,
    room_id: int,
    check_in,
    check_out,
    guests=1,
    user_id: int = None,
    guest_name: str = None,
    guest_email: str = None,
    guest_phone: str = None,
    special_requests: str = None,
    status: str = None,
    actor=None
) -> tuple:
    """
    Create a reservation.

    New reservations start as pending holds and are not checked against
    other bookings. Supplying an explicit initial status requires the
    reservations.import capability; an initial confirmed or checked_in
    status must not overlap an active reservation.

    Args:
        hotel_id: Hotel ID
        room_id: Room of the hotel to book
        check_in: First night (YYYY-MM-DD)
        check_out: Departure day, exclusive (YYYY-MM-DD)
        guests: Number of guests (>= 1)
        user_id: Guest account (None for a walk-in)
        guest_name: Walk-in guest name (required without user_id)
        guest_email: Walk-in guest email
        guest_phone: Walk-in guest phone
        special_requests: Free text
        status: Explicit initial status (import path)
        actor: User creating the reservation

    Returns:
        tuple: (reservation dict, list of warning strings)

    Raises:
        ValidationError: Bad dates, guest count or guest identity
        NotFound: Room or guest account not in this hotel
        PermissionDenied: Explicit status without the import capability
        Conflict: Explicit active status overlapping an active reservation
    """
    start, end = parse_stay_dates(check_in, check_out)
    guests = parse_int(guests, 'guests', minimum=1)
    guest = _clean_guest_fields({
        'guest_name': guest_name,
        'guest_email': guest_email,
        'guest_phone': guest_phone,
    })
    special_requests = sanitize_input(special_requests, 2000) or None

    status_override = status is not None and parse_status(status) != 'pending'
    initial_status = parse_status(status) if status is not None else 'pending'
    if status_override and actor is not None:
        require_capability(actor.role, Capability.RESERVATIONS_IMPORT)

    db = get_db()
    cursor = db.cursor()

    room = _get_bookable_room(cursor, room_id, hotel_id)
    user_id = _check_guest_account(cursor, user_id, hotel_id)
    if user_id is None and not guest['guest_name']:
        raise ValidationError('guest_name is required for walk-in reservations', field='guest_name')

    with room_lock(room['id']):
        cursor.execute('BEGIN IMMEDIATE')
        try:
            room = _get_bookable_room(cursor, room['id'], hotel_id)
            conflicts = find_conflicts(room['id'], start, end, cursor=cursor)
            if conflicts and initial_status in ACTIVE_STATUSES:
                raise conflict_error(conflicts)

            now = now_timestamp()
            cursor.execute('''
                INSERT INTO reservations (
                    hotel_id, room_id, user_id, guest_name, guest_email, guest_phone,
                    check_in, check_out, guests, status, special_requests,
                    created_by, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                hotel_id, room['id'], user_id, guest['guest_name'], guest['guest_email'],
                guest['guest_phone'], start.isoformat(), end.isoformat(), guests,
                initial_status, special_requests, getattr(actor, 'id', None), now, now
            ))
            reservation_id = cursor.lastrowid

            record_status_change(cursor, reservation_id, None, initial_status,
                                 getattr(actor, 'id', None),
                                 'Imported with explicit status' if status_override else 'Created')
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info('Reservation %s created for room %s (%s..%s, %s)',
                reservation_id, room['id'], start, end, initial_status)
    log_audit('reservation.created', hotel_id=hotel_id, metadata={
        'reservation_id': reservation_id,
        'room_id': room['id'],
        'user_id': user_id,
        'status': initial_status,
        'status_override': status_override,
    }, actor=actor)

    warnings = _booking_warnings(room, guests, initial_status, conflicts)
    return get_reservation(reservation_id, hotel_id), warnings


# =============================================================================
# UPDATE
# =============================================================================

def update_reservation(reservation_id: int, hotel_id: int, fields: dict, actor=None) -> tuple:
    """
    Partially update a reservation.

    Status is not editable here: use transition_reservation. Moving a
    pending, confirmed or checked-in reservation to another room or range
    re-runs the overlap check against the new stay, ignoring the
    reservation's own current nights.

    Args:
        reservation_id: Reservation ID
        hotel_id: Hotel the reservation must belong to
        fields: Subset of room_id, check_in, check_out, guests, user_id,
                guest_name, guest_email, guest_phone, special_requests
        actor: User performing the change

    Returns:
        tuple: (updated reservation dict, list of warning strings)

    Raises:
        NotFound: Missing reservation, room or guest account
        ValidationError: Bad value, status edit, or stay change on a closed reservation
        Conflict: New stay overlaps an active reservation
    """
    if 'status' in fields:
        raise ValidationError('Status cannot be edited directly; use a status transition',
                              field='status')

    unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown reservation field(s): {', '.join(unknown)}")
    if not fields:
        raise ValidationError('No fields to update')

    db = get_db()
    cursor = db.cursor()

    updates = _clean_guest_fields(fields)
    if 'special_requests' in fields:
        updates['special_requests'] = sanitize_input(fields.get('special_requests'), 2000) or None
    if 'user_id' in fields:
        updates['user_id'] = _check_guest_account(cursor, fields['user_id'], hotel_id)
    if 'guests' in fields:
        updates['guests'] = parse_int(fields['guests'], 'guests', minimum=1)
    target_room_id = parse_int(fields['room_id'], 'room_id', minimum=1) if 'room_id' in fields else None

    locked_room_id = get_reservation(reservation_id, hotel_id)['room_id']
    while True:
        with room_lock(locked_room_id, target_room_id):
            cursor.execute('BEGIN IMMEDIATE')
            try:
                cursor.execute('SELECT * FROM reservations WHERE id = ? AND hotel_id = ?',
                               (reservation_id, hotel_id))
                row = cursor.fetchone()
                if not row:
                    raise NotFound('Reservation not found')
                current = dict(row)

                if current['room_id'] != locked_room_id:
                    # Moved to another room since the first read
                    db.rollback()
                    locked_room_id = current['room_id']
                    continue

                room_id = target_room_id if target_room_id is not None else current['room_id']
                start, end = parse_stay_dates(fields.get('check_in', current['check_in']),
                                              fields.get('check_out', current['check_out']))
                stay_change = (room_id != current['room_id']
                               or start.isoformat() != current['check_in']
                               or end.isoformat() != current['check_out'])
                status = current['status']
                if stay_change and status in TERMINAL_STATUSES:
                    raise ValidationError(
                        f"Room and dates of a {status} reservation cannot be changed", field='status'
                    )

                if room_id != current['room_id']:
                    room = _get_bookable_room(cursor, room_id, hotel_id)
                else:
                    room = _get_current_room(cursor, room_id, hotel_id)

                if 'room_id' in fields:
                    updates['room_id'] = room_id
                if 'check_in' in fields:
                    updates['check_in'] = start.isoformat()
                if 'check_out' in fields:
                    updates['check_out'] = end.isoformat()

                user_id = updates.get('user_id', current['user_id'])
                guest_name = updates.get('guest_name', current['guest_name'])
                if user_id is None and not guest_name:
                    raise ValidationError('guest_name is required for walk-in reservations',
                                          field='guest_name')

                conflicts = []
                if stay_change and status in OPEN_STATUSES:
                    conflicts = find_conflicts(room_id, start, end,
                                               exclude_reservation_id=reservation_id, cursor=cursor)
                    if conflicts:
                        logger.warning('Update of reservation %s rejected: overlaps %s',
                                       reservation_id, [c['id'] for c in conflicts])
                        raise conflict_error(conflicts)

                changes = {
                    field: {'from': current[field], 'to': value}
                    for field, value in updates.items()
                    if current[field] != value
                }

                updates['updated_at'] = now_timestamp()
                assignments = ', '.join(f'{field} = ?' for field in updates)
                cursor.execute(f'UPDATE reservations SET {assignments} WHERE id = ? AND hotel_id = ?',
                               list(updates.values()) + [reservation_id, hotel_id])
                db.commit()
            except Exception:
                db.rollback()
                raise
        break

    log_audit('reservation.updated', hotel_id=hotel_id, metadata={
        'reservation_id': reservation_id,
        'room_id': room_id,
        'user_id': user_id,
        'changes': changes,
    }, actor=actor)

    warnings = []
    if stay_change or 'guests' in fields:
        warnings = _booking_warnings(room, updates.get('guests', current['guests']), status, conflicts)
    return get_reservation(reservation_id, hotel_id), warnings


# =============================================================================
# DELETE
# =============================================================================

def delete_reservation(reservation_id: int, hotel_id: int, actor=None) -> None:
    """
    Delete a reservation and its status history.

    Raises:
        NotFound: Missing reservation or reservation of another hotel
    """
    reservation = get_reservation(reservation_id, hotel_id)

    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute('DELETE FROM reservations WHERE id = ? AND hotel_id = ?',
                       (reservation_id, hotel_id))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info('Reservation %s deleted', reservation_id)
    log_audit('reservation.deleted', hotel_id=hotel_id, metadata={
        'reservation_id': reservation_id,
        'room_id': reservation['room_id'],
        'user_id': reservation['user_id'],
        'status': reservation['status'],
    }, actor=actor)
