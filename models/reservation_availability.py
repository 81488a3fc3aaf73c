"""
Reservation availability checking functions.
Answers "is this room free for [check_in, check_out)?" from active reservations.

Stays are half-open intervals: a guest checking out on the 13th frees the
room for a guest checking in on the 13th. Two stays [a1, b1) and [a2, b2)
collide iff a1 < b2 and a2 < b1.
"""

from datetime import timedelta

from database import get_db
from utils.validators import parse_date, parse_stay_dates

# Statuses that hold a room for their nights
ACTIVE_STATUSES = ('confirmed', 'checked_in')


def find_conflicts(
    room_id: int,
    check_in,
    check_out,
    exclude_reservation_id: int = None,
    cursor=None
) -> list:
    """
    Find active reservations of a room that intersect a stay.

    Args:
        room_id: Room ID
        check_in: First night (date or YYYY-MM-DD)
        check_out: Departure day, exclusive (date or YYYY-MM-DD)
        exclude_reservation_id: Reservation to ignore (the one being edited)
        cursor: Cursor of an open transaction, so the read sees the same
                snapshot as the write that follows

    Returns:
        List of conflicting reservation dicts ordered by check_in
    """
    start, end = parse_stay_dates(check_in, check_out)
    cur = cursor or get_db().cursor()

    placeholders = ', '.join('?' for _ in ACTIVE_STATUSES)
    query = f'''
        SELECT id, room_id, user_id, guest_name, check_in, check_out, status
        FROM reservations
        WHERE room_id = ?
          AND status IN ({placeholders})
          AND check_in < ?
          AND ? < check_out
    '''
    params = [room_id, *ACTIVE_STATUSES, end.isoformat(), start.isoformat()]

    if exclude_reservation_id is not None:
        query += ' AND id != ?'
        params.append(exclude_reservation_id)

    query += ' ORDER BY check_in, id'

    cur.execute(query, params)
    return [dict(row) for row in cur.fetchall()]


def has_conflict(room_id: int, check_in, check_out, exclude_reservation_id: int = None,
                 cursor=None) -> bool:
    """Check whether any active reservation of the room intersects the stay."""
    return bool(find_conflicts(room_id, check_in, check_out, exclude_reservation_id, cursor))


def get_unavailable_dates(room_id: int, start, end) -> list:
    """
    Get the nights in [start, end) already taken by active reservations.

    Args:
        room_id: Room ID
        start: First night of the window
        end: End of the window, exclusive

    Returns:
        Sorted list of YYYY-MM-DD strings
    """
    window_start, window_end = parse_stay_dates(start, end)
    taken = set()

    for reservation in find_conflicts(room_id, window_start, window_end):
        night = max(window_start, parse_date(reservation['check_in'], 'check_in'))
        last = min(window_end, parse_date(reservation['check_out'], 'check_out'))
        while night < last:
            taken.add(night.isoformat())
            night += timedelta(days=1)

    return sorted(taken)


def get_available_rooms(hotel_id: int, check_in, check_out, guests: int = None) -> list:
    """
    Get active, operator-available rooms of a hotel that are free for a stay.

    Args:
        hotel_id: Hotel ID
        check_in: First night
        check_out: Departure day, exclusive
        guests: Minimum capacity required (optional)

    Returns:
        List of room dicts ordered by number
    """
    start, end = parse_stay_dates(check_in, check_out)
    db = get_db()
    cursor = db.cursor()

    placeholders = ', '.join('?' for _ in ACTIVE_STATUSES)
    query = f'''
        SELECT r.*
        FROM rooms r
        WHERE r.hotel_id = ?
          AND r.active = 1
          AND r.is_available = 1
          AND NOT EXISTS (
              SELECT 1 FROM reservations res
              WHERE res.room_id = r.id
                AND res.status IN ({placeholders})
                AND res.check_in < ?
                AND ? < res.check_out
          )
    '''
    params = [hotel_id, *ACTIVE_STATUSES, end.isoformat(), start.isoformat()]

    if guests is not None:
        query += ' AND r.capacity >= ?'
        params.append(guests)

    query += ' ORDER BY r.number IS NULL, r.number, r.id'

    cursor.execute(query, params)
    rooms = []
    for row in cursor.fetchall():
        room = dict(row)
        room['is_available'] = bool(room['is_available'])
        room['active'] = bool(room['active'])
        rooms.append(room)
    return rooms