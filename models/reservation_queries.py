"""
Reservation query functions.
Handles reservation lookups and filtered listings.
"""

from datetime import date

from database import get_db
from utils.api_response import paginate_meta
from utils.errors import NotFound, ValidationError
from utils.validators import parse_date
from .reservation_state import STATUSES, get_allowed_transitions, parse_status

_BASE_SELECT = '''
    SELECT r.*,
           rm.number as room_number,
           rm.room_type as room_type,
           rm.capacity as room_capacity,
           u.full_name as user_full_name,
           u.email as user_email
    FROM reservations r
    JOIN rooms rm ON r.room_id = rm.id
    LEFT JOIN users u ON r.user_id = u.id
'''


def serialize_reservation(row) -> dict:
    """Convert a reservation row into its API shape."""
    reservation = dict(row)
    check_in = date.fromisoformat(reservation['check_in'])
    check_out = date.fromisoformat(reservation['check_out'])
    reservation['nights'] = (check_out - check_in).days
    reservation['is_walk_in'] = reservation['user_id'] is None
    reservation['allowed_transitions'] = get_allowed_transitions(reservation['status'])
    return reservation


def get_reservation(reservation_id: int, hotel_id: int) -> dict:
    """
    Get a reservation of the given hotel with room and guest details.

    Raises:
        NotFound: Missing reservation or reservation of another hotel
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(_BASE_SELECT + ' WHERE r.id = ? AND r.hotel_id = ?', (reservation_id, hotel_id))
    row = cursor.fetchone()
    if not row:
        raise NotFound('Reservation not found')
    return serialize_reservation(row)


def list_reservations(
    hotel_id: int,
    search: str = None,
    status: str = None,
    room_id: int = None,
    user_id: int = None,
    date_from: str = None,
    date_to: str = None,
    page: int = 1,
    per_page: int = 20
) -> dict:
    """
    List reservations of a hotel, most recent stays first.

    Args:
        hotel_id: Hotel ID
        search: Substring of guest name/email, account name/email or room number
        status: Exact status
        room_id: Restrict to one room
        user_id: Restrict to one guest account
        date_from: Stays that are still running on or after this date
        date_to: Stays that start on or before this date
        page: 1-based page number
        per_page: Reservations per page

    Returns:
        Dict with 'data' and 'meta'
    """
    where = ['r.hotel_id = ?']
    params = [hotel_id]

    if status:
        where.append('r.status = ?')
        params.append(parse_status(status))

    if room_id is not None:
        where.append('r.room_id = ?')
        params.append(room_id)

    if user_id is not None:
        where.append('r.user_id = ?')
        params.append(user_id)

    if search:
        term = f'%{search.strip()}%'
        where.append('''(
            r.guest_name LIKE ? OR r.guest_email LIKE ? OR
            u.full_name LIKE ? OR u.email LIKE ? OR rm.number LIKE ?
        )''')
        params.extend([term] * 5)

    start = parse_date(date_from, 'date_from') if date_from else None
    end = parse_date(date_to, 'date_to') if date_to else None
    if start and end and start > end:
        raise ValidationError('date_from must not be after date_to', field='date_from')
    if start:
        where.append('r.check_out > ?')
        params.append(start.isoformat())
    if end:
        where.append('r.check_in <= ?')
        params.append(end.isoformat())

    where_sql = ' AND '.join(where)

    db = get_db()
    cursor = db.cursor()

    cursor.execute(f'''
        SELECT COUNT(*) as count
        FROM reservations r
        JOIN rooms rm ON r.room_id = rm.id
        LEFT JOIN users u ON r.user_id = u.id
        WHERE {where_sql}
    ''', params)
    total = cursor.fetchone()['count']

    cursor.execute(f'''
        {_BASE_SELECT}
        WHERE {where_sql}
        ORDER BY r.check_in DESC, r.id DESC
        LIMIT ? OFFSET ?
    ''', params + [per_page, (page - 1) * per_page])

    return {
        'data': [serialize_reservation(row) for row in cursor.fetchall()],
        'meta': paginate_meta(total, page, per_page)
    }


def get_room_reservations(room_id: int, statuses: tuple = None) -> list:
    """
    Get every reservation of a room, optionally limited to some statuses.

    Returns:
        List of reservation dicts ordered by check_in
    """
    query = 'SELECT * FROM reservations WHERE room_id = ?'
    params = [room_id]
    if statuses:
        query += f" AND status IN ({', '.join('?' for _ in statuses)})"
        params.extend(statuses)
    query += ' ORDER BY check_in, id'

    db = get_db()
    return [dict(row) for row in db.execute(query, params).fetchall()]


def count_reservations_by_status(hotel_id: int) -> dict:
    """Count reservations per status for one hotel (every status present)."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT status, COUNT(*) as count
        FROM reservations
        WHERE hotel_id = ?
        GROUP BY status
    ''', (hotel_id,))

    counts = {status: 0 for status in STATUSES}
    counts.update({row['status']: row['count'] for row in cursor.fetchall()})
    return counts
