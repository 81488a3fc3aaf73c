"""
Audit Log model and data access functions.
Handles audit log creation, retrieval and filtering.

The audit trail is append-only: this module deliberately exposes no update
or delete operations.
"""

import json
from datetime import timedelta

from database import get_db
from utils.api_response import paginate_meta
from utils.datetime_helpers import now_timestamp
from utils.errors import ValidationError
from utils.validators import parse_date


# =============================================================================
# READ OPERATIONS
# =============================================================================

def _row_to_entry(row) -> dict:
    """Convert an audit_log row into the public entry shape."""
    entry = dict(row)
    entry['timestamp'] = entry.pop('created_at')
    raw = entry.get('metadata')
    if raw:
        try:
            entry['metadata'] = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            entry['metadata'] = {'raw': raw}
    else:
        entry['metadata'] = {}
    return entry


def _escape_like(text: str) -> str:
    return text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _build_filters(hotel_id=None, user_id=None, action=None, date_from=None, date_to=None) -> tuple:
    """Build the WHERE clause shared by the list and count queries."""
    clauses = ['1=1']
    params = []

    if hotel_id is not None:
        clauses.append('al.hotel_id = ?')
        params.append(hotel_id)

    if user_id is not None:
        clauses.append('al.user_id = ?')
        params.append(user_id)

    if action:
        clauses.append("LOWER(al.action) LIKE ? ESCAPE '\\'")
        params.append(f'%{_escape_like(action.strip().lower())}%')

    start = parse_date(date_from, 'from') if date_from else None
    end = parse_date(date_to, 'to') if date_to else None
    if start and end and start > end:
        raise ValidationError("'from' must not be after 'to'", field='from')

    if start:
        clauses.append('al.created_at >= ?')
        params.append(f'{start.isoformat()} 00:00:00')

    if end:
        # End-of-day inclusive: everything before the next midnight
        clauses.append('al.created_at < ?')
        params.append(f'{(end + timedelta(days=1)).isoformat()} 00:00:00')

    return ' AND '.join(clauses), params


def get_audit_logs(
    hotel_id: int = None,
    user_id: int = None,
    action: str = None,
    date_from: str = None,
    date_to: str = None,
    page: int = 1,
    per_page: int = 20
) -> dict:
    """
    Get audit logs with optional filtering, newest first, paginated.

    Args:
        hotel_id: Restrict to one hotel (None for every hotel and global entries)
        user_id: Filter by acting user ID
        action: Case-insensitive substring of the action name
        date_from: Entries on or after this date (YYYY-MM-DD)
        date_to: Entries on or before the end of this date (YYYY-MM-DD)
        page: 1-based page number
        per_page: Entries per page

    Returns:
        Dict with 'data' (list of entries) and 'meta' (pagination)
    """
    where, params = _build_filters(hotel_id, user_id, action, date_from, date_to)

    with get_db() as conn:
        cursor = conn.cursor()

        cursor.execute(f'SELECT COUNT(*) as count FROM audit_log al WHERE {where}', params)
        total = cursor.fetchone()['count']

        cursor.execute(f'''
            SELECT al.*, h.name as hotel_name
            FROM audit_log al
            LEFT JOIN hotels h ON al.hotel_id = h.id
            WHERE {where}
            ORDER BY al.created_at DESC, al.id DESC
            LIMIT ? OFFSET ?
        ''', params + [per_page, (page - 1) * per_page])
        rows = cursor.fetchall()

    return {
        'data': [_row_to_entry(row) for row in rows],
        'meta': paginate_meta(total, page, per_page)
    }


def get_audit_log_by_id(audit_log_id: int, hotel_id: int = None) -> dict:
    """
    Get audit log entry by ID.

    Args:
        audit_log_id: Audit log ID
        hotel_id: When given, the entry must belong to this hotel

    Returns:
        Audit log dict or None if not found
    """
    query = '''
        SELECT al.*, h.name as hotel_name
        FROM audit_log al
        LEFT JOIN hotels h ON al.hotel_id = h.id
        WHERE al.id = ?
    '''
    params = [audit_log_id]
    if hotel_id is not None:
        query += ' AND al.hotel_id = ?'
        params.append(hotel_id)

    with get_db() as conn:
        row = conn.execute(query, params).fetchone()
        return _row_to_entry(row) if row else None


def get_distinct_actions(hotel_id: int = None) -> list:
    """
    Get list of distinct action names, for filter dropdowns.

    Returns:
        List of distinct action strings
    """
    query = 'SELECT DISTINCT action FROM audit_log'
    params = []
    if hotel_id is not None:
        query += ' WHERE hotel_id = ?'
        params.append(hotel_id)
    query += ' ORDER BY action'

    with get_db() as conn:
        return [row['action'] for row in conn.execute(query, params).fetchall()]


def count_audit_logs(hotel_id: int = None, action: str = None) -> int:
    """Count entries, optionally for one hotel and action substring."""
    where, params = _build_filters(hotel_id=hotel_id, action=action)
    with get_db() as conn:
        row = conn.execute(f'SELECT COUNT(*) as count FROM audit_log al WHERE {where}', params).fetchone()
        return row['count'] if row else 0


# =============================================================================
# CREATE OPERATIONS
# =============================================================================

def create_audit_log(
    action: str,
    hotel_id: int = None,
    user_id: int = None,
    user_name: str = None,
    metadata: dict = None,
    created_at: str = None
) -> int:
    """
    Append a new audit log entry.

    Args:
        action: Dotted action name (e.g. 'reservation.confirmed')
        hotel_id: Hotel the action belongs to (None for system-global actions)
        user_id: Acting user ID (None for system actions)
        user_name: Acting user's display name at the time of the action
        metadata: Free-form key/value details
        created_at: Timestamp override (YYYY-MM-DD HH:MM:SS), defaults to now

    Returns:
        New audit log ID

    Example:
        create_audit_log(
            action='reservation.confirmed',
            hotel_id=1,
            user_id=4,
            user_name='Front Desk',
            metadata={'reservation_id': 12, 'room_id': 3, 'user_id': None}
        )
    """
    if not action:
        raise ValidationError('Audit action is required', field='action')

    metadata_json = json.dumps(metadata or {}, default=str, ensure_ascii=False, sort_keys=True)

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            INSERT INTO audit_log (created_at, user_id, user_name, action, hotel_id, metadata)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (created_at or now_timestamp(), user_id, user_name, action, hotel_id, metadata_json))
        return cursor.lastrowid
