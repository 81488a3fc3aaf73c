"""
Backup record data access functions.

A backup record moves queued -> running -> success | failed. Only the
exporter job (blueprints/admin/services/backup_service.py) writes status.
"""

import os

from database import get_db
from utils.api_response import paginate_meta
from utils.datetime_helpers import now_timestamp
from utils.errors import BackupUnavailable, NotFound, ValidationError

BACKUP_TYPES = ('hotel', 'full')
BACKUP_STATUSES = ('queued', 'running', 'success', 'failed')


def _serialize_backup(row) -> dict:
    backup = dict(row)
    backup['type'] = backup['backup_type']
    backup['filename'] = os.path.basename(backup['path']) if backup['path'] else None
    return backup


# =============================================================================
# READ
# =============================================================================

def get_backup(backup_id: int, hotel_id: int = None) -> dict:
    """
    Get backup record by ID.

    Args:
        backup_id: Backup ID
        hotel_id: When given, the backup must target this hotel

    Raises:
        NotFound: Missing backup or backup of another hotel
    """
    query = '''
        SELECT b.*, h.name as hotel_name, u.full_name as created_by_name
        FROM backups b
        LEFT JOIN hotels h ON b.hotel_id = h.id
        LEFT JOIN users u ON b.created_by = u.id
        WHERE b.id = ?
    '''
    params = [backup_id]
    if hotel_id is not None:
        query += ' AND b.hotel_id = ?'
        params.append(hotel_id)

    db = get_db()
    row = db.execute(query, params).fetchone()
    if not row:
        raise NotFound('Backup not found')
    return _serialize_backup(row)


def list_backups(hotel_id: int = None, page: int = 1, per_page: int = 20) -> dict:
    """
    List backup records, newest first.

    Args:
        hotel_id: Only backups of this hotel (None for every backup)
        page: 1-based page number
        per_page: Records per page

    Returns:
        Dict with 'data' and 'meta'
    """
    where = '1=1'
    params = []
    if hotel_id is not None:
        where = 'b.hotel_id = ?'
        params.append(hotel_id)

    db = get_db()
    cursor = db.cursor()

    cursor.execute(f'SELECT COUNT(*) as count FROM backups b WHERE {where}', params)
    total = cursor.fetchone()['count']

    cursor.execute(f'''
        SELECT b.*, h.name as hotel_name, u.full_name as created_by_name
        FROM backups b
        LEFT JOIN hotels h ON b.hotel_id = h.id
        LEFT JOIN users u ON b.created_by = u.id
        WHERE {where}
        ORDER BY b.created_at DESC, b.id DESC
        LIMIT ? OFFSET ?
    ''', params + [per_page, (page - 1) * per_page])

    return {
        'data': [_serialize_backup(row) for row in cursor.fetchall()],
        'meta': paginate_meta(total, page, per_page)
    }


def get_backup_archive(backup_id: int, hotel_id: int = None) -> dict:
    """
    Get a backup that can be downloaded.

    Returns:
        Backup dict with an existing archive path

    Raises:
        NotFound: Missing backup
        BackupUnavailable: Not finished successfully, or archive missing on disk
    """
    backup = get_backup(backup_id, hotel_id)
    if backup['status'] != 'success' or not backup['path']:
        raise BackupUnavailable(
            f"Backup is not available for download (status: {backup['status']})",
            status=backup['status']
        )
    if not os.path.isfile(backup['path']):
        raise BackupUnavailable('Backup archive is missing from storage', status=backup['status'])
    return backup


# =============================================================================
# STATUS WRITES (exporter only)
# =============================================================================

def create_backup_record(backup_type: str, hotel_id: int = None, created_by: int = None) -> dict:
    """
    Insert a queued backup record.

    Raises:
        ValidationError: Unknown type or type/hotel mismatch
    """
    if backup_type not in BACKUP_TYPES:
        raise ValidationError(f"Unknown backup type '{backup_type}'", field='type')
    if (backup_type == 'hotel') != (hotel_id is not None):
        raise ValidationError('Hotel backups need a hotel; full backups must not have one',
                              field='hotel_id')

    db = get_db()
    cursor = db.cursor()
    try:
        cursor.execute('''
            INSERT INTO backups (backup_type, hotel_id, status, created_by, created_at)
            VALUES (?, ?, 'queued', ?, ?)
        ''', (backup_type, hotel_id, created_by, now_timestamp()))
        db.commit()
    except Exception:
        db.rollback()
        raise

    return get_backup(cursor.lastrowid)


def _set_status(backup_id: int, expected: tuple, assignments: dict) -> None:
    placeholders = ', '.join('?' for _ in expected)
    columns = ', '.join(f'{field} = ?' for field in assignments)

    db = get_db()
    try:
        cursor = db.execute(
            f'UPDATE backups SET {columns} WHERE id = ? AND status IN ({placeholders})',
            list(assignments.values()) + [backup_id, *expected]
        )
        if cursor.rowcount != 1:
            raise ValidationError(
                f"Backup {backup_id} is not in status {' or '.join(expected)}", field='status'
            )
        db.commit()
    except Exception:
        db.rollback()
        raise


def mark_backup_running(backup_id: int) -> None:
    _set_status(backup_id, ('queued',), {'status': 'running', 'started_at': now_timestamp()})


def mark_backup_success(backup_id: int, path: str, size_bytes: int) -> None:
    _set_status(backup_id, ('running',), {
        'status': 'success',
        'path': path,
        'size_bytes': size_bytes,
        'finished_at': now_timestamp(),
    })


def mark_backup_failed(backup_id: int, error: str) -> None:
    _set_status(backup_id, ('queued', 'running'), {
        'status': 'failed',
        'error': (error or 'Unknown error')[:1000],
        'finished_at': now_timestamp(),
    })
