"""
Backup exporter.

Queues a backup record, then builds a point-in-time snapshot on a worker
thread and writes it as a zip archive (snapshot.json + snapshot.xlsx).
The job never takes room locks: reservations and rooms stay writable while
a backup runs. Callers observe progress by polling the backup record.
"""

import io
import json
import logging
import os
import threading
import time
import zipfile
from concurrent.futures import ThreadPoolExecutor

from flask import current_app
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from database import get_db
from models.backup import (
    create_backup_record, get_backup, get_backup_archive,
    mark_backup_failed, mark_backup_running, mark_backup_success
)
from models.hotel import get_hotel
from models.setting import get_hotel_settings
from utils.audit import log_audit
from utils.datetime_helpers import get_now, now_timestamp

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

# Columns exported per table; password hashes never leave the database
SNAPSHOT_COLUMNS = {
    'hotels': ('id', 'name', 'city', 'country', 'phone', 'email', 'description',
               'timezone', 'created_at', 'updated_at'),
    'rooms': ('id', 'hotel_id', 'number', 'room_type', 'price', 'capacity', 'is_available',
              'description', 'active', 'created_at', 'updated_at'),
    'reservations': ('id', 'hotel_id', 'room_id', 'user_id', 'guest_name', 'guest_email',
                     'guest_phone', 'check_in', 'check_out', 'guests', 'status',
                     'special_requests', 'created_by', 'created_at', 'updated_at'),
    'users': ('id', 'username', 'email', 'full_name', 'phone', 'role', 'hotel_id', 'active',
              'created_at', 'updated_at', 'last_login'),
}

_futures = {}
_futures_lock = threading.Lock()


# =============================================================================
# EXECUTOR
# =============================================================================

def get_executor(app) -> ThreadPoolExecutor:
    """Get (or lazily create) the app's backup worker pool."""
    with _futures_lock:
        executor = app.extensions.get('backup_executor')
        if executor is None:
            executor = ThreadPoolExecutor(
                max_workers=app.config.get('BACKUP_WORKERS', 2),
                thread_name_prefix='backup'
            )
            app.extensions['backup_executor'] = executor
        return executor


def shutdown_executor(app, wait: bool = True) -> None:
    executor = app.extensions.pop('backup_executor', None)
    if executor is not None:
        executor.shutdown(wait=wait)


def wait_for_backup(backup_id: int, timeout: float = 60, interval: float = 0.05) -> dict:
    """
    Block until a backup job finishes, then return its record.

    Used by the CLI and tests; HTTP callers poll instead.

    Raises:
        TimeoutError: Job still unfinished after timeout seconds
    """
    with _futures_lock:
        future = _futures.get(backup_id)
    if future is not None:
        future.result(timeout=timeout)
        return get_backup(backup_id)

    deadline = time.monotonic() + timeout
    while True:
        backup = get_backup(backup_id)
        if backup['status'] in ('success', 'failed'):
            return backup
        if time.monotonic() > deadline:
            raise TimeoutError(f"Backup {backup_id} still {backup['status']} after {timeout}s")
        time.sleep(interval)


# =============================================================================
# PUBLIC OPERATIONS
# =============================================================================

def create_backup(hotel_id: int = None, actor=None) -> dict:
    """
    Queue a hotel or full-system backup.

    Args:
        hotel_id: Hotel to back up (None for a full-system backup)
        actor: User requesting the backup

    Returns:
        The queued backup record

    Raises:
        NotFound: Hotel does not exist
    """
    if hotel_id is not None:
        get_hotel(hotel_id)

    backup_type = 'hotel' if hotel_id is not None else 'full'
    record = create_backup_record(backup_type, hotel_id, getattr(actor, 'id', None))

    log_audit('backup.created', hotel_id=hotel_id,
              metadata={'backup_id': record['id'], 'type': backup_type}, actor=actor)

    app = current_app._get_current_object()
    executor = get_executor(app)
    with _futures_lock:
        future = executor.submit(run_backup_job, app, record['id'])
        _futures[record['id']] = future
    future.add_done_callback(lambda _f, backup_id=record['id']: _forget(backup_id))

    logger.info('Backup %s queued (%s)', record['id'], backup_type)
    return record


def download_backup(backup_id: int, hotel_id: int = None, actor=None) -> dict:
    """
    Resolve a downloadable backup and record the download.

    Raises:
        NotFound: Missing backup
        BackupUnavailable: Backup has not finished successfully
    """
    backup = get_backup_archive(backup_id, hotel_id)
    log_audit('backup.downloaded', hotel_id=backup['hotel_id'],
              metadata={'backup_id': backup_id, 'type': backup['backup_type']}, actor=actor)
    return backup


def _forget(backup_id: int) -> None:
    with _futures_lock:
        _futures.pop(backup_id, None)


# =============================================================================
# JOB
# =============================================================================

def run_backup_job(app, backup_id: int) -> None:
    """
    Worker entry point: queued -> running -> success | failed.

    Runs in its own application context, so it gets its own database
    connection (closed by the app-context teardown).
    """
    with app.app_context():
        backup = get_backup(backup_id)
        path = None
        try:
            mark_backup_running(backup_id)
            logger.info('Backup %s running', backup_id)

            snapshot = build_snapshot(backup['hotel_id'])
            path = write_archive(snapshot, backup)
            size_bytes = os.path.getsize(path)

            mark_backup_success(backup_id, path, size_bytes)
            logger.info('Backup %s completed: %s (%s bytes)', backup_id, path, size_bytes)
            log_audit('backup.completed', hotel_id=backup['hotel_id'], metadata={
                'backup_id': backup_id,
                'type': backup['backup_type'],
                'size_bytes': size_bytes,
                'requested_by': backup['created_by'],
            })
        except Exception as e:
            logger.error(f'Backup {backup_id} failed: {e}', exc_info=True)
            _discard_archive(path)
            mark_backup_failed(backup_id, str(e))
            log_audit('backup.failed', hotel_id=backup['hotel_id'], metadata={
                'backup_id': backup_id,
                'type': backup['backup_type'],
                'error': str(e),
                'requested_by': backup['created_by'],
            })


def _select(table: str, where: str = '', params: tuple = ()) -> list:
    columns = ', '.join(SNAPSHOT_COLUMNS[table])
    db = get_db()
    rows = db.execute(f'SELECT {columns} FROM {table} {where} ORDER BY id', params).fetchall()
    return [dict(row) for row in rows]


def build_snapshot(hotel_id: int = None) -> dict:
    """
    Collect hotel data at this moment.

    Args:
        hotel_id: One hotel, or None for every hotel plus system accounts

    Returns:
        Dict with one entry per hotel (rooms, reservations, users, settings)
    """
    if hotel_id is not None:
        hotels = _select('hotels', 'WHERE id = ?', (hotel_id,))
    else:
        hotels = _select('hotels')

    snapshot = {
        'version': SNAPSHOT_VERSION,
        'generated_at': now_timestamp(),
        'type': 'hotel' if hotel_id is not None else 'full',
        'hotels': [],
    }

    for hotel in hotels:
        snapshot['hotels'].append({
            **hotel,
            'rooms': _select('rooms', 'WHERE hotel_id = ?', (hotel['id'],)),
            'reservations': _select('reservations', 'WHERE hotel_id = ?', (hotel['id'],)),
            'users': _select('users', 'WHERE hotel_id = ?', (hotel['id'],)),
            'settings': get_hotel_settings(hotel['id']),
        })

    if hotel_id is None:
        snapshot['system_users'] = _select('users', 'WHERE hotel_id IS NULL')

    return snapshot


def _backup_folder() -> str:
    folder = current_app.config.get('BACKUP_FOLDER', 'instance/backups')
    if not os.path.isabs(folder):
        folder = os.path.join(current_app.root_path, folder)
    os.makedirs(folder, exist_ok=True)
    return folder


def build_workbook(snapshot: dict) -> bytes:
    """Render the snapshot as an .xlsx workbook with one sheet per table."""
    wb = Workbook()
    wb.remove(wb.active)

    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="1A3A5C", end_color="1A3A5C", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")

    sheets = {
        'Hotels': ('hotels', [
            {key: hotel[key] for key in SNAPSHOT_COLUMNS['hotels']} for hotel in snapshot['hotels']
        ]),
        'Rooms': ('rooms', [room for hotel in snapshot['hotels'] for room in hotel['rooms']]),
        'Reservations': ('reservations', [
            r for hotel in snapshot['hotels'] for r in hotel['reservations']
        ]),
        'Users': ('users', [u for hotel in snapshot['hotels'] for u in hotel['users']]
                  + snapshot.get('system_users', [])),
    }

    for title, (table, rows) in sheets.items():
        ws = wb.create_sheet(title=title)
        columns = SNAPSHOT_COLUMNS[table]
        ws.append(list(columns))
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
        for row in rows:
            ws.append([row.get(column) for column in columns])
        ws.freeze_panes = 'A2'

    ws = wb.create_sheet(title='Settings')
    ws.append(['hotel_id', 'key', 'value'])
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
    for hotel in snapshot['hotels']:
        for key, value in sorted(hotel['settings'].items()):
            ws.append([hotel['id'], key, value])

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def write_archive(snapshot: dict, backup: dict) -> str:
    """
    Write the snapshot archive to the backup folder.

    Returns:
        Absolute path of the zip file
    """
    scope = f"hotel{backup['hotel_id']}" if backup['hotel_id'] is not None else 'full'
    stamp = get_now().strftime('%Y%m%d_%H%M%S')
    path = os.path.join(_backup_folder(), f"backup_{backup['id']}_{scope}_{stamp}.zip")

    try:
        with zipfile.ZipFile(path, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr('snapshot.json',
                             json.dumps(snapshot, indent=2, ensure_ascii=False, default=str))
            archive.writestr('snapshot.xlsx', build_workbook(snapshot))
    except Exception:
        _discard_archive(path)
        raise

    return os.path.abspath(path)


def _discard_archive(path: str) -> None:
    """Remove an archive that no successful backup record points to."""
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f'Could not remove orphaned backup archive {path}: {e}')
