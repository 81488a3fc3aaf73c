"""
Tests for the backup exporter: job lifecycle, archive contents and download guard.
"""

import io
import json
import os
import zipfile

import pytest
from openpyxl import load_workbook

from blueprints.admin.services import backup_service
from blueprints.admin.services.backup_service import create_backup, download_backup, wait_for_backup
from models.audit_log import count_audit_logs
from models.backup import (
    create_backup_record, get_backup, get_backup_archive, list_backups,
    mark_backup_failed, mark_backup_running
)
from models.reservation_crud import create_reservation
from utils.errors import BackupUnavailable, NotFound, ValidationError


class TestBackupJob:

    def test_hotel_backup_succeeds(self, ctx, hotel, room, users):
        create_reservation(hotel['id'], room['id'], '2025-01-10', '2025-01-12', guest_name='Guest')

        record = create_backup(hotel['id'])
        assert record['status'] == 'queued'
        assert record['type'] == 'hotel'

        backup = wait_for_backup(record['id'], timeout=30)
        assert backup['status'] == 'success'
        assert backup['size_bytes'] == os.path.getsize(backup['path'])
        assert backup['started_at'] and backup['finished_at']

        with zipfile.ZipFile(backup['path']) as archive:
            snapshot = json.loads(archive.read('snapshot.json'))
            workbook = load_workbook(io.BytesIO(archive.read('snapshot.xlsx')))

        assert snapshot['type'] == 'hotel'
        [exported] = snapshot['hotels']
        assert exported['id'] == hotel['id']
        assert len(exported['rooms']) == 1
        assert len(exported['reservations']) == 1
        assert exported['settings']['currency'] == 'USD'
        assert all('password_hash' not in user for user in exported['users'])
        assert 'system_users' not in snapshot

        assert workbook.sheetnames == ['Hotels', 'Rooms', 'Reservations', 'Users', 'Settings']
        assert workbook['Rooms'].max_row == 2

        assert count_audit_logs(hotel['id'], 'backup.created') == 1
        assert count_audit_logs(hotel['id'], 'backup.completed') == 1

    def test_full_backup_includes_every_hotel(self, ctx, hotel, other_hotel, users):
        backup = wait_for_backup(create_backup()['id'], timeout=30)

        assert backup['status'] == 'success'
        assert backup['hotel_id'] is None
        with zipfile.ZipFile(backup['path']) as archive:
            snapshot = json.loads(archive.read('snapshot.json'))
        assert {h['id'] for h in snapshot['hotels']} == {hotel['id'], other_hotel['id']}
        assert {u['username'] for u in snapshot['system_users']} >= {'superadmin', 'root_admin'}

    def test_failed_job_is_recorded(self, ctx, hotel, monkeypatch):
        def broken(snapshot, backup):
            raise OSError('backup volume not mounted')

        monkeypatch.setattr(backup_service, 'write_archive', broken)

        backup = wait_for_backup(create_backup(hotel['id'])['id'], timeout=30)

        assert backup['status'] == 'failed'
        assert 'not mounted' in backup['error']
        assert count_audit_logs(hotel['id'], 'backup.failed') == 1

    @pytest.mark.parametrize('step', ['build_workbook', 'mark_backup_success'])
    def test_failed_job_leaves_no_archive(self, ctx, hotel, monkeypatch, step):
        def broken(*args, **kwargs):
            raise RuntimeError(f'{step} exploded')

        monkeypatch.setattr(backup_service, step, broken)

        backup = wait_for_backup(create_backup(hotel['id'])['id'], timeout=30)

        assert backup['status'] == 'failed'
        assert backup['path'] is None
        folder = ctx.config['BACKUP_FOLDER']
        leftovers = os.listdir(folder) if os.path.isdir(folder) else []
        assert leftovers == []

    def test_unknown_hotel(self, ctx):
        with pytest.raises(NotFound):
            create_backup(999)


class TestBackupRecords:

    def test_download_requires_success(self, ctx, hotel):
        record = create_backup_record('hotel', hotel['id'])

        with pytest.raises(BackupUnavailable) as exc:
            get_backup_archive(record['id'])
        assert exc.value.extra['status'] == 'queued'

        mark_backup_running(record['id'])
        with pytest.raises(BackupUnavailable):
            download_backup(record['id'])

        mark_backup_failed(record['id'], 'boom')
        with pytest.raises(BackupUnavailable):
            download_backup(record['id'])

    def test_status_moves_forward_only(self, ctx, hotel):
        record = create_backup_record('hotel', hotel['id'])
        mark_backup_failed(record['id'], 'boom')

        with pytest.raises(ValidationError):
            mark_backup_running(record['id'])
        assert get_backup(record['id'])['status'] == 'failed'

    def test_type_must_match_scope(self, ctx, hotel):
        with pytest.raises(ValidationError):
            create_backup_record('full', hotel['id'])
        with pytest.raises(ValidationError):
            create_backup_record('hotel', None)

    def test_list_is_newest_first(self, ctx, hotel):
        first = create_backup_record('hotel', hotel['id'])
        second = create_backup_record('full')

        result = list_backups()
        assert [b['id'] for b in result['data']] == [second['id'], first['id']]
        assert list_backups(hotel_id=hotel['id'])['meta']['total'] == 1
