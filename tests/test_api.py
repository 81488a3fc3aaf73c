"""
Tests for the JSON API: envelopes, authentication, capabilities and tenant scoping.
"""

import pytest


def _url(hotel_id, path=''):
    return f'/api/hotels/{hotel_id}{path}'


class TestAuth:

    def test_login_returns_capabilities(self, client, users):
        response = client.post('/api/auth/login', json={
            'username': 'front_desk', 'password': 'secret-pass-123'
        })

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['role'] == 'receptionist'
        assert 'reservations.confirm' in data['capabilities']
        assert 'rooms.manage' not in data['capabilities']

        me = client.get('/api/auth/me').get_json()['data']
        assert me['username'] == 'front_desk'

    def test_bad_credentials(self, client, users):
        response = client.post('/api/auth/login', json={
            'username': 'front_desk', 'password': 'wrong-password'
        })
        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_missing_fields(self, client):
        response = client.post('/api/auth/login', json={'username': ''})
        body = response.get_json()
        assert response.status_code == 400
        assert body['error_type'] == 'validation_error'
        assert 'password' in body['errors']

    def test_deactivated_account(self, app, client, users):
        from models.user import deactivate_user

        with app.app_context():
            deactivate_user(users['receptionist']['id'])

        response = client.post('/api/auth/login', json={
            'username': 'front_desk', 'password': 'secret-pass-123'
        })
        assert response.status_code == 403

    def test_anonymous_request(self, client, hotel):
        response = client.get(_url(hotel['id'], '/rooms'))
        assert response.status_code == 401
        assert response.get_json()['error_type'] == 'unauthorized'

    def test_logout(self, login, hotel, users):
        client = login('front_desk')
        assert client.post('/api/auth/logout').status_code == 200
        assert client.get(_url(hotel['id'], '/rooms')).status_code == 401


class TestScopingAndCapabilities:

    def test_other_hotel_answers_not_found(self, login, other_hotel, users):
        client = login('hotel_admin')
        response = client.get(_url(other_hotel['id'], '/rooms'))
        assert response.status_code == 404
        assert response.get_json()['error_type'] == 'not_found'

    def test_missing_hotel_answers_the_same(self, login, users):
        client = login('hotel_admin')
        assert client.get(_url(9999, '/rooms')).status_code == 404

    def test_super_admin_sees_every_hotel(self, login, other_hotel, users):
        client = login('root_admin')
        assert client.get(_url(other_hotel['id'], '/rooms')).status_code == 200

    def test_receptionist_cannot_manage_rooms(self, login, hotel, users):
        client = login('front_desk')
        response = client.post(_url(hotel['id'], '/rooms'), json={
            'room_type': 'Double', 'price': 100, 'capacity': 2
        })
        body = response.get_json()
        assert response.status_code == 403
        assert body['error_type'] == 'permission_denied'
        assert body['capability'] == 'rooms.manage'

    def test_client_cannot_use_staff_routes(self, login, hotel, users):
        client = login('guest_user')
        assert client.get(_url(hotel['id'], '/reservations')).status_code == 403

    def test_receptionist_cannot_import_status(self, login, hotel, room, users):
        client = login('front_desk')
        response = client.post(_url(hotel['id'], '/reservations'), json={
            'room_id': room['id'], 'check_in': '2025-01-10', 'check_out': '2025-01-12',
            'guest_name': 'Imported', 'status': 'confirmed'
        })
        assert response.status_code == 403

    def test_unknown_route_is_json(self, client):
        response = client.get('/api/does-not-exist')
        assert response.status_code == 404
        assert response.get_json()['success'] is False


class TestReservationEndpoints:

    def _create(self, client, hotel_id, room_id, check_in, check_out, **extra):
        payload = {'room_id': room_id, 'check_in': check_in, 'check_out': check_out,
                   'guest_name': 'API Guest'}
        payload.update(extra)
        return client.post(_url(hotel_id, '/reservations'), json=payload)

    def test_create_and_confirm(self, login, hotel, room, users):
        client = login('front_desk')

        response = self._create(client, hotel['id'], room['id'], '2025-01-10', '2025-01-13',
                                guests=3)
        body = response.get_json()
        assert response.status_code == 201
        assert body['data']['status'] == 'pending'
        assert body['warnings'] and 'capacity' in body['warning']

        reservation_id = body['data']['id']
        response = client.post(_url(hotel['id'], f'/reservations/{reservation_id}/confirm'))
        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'confirmed'

    def test_double_booking_conflict(self, login, hotel, room, users):
        client = login('front_desk')
        a = self._create(client, hotel['id'], room['id'], '2025-01-10', '2025-01-13').get_json()
        b = self._create(client, hotel['id'], room['id'], '2025-01-12', '2025-01-15').get_json()
        client.post(_url(hotel['id'], f"/reservations/{a['data']['id']}/confirm"))

        response = client.post(_url(hotel['id'], f"/reservations/{b['data']['id']}/transition"),
                               json={'status': 'confirmed'})

        body = response.get_json()
        assert response.status_code == 409
        assert body['error_type'] == 'conflict'
        assert body['conflicts'][0]['id'] == a['data']['id']

    def test_invalid_transition(self, login, hotel, room, users):
        client = login('front_desk')
        created = self._create(client, hotel['id'], room['id'], '2025-01-10', '2025-01-13')
        reservation_id = created.get_json()['data']['id']

        response = client.post(_url(hotel['id'], f'/reservations/{reservation_id}/transition'),
                               json={'status': 'checked_in'})

        body = response.get_json()
        assert response.status_code == 409
        assert body['error_type'] == 'invalid_transition'
        assert body['current_status'] == 'pending'

    def test_bad_dates(self, login, hotel, room, users):
        client = login('front_desk')
        response = self._create(client, hotel['id'], room['id'], '2025-01-13', '2025-01-10')
        assert response.status_code == 400
        assert response.get_json()['field'] == 'check_out'

    def test_list_is_paginated(self, login, hotel, room, users):
        client = login('front_desk')
        for day in (10, 12, 14):
            self._create(client, hotel['id'], room['id'], f'2025-01-{day}', f'2025-01-{day + 1}')

        body = client.get(_url(hotel['id'], '/reservations?per_page=2&page=2')).get_json()
        assert body['meta'] == {'current_page': 2, 'per_page': 2, 'total': 3, 'last_page': 2}
        assert [r['check_in'] for r in body['data']] == ['2025-01-10']

        body = client.get(_url(hotel['id'], '/reservations?per_page=2&page=5')).get_json()
        assert body['data'] == []

    def test_invalid_pagination(self, login, hotel, users):
        client = login('front_desk')
        assert client.get(_url(hotel['id'], '/reservations?page=0')).status_code == 400

    def test_history(self, login, hotel, room, users):
        client = login('front_desk')
        created = self._create(client, hotel['id'], room['id'], '2025-01-10', '2025-01-13')
        reservation_id = created.get_json()['data']['id']
        client.post(_url(hotel['id'], f'/reservations/{reservation_id}/cancel'),
                    json={'notes': 'Guest called'})

        history = client.get(_url(hotel['id'], f'/reservations/{reservation_id}/history'))
        steps = history.get_json()['data']
        assert [s['to_status'] for s in steps] == ['pending', 'cancelled']
        assert steps[-1]['notes'] == 'Guest called'

    def test_delete_requires_manager(self, login, hotel, room, users):
        desk = login('front_desk')
        created = self._create(desk, hotel['id'], room['id'], '2025-01-10', '2025-01-13')
        reservation_id = created.get_json()['data']['id']

        assert desk.delete(_url(hotel['id'], f'/reservations/{reservation_id}')).status_code == 403

        manager = login('hotel_manager')
        assert manager.delete(_url(hotel['id'], f'/reservations/{reservation_id}')).status_code == 200
        assert manager.get(_url(hotel['id'], f'/reservations/{reservation_id}')).status_code == 404


class TestRoomEndpoints:

    def test_room_crud(self, login, hotel, users):
        client = login('hotel_manager')

        response = client.post(_url(hotel['id'], '/rooms'), json={
            'room_type': 'Family', 'price': 180, 'capacity': 4, 'number': '301'
        })
        assert response.status_code == 201
        room_id = response.get_json()['data']['id']

        response = client.patch(_url(hotel['id'], f'/rooms/{room_id}'), json={'price': 175})
        assert response.get_json()['data']['price'] == 175.0

        assert client.delete(_url(hotel['id'], f'/rooms/{room_id}')).status_code == 200
        assert client.get(_url(hotel['id'], f'/rooms/{room_id}')).status_code == 404

    def test_large_capacity_round_trip(self, login, hotel, users):
        client = login('hotel_manager')
        payload = {'room_type': 'Hall', 'price': 0, 'capacity': 300}

        response = client.post(_url(hotel['id'], '/rooms'), json=payload)
        assert response.status_code == 400
        assert response.get_json()['requires_confirmation'] is True

        payload['confirm_large_capacity'] = True
        assert client.post(_url(hotel['id'], '/rooms'), json=payload).status_code == 201

    def test_room_in_use(self, login, hotel, room, users):
        client = login('hotel_manager')
        client.post(_url(hotel['id'], '/reservations'), json={
            'room_id': room['id'], 'check_in': '2025-01-10', 'check_out': '2025-01-12',
            'guest_name': 'Guest'
        })

        response = client.delete(_url(hotel['id'], f"/rooms/{room['id']}"))
        assert response.status_code == 409
        assert response.get_json()['error_type'] == 'room_in_use'

    def test_available_and_unavailable_dates(self, login, hotel, room, second_room, users):
        client = login('front_desk')
        created = client.post(_url(hotel['id'], '/reservations'), json={
            'room_id': room['id'], 'check_in': '2025-01-10', 'check_out': '2025-01-12',
            'guest_name': 'Guest'
        }).get_json()
        client.post(_url(hotel['id'], f"/reservations/{created['data']['id']}/confirm"))

        body = client.get(_url(hotel['id'],
                               '/rooms/available?check_in=2025-01-11&check_out=2025-01-13')).get_json()
        assert [r['id'] for r in body['data']] == [second_room['id']]
        assert body['count'] == 1

        body = client.get(_url(hotel['id'], f"/rooms/{room['id']}/unavailable-dates"
                                            '?start=2025-01-01&end=2025-02-01')).get_json()
        assert body['data'] == ['2025-01-10', '2025-01-11']


class TestAuditEndpoints:

    def test_manager_reads_hotel_audit(self, login, hotel, room, users):
        client = login('hotel_manager')
        body = client.get(_url(hotel['id'], '/audit-logs?action=room.')).get_json()

        assert body['meta']['total'] == 1
        assert body['data'][0]['action'] == 'room.created'
        assert body['data'][0]['timestamp']

    def test_receptionist_has_no_audit_access(self, login, hotel, users):
        client = login('front_desk')
        assert client.get(_url(hotel['id'], '/audit-logs')).status_code == 403

    def test_system_audit_is_super_admin_only(self, login, hotel, users):
        assert login('hotel_admin').get('/api/audit-logs').status_code == 403
        assert login('root_admin').get('/api/audit-logs').status_code == 200


class TestBackupEndpoints:

    def test_backup_and_download(self, app, login, hotel, room, users):
        from blueprints.admin.services.backup_service import wait_for_backup

        client = login('root_admin')
        response = client.post(f"/api/backups/hotel/{hotel['id']}")
        assert response.status_code == 202
        backup_id = response.get_json()['data']['id']

        with app.app_context():
            assert wait_for_backup(backup_id, timeout=30)['status'] == 'success'

        detail = client.get(f'/api/backups/{backup_id}').get_json()['data']
        assert detail['status'] == 'success'

        download = client.get(f'/api/backups/{backup_id}/download')
        assert download.status_code == 200
        assert download.mimetype == 'application/zip'
        assert download.data[:2] == b'PK'

    def test_download_before_success(self, app, login, hotel, users):
        from models.backup import create_backup_record

        with app.app_context():
            record = create_backup_record('hotel', hotel['id'])

        response = login('root_admin').get(f"/api/backups/{record['id']}/download")
        assert response.status_code == 409
        assert response.get_json()['error_type'] == 'backup_unavailable'

    @pytest.mark.parametrize('username', ['hotel_admin', 'front_desk'])
    def test_backups_need_capability(self, login, hotel, users, username):
        assert login(username).post('/api/backups/full').status_code == 403


class TestHealth:

    def test_health(self, client):
        body = client.get('/api/health').get_json()
        assert body['status'] == 'ok'
        assert body['database'] == 'ok'
