"""
Tests for hotels (tenants), accounts and per-hotel settings.
"""

import pytest

from models.hotel import create_hotel, delete_hotel, get_hotel, list_hotels, update_hotel
from models.setting import get_hotel_settings, update_hotel_settings
from models.user import create_user, deactivate_user, list_users, update_user
from models.audit_log import count_audit_logs
from utils.errors import HotelInUse, NotFound, PermissionDenied, ValidationError

from conftest import PASSWORD


class TestHotels:

    def test_create_and_update(self, ctx):
        hotel = create_hotel({'name': 'Hotel Norte', 'timezone': 'Europe/Madrid',
                              'email': 'info@norte.test'})
        assert hotel['timezone'] == 'Europe/Madrid'
        assert hotel['rooms_count'] == 0

        updated = update_hotel(hotel['id'], {'city': 'Bilbao', 'unknown': 'ignored'})
        assert updated['city'] == 'Bilbao'
        assert count_audit_logs(hotel['id'], 'hotel.updated') == 1

    def test_default_timezone(self, ctx):
        assert create_hotel({'name': 'Hotel Default'})['timezone'] == 'UTC'

    @pytest.mark.parametrize('data', [
        {'name': ''},
        {'name': 'Bad Zone', 'timezone': 'Mars/Olympus'},
        {'name': 'Bad Mail', 'email': 'not-an-email'},
    ])
    def test_invalid_hotel(self, ctx, data):
        with pytest.raises(ValidationError):
            create_hotel(data)

    def test_delete_blocked_while_in_use(self, ctx, hotel, room):
        with pytest.raises(HotelInUse) as exc:
            delete_hotel(hotel['id'])
        assert exc.value.extra['references']['rooms'] == 1

    def test_delete_empty_hotel(self, ctx, other_hotel):
        update_hotel_settings(other_hotel['id'], {'currency': 'eur'})
        delete_hotel(other_hotel['id'])
        with pytest.raises(NotFound):
            get_hotel(other_hotel['id'])

    def test_search(self, ctx, hotel, other_hotel):
        result = list_hotels(search='Granada')
        assert [h['id'] for h in result['data']] == [other_hotel['id']]


class TestUsers:

    def test_role_requires_hotel(self, ctx):
        with pytest.raises(ValidationError):
            create_user('nohotel', 'nohotel@hotel.test', PASSWORD, 'receptionist')

    def test_super_admin_has_no_hotel(self, ctx, hotel):
        with pytest.raises(ValidationError):
            create_user('boss', 'boss@hotel.test', PASSWORD, 'super_admin', hotel_id=hotel['id'])

    def test_unknown_role(self, ctx, hotel):
        with pytest.raises(ValidationError):
            create_user('odd', 'odd@hotel.test', PASSWORD, 'concierge', hotel_id=hotel['id'])

    def test_duplicate_username(self, ctx, hotel, users):
        with pytest.raises(ValidationError):
            create_user('front_desk', 'other@hotel.test', PASSWORD, 'receptionist',
                        hotel_id=hotel['id'])

    def test_admin_cannot_grant_super_admin(self, ctx, users, actor):
        with pytest.raises(PermissionDenied):
            create_user('sneaky', 'sneaky@hotel.test', PASSWORD, 'super_admin',
                        actor=actor('admin'))

    def test_password_hash_is_never_returned(self, ctx, hotel, users):
        result = list_users(hotel_id=hotel['id'])
        assert result['meta']['total'] == 4
        assert all('password_hash' not in user for user in result['data'])

    def test_update_and_deactivate(self, ctx, hotel, users, actor):
        user_id = users['receptionist']['id']

        updated = update_user(user_id, hotel_id=hotel['id'], role='manager', phone='+34 600 111 222')
        assert updated['role'] == 'manager'

        deactivated = deactivate_user(user_id, hotel_id=hotel['id'], actor=actor('admin'))
        assert deactivated['active'] is False
        assert list_users(hotel_id=hotel['id'], active_only=True)['meta']['total'] == 3

    def test_cannot_deactivate_self(self, ctx, hotel, users, actor):
        admin = actor('admin')
        with pytest.raises(ValidationError):
            deactivate_user(admin.id, hotel_id=hotel['id'], actor=admin)

    def test_user_of_other_hotel_is_not_found(self, ctx, other_hotel, users):
        with pytest.raises(NotFound):
            update_user(users['receptionist']['id'], hotel_id=other_hotel['id'], full_name='X')


class TestSettings:

    def test_defaults(self, ctx, hotel):
        assert get_hotel_settings(hotel['id']) == {
            'currency': 'USD', 'check_in_time': '14:00', 'check_out_time': '11:00'
        }

    def test_update(self, ctx, hotel):
        settings = update_hotel_settings(hotel['id'], {'currency': 'eur', 'check_in_time': '15:30'})
        assert settings['currency'] == 'EUR'
        assert settings['check_in_time'] == '15:30'
        assert count_audit_logs(hotel['id'], 'settings.updated') == 1

    @pytest.mark.parametrize('values', [
        {'currency': 'EURO'},
        {'check_out_time': '25:00'},
        {'wifi_password': 'hunter2'},
        {},
    ])
    def test_invalid_settings(self, ctx, hotel, values):
        with pytest.raises(ValidationError):
            update_hotel_settings(hotel['id'], values)


class TestAdminEndpoints:

    def test_super_admin_manages_hotels(self, login, users):
        client = login('root_admin')

        response = client.post('/api/hotels', json={'name': 'Hotel Sur', 'city': 'Cadiz'})
        assert response.status_code == 201
        hotel_id = response.get_json()['data']['id']

        listing = client.get('/api/hotels?search=Sur').get_json()
        assert listing['meta']['total'] == 1

        assert client.delete(f'/api/hotels/{hotel_id}').status_code == 200

    def test_admin_cannot_create_hotels(self, login, users):
        assert login('hotel_admin').post('/api/hotels', json={'name': 'X'}).status_code == 403

    def test_admin_manages_staff(self, login, hotel, users):
        client = login('hotel_admin')

        response = client.post(f"/api/hotels/{hotel['id']}/users", json={
            'username': 'night_desk', 'email': 'night@hotel.test',
            'password': PASSWORD, 'role': 'receptionist'
        })
        assert response.status_code == 201
        assert response.get_json()['data']['hotel_id'] == hotel['id']

    def test_settings_endpoints(self, login, hotel, users):
        admin = login('hotel_admin')
        response = admin.put(f"/api/hotels/{hotel['id']}/settings", json={'currency': 'GBP'})
        assert response.get_json()['data']['currency'] == 'GBP'

        desk = login('front_desk')
        assert desk.get(f"/api/hotels/{hotel['id']}/settings").status_code == 200
        assert desk.put(f"/api/hotels/{hotel['id']}/settings",
                        json={'currency': 'JPY'}).status_code == 403
