"""
Pytest configuration and fixtures.
Each test gets a fresh file-backed database and its own backup folder.
"""

import os
import pytest
from datetime import date, timedelta

# Tests must never touch the development database
os.environ['FLASK_ENV'] = 'test'

PASSWORD = 'secret-pass-123'


@pytest.fixture
def app(tmp_path):
    """Create test application with an isolated database."""
    from app import create_app
    from blueprints.admin.services.backup_service import shutdown_executor
    from database import init_db

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    app.config['DATABASE_PATH'] = str(tmp_path / 'hotel_core_test.db')
    app.config['BACKUP_FOLDER'] = str(tmp_path / 'backups')
    app.config['ENFORCE_CHECK_IN_WINDOW'] = False

    with app.app_context():
        init_db()

    yield app

    shutdown_executor(app)


@pytest.fixture
def ctx(app):
    """Application context for model-level tests."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def hotel(app):
    """A hotel with default settings."""
    from models.hotel import create_hotel

    with app.app_context():
        return create_hotel({'name': 'Hotel Mar Azul', 'city': 'Valencia', 'timezone': 'UTC'})


@pytest.fixture
def other_hotel(app):
    from models.hotel import create_hotel

    with app.app_context():
        return create_hotel({'name': 'Hotel Sierra', 'city': 'Granada', 'timezone': 'UTC'})


@pytest.fixture
def room(app, hotel):
    """A double room (capacity 2) in the hotel."""
    from models.room import create_room

    with app.app_context():
        return create_room(hotel['id'], room_type='Double', price=120, capacity=2, number='101')


@pytest.fixture
def second_room(app, hotel):
    from models.room import create_room

    with app.app_context():
        return create_room(hotel['id'], room_type='Suite', price=250, capacity=4, number='201')


def make_user(app, username, role, hotel_id=None):
    """Create an account directly through the model and return its dict."""
    from models.user import create_user

    with app.app_context():
        return create_user(
            username=username,
            email=f'{username}@hotel.test',
            password=PASSWORD,
            role=role,
            hotel_id=hotel_id,
            full_name=username.replace('_', ' ').title()
        )


@pytest.fixture
def users(app, hotel):
    """One account per role, bound to the hotel where the role requires it."""
    return {
        'super_admin': make_user(app, 'root_admin', 'super_admin'),
        'admin': make_user(app, 'hotel_admin', 'admin', hotel['id']),
        'manager': make_user(app, 'hotel_manager', 'manager', hotel['id']),
        'receptionist': make_user(app, 'front_desk', 'receptionist', hotel['id']),
        'client': make_user(app, 'guest_user', 'client', hotel['id']),
    }


@pytest.fixture
def actor(app, users):
    """Factory returning a User object for a role, for model-level calls."""
    from models.user import User, get_user_by_id

    def _actor(role):
        with app.app_context():
            return User(get_user_by_id(users[role]['id']))
    return _actor


@pytest.fixture
def login(app):
    """Factory returning a test client logged in as the given username."""
    def _login(username, password=PASSWORD):
        client = app.test_client()
        response = client.post('/api/auth/login', json={
            'username': username,
            'password': password
        })
        assert response.status_code == 200, response.get_json()
        return client
    return _login


def stay(start_offset, nights=1):
    """(check_in, check_out) ISO strings relative to today."""
    start = date.today() + timedelta(days=start_offset)
    return start.isoformat(), (start + timedelta(days=nights)).isoformat()
