"""
Tests for the application factory and CLI commands.
"""

import pytest

from config import ProductionConfig

from conftest import PASSWORD


class TestAppFactory:

    def test_test_config(self, app):
        assert app.config['TESTING'] is True
        assert app.config['APP_NAME'] == 'HotelCore'
        assert 'backup_executor' not in app.extensions

    def test_blueprints_registered(self, app):
        assert {'auth', 'api', 'admin'} <= set(app.blueprints)

    def test_production_requires_secret_key(self, monkeypatch):
        monkeypatch.delenv('SECRET_KEY', raising=False)
        with pytest.raises(ValueError):
            ProductionConfig.validate()

        monkeypatch.setenv('SECRET_KEY', 'x' * 40)
        monkeypatch.setenv('DATABASE_PATH', '/tmp/hotel_core.db')
        ProductionConfig.validate()


class TestCliCommands:

    def test_create_user(self, app):
        from models.user import get_user_by_username

        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'create-user', 'cli_admin', 'cli@hotel.test',
            '--role', 'super_admin', '--password', PASSWORD
        ])

        assert result.exit_code == 0, result.output
        assert 'User created successfully' in result.output
        with app.app_context():
            assert get_user_by_username('cli_admin')['role'] == 'super_admin'

    def test_create_user_rejects_bad_input(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'create-user', 'cli_desk', 'cli-desk@hotel.test',
            '--role', 'receptionist', '--password', PASSWORD
        ])

        assert result.exit_code != 0
        assert 'requires a hotel' in result.output

    def test_backup(self, app, hotel):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['backup', '--hotel-id', str(hotel['id'])])

        assert result.exit_code == 0, result.output
        assert 'Backup written to' in result.output

    def test_init_db(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['init-db', '--no-seed'])

        assert result.exit_code == 0, result.output
        with app.app_context():
            from models.user import get_user_by_username
            assert get_user_by_username('superadmin') is None
