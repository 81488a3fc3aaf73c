"""
HotelCore - Hotel Reservation Management
Flask application factory and initialization
"""

import os
import click
import logging
from flask import Flask, g
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import extensions
from extensions import login_manager, csrf

# Import database functions
from database import close_db, init_db

from utils.errors import ReservationError


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Create Flask app
    app = Flask(__name__)

    # Load configuration
    config_class = config.get(config_name, config['default'])
    if hasattr(config_class, 'validate') and config_name == 'production':
        config_class.validate()
    app.config.from_object(config_class)

    # Initialize extensions
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Register request hooks
    register_request_hooks(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    return app


def initialize_extensions(app):
    """Initialize Flask extensions."""
    # Initialize Flask-Login
    login_manager.init_app(app)
    # Initialize CSRF Protection
    csrf.init_app(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    # Import blueprints
    from blueprints.auth.routes import auth_bp
    from blueprints.admin.routes import admin_bp
    from blueprints.api import api_bp

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(admin_bp, url_prefix='/api')
    app.register_blueprint(api_bp, url_prefix='/api')


def register_error_handlers(app):
    """Register JSON error handlers."""
    from flask_wtf.csrf import CSRFError
    from utils.api_response import api_error

    @app.errorhandler(ReservationError)
    def reservation_error(error):
        """Domain errors: rejected operation, state unchanged."""
        payload = error.to_dict()
        message = payload.pop('error')
        return api_error(message, status=error.status_code, **payload)

    @app.errorhandler(CSRFError)
    def csrf_error(error):
        return api_error(error.description, status=400, error_type='csrf_error')

    @app.errorhandler(HTTPException)
    def http_error(error):
        """Handle 403/404/405 and other HTTP errors."""
        return api_error(error.description or error.name, status=error.code,
                         error_type=error.name.lower().replace(' ', '_'))

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        # Rollback database on error
        db = g.get('db')
        if db:
            db.rollback()
        app.logger.error(f'Unhandled error: {error}', exc_info=True)
        return api_error('Internal server error', status=500, error_type='internal_error')


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    @click.option('--no-seed', is_flag=True, help='Skip the default super-admin account.')
    def init_db_command(no_seed):
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db(seed=not no_seed)
        click.echo('Database initialized successfully!')

    @app.cli.command('create-user')
    @click.argument('username')
    @click.argument('email')
    @click.option('--role', default='admin', show_default=True,
                  type=click.Choice(['super_admin', 'admin', 'manager', 'receptionist', 'client']))
    @click.option('--hotel-id', type=int, default=None, help='Hotel the account belongs to.')
    @click.option('--full-name', default=None)
    @click.password_option()
    def create_user_command(username, email, role, hotel_id, full_name, password):
        """Create a new user."""
        from models.user import create_user

        with app.app_context():
            try:
                user = create_user(
                    username=username,
                    email=email,
                    password=password,
                    role=role,
                    hotel_id=hotel_id,
                    full_name=full_name
                )
                click.echo(f"User created successfully! ID: {user['id']}")
            except ReservationError as e:
                raise click.ClickException(e.message)

    @app.cli.command('backup')
    @click.option('--hotel-id', type=int, default=None,
                  help='Back up one hotel (default: full system).')
    @click.option('--timeout', type=float, default=300, show_default=True)
    def backup_command(hotel_id, timeout):
        """Run a backup and wait for it to finish."""
        from blueprints.admin.services.backup_service import create_backup, wait_for_backup

        with app.app_context():
            try:
                record = create_backup(hotel_id)
            except ReservationError as e:
                raise click.ClickException(e.message)

            click.echo(f"Backup {record['id']} queued...")
            result = wait_for_backup(record['id'], timeout=timeout)

            if result['status'] != 'success':
                raise click.ClickException(f"Backup {record['id']} failed: {result['error']}")
            click.echo(f"Backup written to {result['path']} ({result['size_bytes']} bytes)")


def register_request_hooks(app):
    """Register per-request hooks."""

    @app.after_request
    def flag_audit_failures(response):
        """Expose audit write failures of this request to the caller."""
        failures = g.get('audit_failures')
        if failures:
            response.headers['X-Audit-Failures'] = str(failures)
        return response


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/hotel_core.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)

        # Module loggers (models, services) propagate to the root logger
        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('HotelCore startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    # host='0.0.0.0' allows access from other devices on the network
    app.run(host='0.0.0.0', debug=True)
