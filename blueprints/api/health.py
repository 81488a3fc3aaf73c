"""Health check endpoint."""

from flask import current_app, jsonify

from database import get_db


def register_routes(bp):
    """Register the health route on the blueprint."""

    @bp.route('/health')
    def health_check():
        """
        Health check endpoint (no authentication required).

        Returns:
            JSON with status, version and database reachability
        """
        try:
            get_db().execute('SELECT 1')
            database = 'ok'
        except Exception as e:
            current_app.logger.error(f'Health check database error: {e}', exc_info=True)
            database = 'error'

        return jsonify({
            'status': 'ok' if database == 'ok' else 'degraded',
            'database': database,
            'version': current_app.config.get('APP_VERSION', '1.0.0'),
            'app': current_app.config.get('APP_NAME', 'HotelCore')
        }), 200 if database == 'ok' else 503
