"""
Hotel API routes package.
Split into smaller modules by entity for maintainability.
"""

from flask import Blueprint

# Create the API blueprint
api_bp = Blueprint('api', __name__)

# Import and register routes from submodules
from blueprints.api import health
from blueprints.api import rooms
from blueprints.api import reservations
from blueprints.api import audit_logs
from blueprints.api import users
from blueprints.api import settings

# Register all route functions on the blueprint
health.register_routes(api_bp)
rooms.register_routes(api_bp)
reservations.register_routes(api_bp)
audit_logs.register_routes(api_bp)
users.register_routes(api_bp)
settings.register_routes(api_bp)
