"""
Database seed data.
Initial data population for fresh database installations.
"""

import os
from werkzeug.security import generate_password_hash


DEFAULT_SUPER_ADMIN = {
    'username': 'superadmin',
    'email': 'superadmin@hotelcore.local',
    'full_name': 'System Administrator',
}


def seed_database(db):
    """Insert initial seed data (the super-admin account)."""
    password = os.environ.get('SUPER_ADMIN_PASSWORD') or 'admin12345'

    db.execute('''
        INSERT INTO users (username, email, password_hash, full_name, role, hotel_id)
        VALUES (?, ?, ?, ?, 'super_admin', NULL)
    ''', (
        DEFAULT_SUPER_ADMIN['username'],
        DEFAULT_SUPER_ADMIN['email'],
        generate_password_hash(password),
        DEFAULT_SUPER_ADMIN['full_name'],
    ))
