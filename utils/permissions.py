"""
Permission checking and caching utilities.
Resolves a user's capability codes from their role.
"""

from flask import g

from database import get_db
from models.role import get_capabilities


def load_user_permissions(user_id: int) -> set:
    """
    Load all capability codes for a user based on their role.

    Args:
        user_id: User ID

    Returns:
        Set of capability codes (empty for unknown or inactive users)
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT role, active FROM users WHERE id = ?', (user_id,))
    row = cursor.fetchone()

    if not row or not row['active']:
        return set()

    return {capability.value for capability in get_capabilities(row['role'])}


def has_permission(user, permission_code: str) -> bool:
    """
    Check if user has a specific capability.

    Args:
        user: User object (Flask-Login)
        permission_code: Capability code to check

    Returns:
        True if user has permission
    """
    return permission_code in get_cached_permissions(user.id)


def get_cached_permissions(user_id: int) -> set:
    """Get the request-cached capability set, loading it on first use."""
    if g.get('user_permissions_for') != user_id:
        cache_user_permissions(user_id)
    return g.user_permissions


def cache_user_permissions(user_id: int):
    """
    Cache user permissions in flask g object.

    Args:
        user_id: User ID
    """
    g.user_permissions = load_user_permissions(user_id)
    g.user_permissions_for = user_id
