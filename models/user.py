"""
User model and data access functions.
Handles user authentication, CRUD operations, and Flask-Login integration.
"""

import logging
import sqlite3

from werkzeug.security import generate_password_hash, check_password_hash

from database import get_db
from models.role import Role, Capability, parse_role, has_capability as role_has_capability
from utils.api_response import paginate_meta
from utils.audit import log_audit
from utils.datetime_helpers import now_timestamp
from utils.errors import NotFound, PermissionDenied, ValidationError
from utils.validators import (
    require_text, validate_email, validate_password, validate_phone, parse_bool, sanitize_input
)

logger = logging.getLogger(__name__)

# Roles that must belong to a hotel
HOTEL_BOUND_ROLES = (Role.ADMIN, Role.MANAGER, Role.RECEPTIONIST)


class User:
    """
    User class for Flask-Login integration.
    Wraps database row dictionary with required Flask-Login properties.
    """

    def __init__(self, user_dict):
        """
        Initialize User from database row.

        Args:
            user_dict: Dictionary with user data from database
        """
        self.id = user_dict['id']
        self.username = user_dict['username']
        self.email = user_dict['email']
        self.full_name = user_dict.get('full_name')
        self.phone = user_dict.get('phone')
        self.role = parse_role(user_dict['role'])
        self.hotel_id = user_dict.get('hotel_id')
        self.active = user_dict['active']
        self.created_at = user_dict.get('created_at')
        self.last_login = user_dict.get('last_login')

    @property
    def is_authenticated(self):
        """Required by Flask-Login."""
        return True

    @property
    def is_active(self):
        """Required by Flask-Login."""
        return self.active == 1

    @property
    def is_anonymous(self):
        """Required by Flask-Login."""
        return False

    def get_id(self):
        """Required by Flask-Login. Returns user ID as unicode string."""
        return str(self.id)

    def has_capability(self, capability: Capability) -> bool:
        return role_has_capability(self.role, capability)

    def can_access_hotel(self, hotel_id: int) -> bool:
        """Super-admins see every hotel; everyone else only their own."""
        if self.role.is_system_wide:
            return True
        return self.hotel_id is not None and self.hotel_id == hotel_id

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'full_name': self.full_name,
            'phone': self.phone,
            'role': self.role.value,
            'hotel_id': self.hotel_id,
            'active': bool(self.active),
            'last_login': self.last_login,
        }


def serialize_user(user_dict: dict) -> dict:
    """Strip the password hash from a user row before returning it."""
    if user_dict is None:
        return None
    public = {k: v for k, v in user_dict.items() if k != 'password_hash'}
    public['active'] = bool(public.get('active'))
    return public


# =============================================================================
# READ
# =============================================================================

def get_user_by_id(user_id: int) -> dict:
    """
    Get user by ID.

    Args:
        user_id: User ID

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE id = ?', (user_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_user_by_username(username: str) -> dict:
    """
    Get user by username.

    Args:
        username: Username to search for

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE username = ?', (username,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_user_by_email(email: str) -> dict:
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE email = ?', (email,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_hotel_user(user_id: int, hotel_id: int) -> dict:
    """
    Get a user that belongs to the given hotel.

    Raises:
        NotFound: Missing user or user of another hotel
    """
    user = get_user_by_id(user_id)
    if not user or user['hotel_id'] != hotel_id:
        raise NotFound('User not found')
    return user


def list_users(
    hotel_id: int = None,
    role: str = None,
    active_only: bool = False,
    page: int = 1,
    per_page: int = 20
) -> dict:
    """
    List users, newest first.

    Args:
        hotel_id: Restrict to one hotel (None for all)
        role: Restrict to one role
        active_only: Skip deactivated accounts
        page: 1-based page number
        per_page: Users per page

    Returns:
        Dict with 'data' and 'meta'
    """
    db = get_db()
    cursor = db.cursor()

    where = ['1=1']
    params = []
    if hotel_id is not None:
        where.append('hotel_id = ?')
        params.append(hotel_id)
    if role:
        where.append('role = ?')
        params.append(parse_role(role).value)
    if active_only:
        where.append('active = 1')
    where_sql = ' AND '.join(where)

    cursor.execute(f'SELECT COUNT(*) as count FROM users WHERE {where_sql}', params)
    total = cursor.fetchone()['count']

    cursor.execute(f'''
        SELECT * FROM users
        WHERE {where_sql}
        ORDER BY created_at DESC, id DESC
        LIMIT ? OFFSET ?
    ''', params + [per_page, (page - 1) * per_page])

    return {
        'data': [serialize_user(dict(row)) for row in cursor.fetchall()],
        'meta': paginate_meta(total, page, per_page)
    }


# =============================================================================
# VALIDATION
# =============================================================================

def _check_role_scope(role: Role, hotel_id, actor=None) -> None:
    """Enforce the role/hotel pairing and forbid granting super-admin from below."""
    if role in HOTEL_BOUND_ROLES and hotel_id is None:
        raise ValidationError(f"Role '{role.value}' requires a hotel", field='hotel_id')
    if role is Role.SUPER_ADMIN and hotel_id is not None:
        raise ValidationError('Super-admin accounts are not bound to a hotel', field='hotel_id')
    if actor is not None and role is Role.SUPER_ADMIN and not actor.role.is_system_wide:
        raise PermissionDenied('Only a super-admin can grant the super_admin role')

    if hotel_id is not None:
        db = get_db()
        row = db.execute('SELECT id FROM hotels WHERE id = ?', (hotel_id,)).fetchone()
        if not row:
            raise NotFound('Hotel not found')


def _check_email(email: str) -> str:
    email = sanitize_input(email, 255).lower()
    if not validate_email(email):
        raise ValidationError('A valid email is required', field='email')
    return email


def _check_phone(phone) -> str:
    phone = sanitize_input(phone, 30)
    if phone and not validate_phone(phone):
        raise ValidationError('Phone number is not valid', field='phone')
    return phone or None


def _check_new_password(password: str) -> str:
    ok, message = validate_password(password)
    if not ok:
        raise ValidationError(message, field='password')
    return password


# =============================================================================
# CREATE / UPDATE
# =============================================================================

def create_user(
    username: str,
    email: str,
    password: str,
    role: str,
    hotel_id: int = None,
    full_name: str = None,
    phone: str = None,
    actor=None
) -> dict:
    """
    Create new user with hashed password.

    Args:
        username: Unique username
        email: Unique email
        password: Plain text password (will be hashed)
        role: Role name
        hotel_id: Hotel the account belongs to (None for super-admin)
        full_name: User's full name
        phone: Contact phone
        actor: User performing the action (for the audit entry)

    Returns:
        Created user dict (without password hash)

    Raises:
        ValidationError: Invalid input or duplicate username/email
    """
    username = require_text(username, 'username', 80)
    email = _check_email(email)
    _check_new_password(password)
    role = parse_role(role)
    _check_role_scope(role, hotel_id, actor)
    phone = _check_phone(phone)
    full_name = sanitize_input(full_name, 120) or None

    db = get_db()
    cursor = db.cursor()
    now = now_timestamp()

    try:
        cursor.execute('''
            INSERT INTO users (username, email, password_hash, full_name, phone, role,
                               hotel_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (username, email, generate_password_hash(password), full_name, phone,
              role.value, hotel_id, now, now))
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        raise ValidationError('Username or email already exists', field='username')
    except Exception:
        db.rollback()
        raise

    user_id = cursor.lastrowid
    logger.info('User %s created with role %s', username, role.value)
    log_audit('user.created', hotel_id=hotel_id,
              metadata={'user_id': user_id, 'username': username, 'role': role.value},
              actor=actor)

    return serialize_user(get_user_by_id(user_id))


def update_user(user_id: int, hotel_id: int = None, actor=None, **kwargs) -> dict:
    """
    Update user fields.

    Args:
        user_id: User ID to update
        hotel_id: When given, the user must belong to this hotel
        actor: User performing the action
        **kwargs: Fields to update (email, full_name, phone, role, active, password)

    Returns:
        Updated user dict

    Raises:
        NotFound: Missing user or user of another hotel
        ValidationError: Invalid field value
    """
    user = get_hotel_user(user_id, hotel_id) if hotel_id is not None else get_user_by_id(user_id)
    if not user:
        raise NotFound('User not found')

    updates = {}
    if 'email' in kwargs:
        updates['email'] = _check_email(kwargs['email'])
    if 'full_name' in kwargs:
        updates['full_name'] = sanitize_input(kwargs['full_name'], 120) or None
    if 'phone' in kwargs:
        updates['phone'] = _check_phone(kwargs['phone'])
    if 'role' in kwargs:
        role = parse_role(kwargs['role'])
        _check_role_scope(role, user['hotel_id'], actor)
        updates['role'] = role.value
    if 'active' in kwargs:
        updates['active'] = 1 if parse_bool(kwargs['active'], 'active') else 0
    if 'password' in kwargs:
        updates['password_hash'] = generate_password_hash(_check_new_password(kwargs['password']))

    if not updates:
        raise ValidationError('No fields to update')

    updates['updated_at'] = now_timestamp()
    assignments = ', '.join(f'{field} = ?' for field in updates)

    db = get_db()
    try:
        db.execute(f'UPDATE users SET {assignments} WHERE id = ?', list(updates.values()) + [user_id])
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        raise ValidationError('Email already exists', field='email')
    except Exception:
        db.rollback()
        raise

    changed = sorted(field if field != 'password_hash' else 'password'
                     for field in updates if field != 'updated_at')
    log_audit('user.updated', hotel_id=user['hotel_id'],
              metadata={'user_id': user_id, 'fields': changed}, actor=actor)

    return serialize_user(get_user_by_id(user_id))


def deactivate_user(user_id: int, hotel_id: int = None, actor=None) -> dict:
    """
    Soft delete user (set active = 0).

    Accounts are never removed: reservations and audit entries keep
    pointing at them.

    Raises:
        NotFound: Missing user or user of another hotel
        ValidationError: Deactivating your own account
    """
    user = get_hotel_user(user_id, hotel_id) if hotel_id is not None else get_user_by_id(user_id)
    if not user:
        raise NotFound('User not found')
    if actor is not None and actor.id == user_id:
        raise ValidationError('You cannot deactivate your own account')

    db = get_db()
    try:
        db.execute('''
            UPDATE users SET active = 0, updated_at = ?
            WHERE id = ?
        ''', (now_timestamp(), user_id))
        db.commit()
    except Exception:
        db.rollback()
        raise

    log_audit('user.deactivated', hotel_id=user['hotel_id'],
              metadata={'user_id': user_id, 'username': user['username']}, actor=actor)

    return serialize_user(get_user_by_id(user_id))


def update_last_login(user_id: int) -> None:
    """
    Update last login timestamp.

    Args:
        user_id: User ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('UPDATE users SET last_login = ? WHERE id = ?', (now_timestamp(), user_id))
    db.commit()


def check_password(user_dict: dict, password: str) -> bool:
    """
    Verify password against stored hash.

    Args:
        user_dict: User dictionary with password_hash
        password: Plain text password to check

    Returns:
        True if password matches
    """
    if not password:
        return False
    return check_password_hash(user_dict['password_hash'], password)
