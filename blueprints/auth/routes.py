"""
Authentication routes: login, logout, current user, CSRF token.
Session-based authentication through Flask-Login, JSON in and out.
"""

from flask import Blueprint
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from blueprints.auth.forms import LoginForm
from models.user import User, get_user_by_username, update_last_login, check_password
from utils.api_response import api_error, api_success
from utils.errors import ValidationError
from utils.messages import MESSAGES
from utils.permissions import cache_user_permissions, get_cached_permissions

auth_bp = Blueprint('auth', __name__)


def _session_payload(user) -> dict:
    payload = user.to_dict()
    payload['capabilities'] = sorted(get_cached_permissions(user.id))
    return payload


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Log in with username and password.

    Request JSON:
    {
        "username": "frontdesk1",
        "password": "********",
        "remember_me": false
    }
    """
    # CSRFProtect already guards this view; the form only validates fields
    form = LoginForm(meta={'csrf': False})

    if not form.validate_on_submit():
        raise ValidationError('Invalid login data', errors=form.errors)

    # Get user by username
    user_dict = get_user_by_username(form.username.data.strip())

    # Check credentials
    if user_dict is None or not check_password(user_dict, form.password.data):
        return api_error(MESSAGES['invalid_credentials'], status=401, error_type='unauthorized')

    # Check if user is active
    if not user_dict.get('active'):
        return api_error(MESSAGES['account_disabled'], status=403, error_type='account_disabled')

    user = User(user_dict)
    login_user(user, remember=form.remember_me.data)
    update_last_login(user.id)
    cache_user_permissions(user.id)

    return api_success(
        data=_session_payload(user),
        message=MESSAGES['login_success'].format(name=user.full_name or user.username)
    )


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Logout current user."""
    logout_user()
    return api_success(message=MESSAGES['logout_success'])


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    """Current user with role and capability codes."""
    return api_success(data=_session_payload(current_user))


@auth_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """CSRF token to send back in the X-CSRFToken header on writes."""
    return api_success(data={'csrf_token': generate_csrf()})
