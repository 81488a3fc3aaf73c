"""
Route decorators for authentication and authorization.
Provides capability-based access control and hotel scoping for routes.
"""

from functools import wraps

from flask_login import login_required, current_user

from models.role import Capability
from utils.errors import NotFound, PermissionDenied


def permission_required(capability: Capability):
    """
    Decorator to require a capability for a route.

    Usage:
        @bp.route('/hotels/<int:hotel_id>/rooms', methods=['POST'])
        @login_required
        @hotel_scoped
        @permission_required(Capability.ROOMS_MANAGE)
        def create_room(hotel_id):
            ...

    Args:
        capability: Capability the current user's role must grant

    Returns:
        Decorator function
    """
    code = Capability(capability).value

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            from utils.permissions import has_permission

            if not has_permission(current_user, code):
                raise PermissionDenied(
                    'You do not have permission to perform this action',
                    capability=code
                )
            return func(*args, **kwargs)
        return wrapper
    return decorator


def hotel_scoped(func):
    """
    Decorator that restricts a route to the caller's own hotel.

    The route must take a ``hotel_id`` argument. Missing hotels and hotels
    of another tenant both answer 404, so existence is never leaked.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        from models.hotel import hotel_exists

        hotel_id = kwargs.get('hotel_id')
        if not current_user.can_access_hotel(hotel_id) or not hotel_exists(hotel_id):
            raise NotFound('Hotel not found')
        return func(*args, **kwargs)
    return wrapper


# Re-export login_required for convenience
__all__ = ['login_required', 'permission_required', 'hotel_scoped']
