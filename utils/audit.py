"""
Audit logging utility functions.
Records who did what, in which hotel, after the primary operation commits.
"""

import logging

from flask import g, has_request_context
from flask_login import current_user

# Configure logger for audit operations
logger = logging.getLogger(__name__)


def _resolve_actor(actor) -> tuple:
    """Get (user_id, display name) for an explicit actor or the logged-in user."""
    if actor is None:
        if hasattr(current_user, 'is_authenticated') and current_user.is_authenticated:
            actor = current_user
        else:
            return None, 'system'

    user_id = getattr(actor, 'id', None)
    name = getattr(actor, 'full_name', None) or getattr(actor, 'username', None)
    return user_id, name or 'system'


def log_audit(action: str, hotel_id: int = None, metadata: dict = None, actor=None) -> int:
    """
    Log an audit entry.

    The entry is written after the primary operation has committed. A failure
    here never reverts that operation: it is logged at ERROR level and, inside
    a request, counted on ``g.audit_failures`` so the response can flag it.

    Args:
        action: Dotted action name (reservation.confirmed, room.created, ...)
        hotel_id: Hotel the action belongs to (None for system-global actions)
        metadata: Structured details of the action
        actor: User performing the action (defaults to current_user)

    Returns:
        New audit log ID, or None if logging failed

    Example:
        log_audit(
            'reservation.confirmed',
            hotel_id=1,
            metadata={'reservation_id': 12, 'room_id': 3, 'user_id': None,
                      'from_status': 'pending'}
        )
    """
    try:
        from models.audit_log import create_audit_log

        user_id, user_name = _resolve_actor(actor)

        return create_audit_log(
            action=action,
            hotel_id=hotel_id,
            user_id=user_id,
            user_name=user_name,
            metadata=metadata
        )

    except Exception as e:
        logger.error(f"Failed to log audit entry '{action}': {e}", exc_info=True)
        if has_request_context():
            g.audit_failures = g.get('audit_failures', 0) + 1
        return None


__all__ = ['log_audit']
