"""
Domain error taxonomy.

Every rejected operation raises one of these. They subclass ValueError so
callers that only care about "the input was refused" can keep catching
ValueError, while the API error handler maps each kind to its HTTP status
and a stable ``error_type`` string.
"""


class ReservationError(ValueError):
    """Base class for recoverable, caller-facing domain errors."""

    error_type = 'error'
    status_code = 400

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        """Serialize as the error envelope payload."""
        payload = {'error': self.message, 'error_type': self.error_type}
        payload.update(self.extra)
        return payload


class ValidationError(ReservationError):
    """Malformed or out-of-range input."""

    error_type = 'validation_error'
    status_code = 400


class NotFound(ReservationError):
    """Entity missing or outside the caller's hotel."""

    error_type = 'not_found'
    status_code = 404


class Conflict(ReservationError):
    """An active reservation already occupies the room for those nights."""

    error_type = 'conflict'
    status_code = 409


class InvalidTransition(ReservationError):
    """Requested status change is not an edge of the lifecycle."""

    error_type = 'invalid_transition'
    status_code = 409

    def __init__(self, current_status: str, requested_status: str, allowed=()):
        allowed = sorted(allowed)
        allowed_text = ', '.join(allowed) if allowed else 'none'
        message = (
            f"Cannot change reservation status from '{current_status}' to "
            f"'{requested_status}'. Allowed transitions: {allowed_text}"
        )
        super().__init__(
            message,
            current_status=current_status,
            requested_status=requested_status,
            allowed=allowed
        )
        self.current_status = current_status
        self.requested_status = requested_status


class RoomInUse(ReservationError):
    """Room still referenced by open reservations."""

    error_type = 'room_in_use'
    status_code = 409


class HotelInUse(ReservationError):
    """Hotel still owns rooms, reservations or users."""

    error_type = 'hotel_in_use'
    status_code = 409


class BackupUnavailable(ReservationError):
    """Backup archive requested before it finished successfully."""

    error_type = 'backup_unavailable'
    status_code = 409


class PermissionDenied(ReservationError):
    """Caller's role lacks the capability for this operation."""

    error_type = 'permission_denied'
    status_code = 403


__all__ = [
    'ReservationError',
    'ValidationError',
    'NotFound',
    'Conflict',
    'InvalidTransition',
    'RoomInUse',
    'HotelInUse',
    'BackupUnavailable',
    'PermissionDenied',
]
