"""
Centralized API messages.
All user-facing success text in one place for consistency.
"""

MESSAGES = {
    # Auth
    'login_success': 'Welcome {name}',
    'logout_success': 'Signed out',
    'invalid_credentials': 'Invalid username or password',
    'account_disabled': 'This account has been deactivated',

    # Hotels
    'hotel_created': 'Hotel created',
    'hotel_updated': 'Hotel updated',
    'hotel_deleted': 'Hotel deleted',

    # Rooms
    'room_created': 'Room created',
    'room_updated': 'Room updated',
    'room_deleted': 'Room deleted',

    # Reservations
    'reservation_created': 'Reservation created',
    'reservation_updated': 'Reservation updated',
    'reservation_deleted': 'Reservation deleted',
    'reservation_confirmed': 'Reservation confirmed',
    'reservation_checked_in': 'Guest checked in',
    'reservation_checked_out': 'Guest checked out',
    'reservation_cancelled': 'Reservation cancelled',

    # Users
    'user_created': 'User created',
    'user_updated': 'User updated',
    'user_deactivated': 'User deactivated',

    # Settings
    'settings_updated': 'Settings updated',

    # Backups
    'backup_queued': 'Backup queued',

    # Warnings
    'guests_exceed_capacity': 'Guest count ({guests}) exceeds room capacity ({capacity})',
    'room_flagged_unavailable': 'Room is flagged as unavailable by the operator',
    'room_has_active_booking': 'Room already has a confirmed booking overlapping these dates',
}
