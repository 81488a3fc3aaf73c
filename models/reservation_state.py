"""
Reservation state management functions.
Handles the status lifecycle, guarded transitions and status history.

    pending ──> confirmed ──> checked_in ──> checked_out
       │            │
       └────────────┴──> cancelled

checked_out and cancelled are terminal.
"""

import logging

from flask import current_app

from database import get_db
from models.role import TRANSITION_CAPABILITIES, require_capability
from utils.audit import log_audit
from utils.datetime_helpers import get_today, now_timestamp
from utils.errors import Conflict, InvalidTransition, NotFound, ValidationError
from utils.locks import room_lock
from utils.validators import parse_date
from .reservation_availability import find_conflicts

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

VALID_TRANSITIONS = {
    'pending': frozenset({'confirmed', 'cancelled'}),
    'confirmed': frozenset({'checked_in', 'cancelled'}),
    'checked_in': frozenset({'checked_out'}),
    'checked_out': frozenset(),
    'cancelled': frozenset(),
}

STATUSES = tuple(VALID_TRANSITIONS)

TERMINAL_STATUSES = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)

# Statuses in which a reservation still holds or may hold its room
OPEN_STATUSES = ('pending', 'confirmed', 'checked_in')


# =============================================================================
# STATE QUERIES
# =============================================================================

def parse_status(value) -> str:
    """
    Validate a status name.

    Raises:
        ValidationError: Unknown status
    """
    status = str(value or '').strip().lower()
    if status not in VALID_TRANSITIONS:
        raise ValidationError(
            f"Unknown reservation status '{value}'. Expected one of: {', '.join(STATUSES)}",
            field='status'
        )
    return status


def get_allowed_transitions(status: str) -> list:
    """Get the statuses a reservation in `status` may move to."""
    return sorted(VALID_TRANSITIONS.get(status, ()))


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, ())


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def get_status_history(reservation_id: int, hotel_id: int) -> list:
    """
    Get the status history of a reservation, oldest first.

    Raises:
        NotFound: Missing reservation or reservation of another hotel
    """
    db = get_db()
    cursor = db.cursor()

    cursor.execute('SELECT id FROM reservations WHERE id = ? AND hotel_id = ?',
                   (reservation_id, hotel_id))
    if not cursor.fetchone():
        raise NotFound('Reservation not found')

    cursor.execute('''
        SELECT h.*, u.full_name as changed_by_name, u.username as changed_by_username
        FROM reservation_status_history h
        LEFT JOIN users u ON h.changed_by = u.id
        WHERE h.reservation_id = ?
        ORDER BY h.created_at, h.id
    ''', (reservation_id,))
    return [dict(row) for row in cursor.fetchall()]


def record_status_change(cursor, reservation_id: int, from_status, to_status: str,
                         changed_by: int = None, notes: str = '') -> None:
    """Insert a history row inside the caller's transaction."""
    cursor.execute('''
        INSERT INTO reservation_status_history
        (reservation_id, from_status, to_status, changed_by, notes, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (reservation_id, from_status, to_status, changed_by, notes or None, now_timestamp()))


def conflict_error(conflicts: list) -> Conflict:
    """Build the Conflict raised when active reservations overlap a stay."""
    ids = ', '.join(f"#{c['id']}" for c in conflicts)
    return Conflict(
        f'Room is already booked for these dates by reservation(s) {ids}',
        conflicts=[
            {key: c[key] for key in ('id', 'check_in', 'check_out', 'status')}
            for c in conflicts
        ]
    )


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def _check_in_window(cursor, reservation: dict) -> None:
    """Check-in is only allowed on a night of the stay, in hotel-local time."""
    if not current_app.config.get('ENFORCE_CHECK_IN_WINDOW', True):
        return

    cursor.execute('SELECT timezone FROM hotels WHERE id = ?', (reservation['hotel_id'],))
    row = cursor.fetchone()
    today = get_today(row['timezone'] if row else None)

    check_in = parse_date(reservation['check_in'], 'check_in')
    check_out = parse_date(reservation['check_out'], 'check_out')
    if not (check_in <= today < check_out):
        raise ValidationError(
            f'Check-in is only possible between {check_in.isoformat()} and the night '
            f'before {check_out.isoformat()} (today is {today.isoformat()})',
            field='status'
        )


def transition_reservation(reservation_id: int, hotel_id: int, target_status: str,
                           actor=None, notes: str = '') -> dict:
    """
    Move a reservation to a new status.

    Behavior:
    1. Validates the edge against VALID_TRANSITIONS
    2. pending -> confirmed: rejects overlaps with other active reservations
    3. confirmed -> checked_in: today must be a night of the stay
    4. Updates status and updated_at, records history
    5. Writes one audit entry reservation.<new_status>

    The overlap read and the status write run under the room lock inside one
    BEGIN IMMEDIATE transaction.

    Args:
        reservation_id: Reservation ID
        hotel_id: Hotel the reservation must belong to
        target_status: Requested status
        actor: User performing the change (capability checked when given)
        notes: Optional history note

    Returns:
        Updated reservation dict

    Raises:
        ValidationError: Unknown status or check-in outside the stay
        PermissionDenied: Actor's role lacks the transition capability
        NotFound: Missing reservation or reservation of another hotel
        InvalidTransition: Edge not in the lifecycle
        Conflict: Confirming would overlap an active reservation
    """
    from .reservation_queries import get_reservation

    target = parse_status(target_status)
    if actor is not None and target in TRANSITION_CAPABILITIES:
        require_capability(actor.role, TRANSITION_CAPABILITIES[target])

    db = get_db()
    cursor = db.cursor()

    cursor.execute('SELECT room_id FROM reservations WHERE id = ? AND hotel_id = ?',
                   (reservation_id, hotel_id))
    row = cursor.fetchone()
    if not row:
        raise NotFound('Reservation not found')

    with room_lock(row['room_id']):
        cursor.execute('BEGIN IMMEDIATE')
        try:
            cursor.execute('SELECT * FROM reservations WHERE id = ? AND hotel_id = ?',
                           (reservation_id, hotel_id))
            reservation = dict(cursor.fetchone())
            current = reservation['status']

            if not can_transition(current, target):
                raise InvalidTransition(current, target, VALID_TRANSITIONS[current])

            if target == 'confirmed':
                conflicts = find_conflicts(
                    reservation['room_id'], reservation['check_in'], reservation['check_out'],
                    exclude_reservation_id=reservation_id, cursor=cursor
                )
                if conflicts:
                    logger.warning('Confirmation of reservation %s rejected: overlaps %s',
                                   reservation_id, [c['id'] for c in conflicts])
                    raise conflict_error(conflicts)

            if target == 'checked_in':
                _check_in_window(cursor, reservation)

            cursor.execute('''
                UPDATE reservations SET status = ?, updated_at = ?
                WHERE id = ?
            ''', (target, now_timestamp(), reservation_id))

            record_status_change(cursor, reservation_id, current, target,
                                 getattr(actor, 'id', None), notes)
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.info('Reservation %s: %s -> %s', reservation_id, current, target)
    log_audit(f'reservation.{target}', hotel_id=hotel_id, metadata={
        'reservation_id': reservation_id,
        'room_id': reservation['room_id'],
        'user_id': reservation['user_id'],
        'from_status': current,
    }, actor=actor)

    return get_reservation(reservation_id, hotel_id)


def confirm_reservation(reservation_id: int, hotel_id: int, actor=None, notes: str = '') -> dict:
    return transition_reservation(reservation_id, hotel_id, 'confirmed', actor, notes)


def cancel_reservation(reservation_id: int, hotel_id: int, actor=None, notes: str = '') -> dict:
    return transition_reservation(reservation_id, hotel_id, 'cancelled', actor, notes)


def check_in_reservation(reservation_id: int, hotel_id: int, actor=None, notes: str = '') -> dict:
    return transition_reservation(reservation_id, hotel_id, 'checked_in', actor, notes)


def check_out_reservation(reservation_id: int, hotel_id: int, actor=None, notes: str = '') -> dict:
    return transition_reservation(reservation_id, hotel_id, 'checked_out', actor, notes)
