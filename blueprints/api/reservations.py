"""
Reservation API endpoints.
Create, list, edit and delete reservations, and drive their status lifecycle.
"""

from flask import request
from flask_login import current_user

from models.reservation_crud import create_reservation, delete_reservation, update_reservation
from models.reservation_queries import get_reservation, list_reservations
from models.reservation_state import (
    get_status_history, transition_reservation, confirm_reservation, cancel_reservation,
    check_in_reservation, check_out_reservation
)
from models.role import Capability
from utils.api_response import api_paginated, api_success, get_json_body, get_pagination_args
from utils.decorators import hotel_scoped, login_required, permission_required
from utils.errors import ValidationError
from utils.messages import MESSAGES


def _success_with_warnings(reservation: dict, warnings: list, message: str, status: int = 200):
    return api_success(
        data=reservation,
        message=message,
        warning='; '.join(warnings) if warnings else None,
        warnings=warnings,
        status=status
    )


def _notes() -> str:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data.get('notes') or ''
    return ''


def register_routes(bp):
    """Register reservation routes on the blueprint."""

    @bp.route('/hotels/<int:hotel_id>/reservations', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_VIEW)
    def reservations_list(hotel_id):
        """
        List reservations of a hotel.

        Query params:
            search: Guest name/email or room number
            status: pending|confirmed|checked_in|checked_out|cancelled
            room_id, user_id: Exact filters
            date_from, date_to: Stay window (YYYY-MM-DD)
            page, per_page: Pagination
        """
        page, per_page = get_pagination_args()
        result = list_reservations(
            hotel_id,
            search=request.args.get('search') or None,
            status=request.args.get('status') or None,
            room_id=request.args.get('room_id', type=int),
            user_id=request.args.get('user_id', type=int),
            date_from=request.args.get('date_from') or None,
            date_to=request.args.get('date_to') or None,
            page=page,
            per_page=per_page
        )
        return api_paginated(result)

    @bp.route('/hotels/<int:hotel_id>/reservations', methods=['POST'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_CREATE)
    def reservations_create(hotel_id):
        """
        Create a reservation (pending unless an import status is given).

        Request JSON:
        {
            "room_id": 3,
            "check_in": "2025-01-10",
            "check_out": "2025-01-13",
            "guests": 2,
            "user_id": null,
            "guest_name": "Walk-in Guest",
            "guest_email": "guest@example.com",
            "guest_phone": "+34 600 000 000",
            "special_requests": "Late arrival",
            "status": "confirmed"          (optional, reservations.import only)
        }
        """
        data = get_json_body()
        reservation, warnings = create_reservation(
            hotel_id,
            room_id=data.get('room_id'),
            check_in=data.get('check_in'),
            check_out=data.get('check_out'),
            guests=data.get('guests', 1),
            user_id=data.get('user_id'),
            guest_name=data.get('guest_name'),
            guest_email=data.get('guest_email'),
            guest_phone=data.get('guest_phone'),
            special_requests=data.get('special_requests'),
            status=data.get('status'),
            actor=current_user
        )
        return _success_with_warnings(reservation, warnings, MESSAGES['reservation_created'], 201)

    @bp.route('/hotels/<int:hotel_id>/reservations/<int:reservation_id>', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_VIEW)
    def reservations_detail(hotel_id, reservation_id):
        return api_success(data=get_reservation(reservation_id, hotel_id))

    @bp.route('/hotels/<int:hotel_id>/reservations/<int:reservation_id>', methods=['PATCH', 'PUT'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_EDIT)
    def reservations_update(hotel_id, reservation_id):
        """Partially update a reservation. Status changes go through /transition."""
        reservation, warnings = update_reservation(
            reservation_id, hotel_id, get_json_body(), actor=current_user
        )
        return _success_with_warnings(reservation, warnings, MESSAGES['reservation_updated'])

    @bp.route('/hotels/<int:hotel_id>/reservations/<int:reservation_id>', methods=['DELETE'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_DELETE)
    def reservations_delete(hotel_id, reservation_id):
        delete_reservation(reservation_id, hotel_id, actor=current_user)
        return api_success(message=MESSAGES['reservation_deleted'])

    @bp.route('/hotels/<int:hotel_id>/reservations/<int:reservation_id>/transition',
              methods=['POST'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_VIEW)
    def reservations_transition(hotel_id, reservation_id):
        """
        Move a reservation to a new status.

        The capability for the requested target status is checked by the
        lifecycle itself.

        Request JSON:
        {
            "status": "confirmed",
            "notes": "Deposit received"
        }
        """
        data = get_json_body()
        if not data.get('status'):
            raise ValidationError('status is required', field='status')

        reservation = transition_reservation(
            reservation_id, hotel_id, data['status'],
            actor=current_user, notes=data.get('notes') or ''
        )
        return api_success(data=reservation,
                           message=MESSAGES[f"reservation_{reservation['status']}"])

    @bp.route('/hotels/<int:hotel_id>/reservations/<int:reservation_id>/confirm',
              methods=['POST'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_CONFIRM)
    def reservations_confirm(hotel_id, reservation_id):
        reservation = confirm_reservation(reservation_id, hotel_id, current_user, _notes())
        return api_success(data=reservation, message=MESSAGES['reservation_confirmed'])

    @bp.route('/hotels/<int:hotel_id>/reservations/<int:reservation_id>/cancel',
              methods=['POST'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_CANCEL)
    def reservations_cancel(hotel_id, reservation_id):
        reservation = cancel_reservation(reservation_id, hotel_id, current_user, _notes())
        return api_success(data=reservation, message=MESSAGES['reservation_cancelled'])

    @bp.route('/hotels/<int:hotel_id>/reservations/<int:reservation_id>/check-in',
              methods=['POST'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_CHECK_IN)
    def reservations_check_in(hotel_id, reservation_id):
        reservation = check_in_reservation(reservation_id, hotel_id, current_user, _notes())
        return api_success(data=reservation, message=MESSAGES['reservation_checked_in'])

    @bp.route('/hotels/<int:hotel_id>/reservations/<int:reservation_id>/check-out',
              methods=['POST'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_CHECK_OUT)
    def reservations_check_out(hotel_id, reservation_id):
        reservation = check_out_reservation(reservation_id, hotel_id, current_user, _notes())
        return api_success(data=reservation, message=MESSAGES['reservation_checked_out'])

    @bp.route('/hotels/<int:hotel_id>/reservations/<int:reservation_id>/history',
              methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.RESERVATIONS_VIEW)
    def reservations_history(hotel_id, reservation_id):
        return api_success(data=get_status_history(reservation_id, hotel_id))
