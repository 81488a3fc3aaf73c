"""
Room API endpoints.
CRUD over the rooms of one hotel plus availability lookups.
"""

from flask import request
from flask_login import current_user

from models.reservation_availability import get_available_rooms, get_unavailable_dates
from models.role import Capability
from models.room import create_room, delete_room, get_room, list_rooms, update_room
from utils.api_response import (
    api_paginated, api_success, get_json_body, get_pagination_args
)
from utils.decorators import hotel_scoped, login_required, permission_required
from utils.messages import MESSAGES
from utils.validators import parse_bool, parse_int


def register_routes(bp):
    """Register room routes on the blueprint."""

    @bp.route('/hotels/<int:hotel_id>/rooms', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.ROOMS_VIEW)
    def rooms_list(hotel_id):
        """
        List rooms of a hotel.

        Query params:
            search: Substring of number, type or description
            room_type: Exact room type
            is_available: true/false
            page, per_page: Pagination
        """
        page, per_page = get_pagination_args()
        is_available = request.args.get('is_available')

        result = list_rooms(
            hotel_id,
            search=request.args.get('search') or None,
            room_type=request.args.get('room_type') or None,
            is_available=parse_bool(is_available, 'is_available') if is_available else None,
            page=page,
            per_page=per_page
        )
        return api_paginated(result)

    @bp.route('/hotels/<int:hotel_id>/rooms', methods=['POST'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.ROOMS_MANAGE)
    def rooms_create(hotel_id):
        """
        Create a room.

        Request JSON:
        {
            "room_type": "Double",
            "price": 120.0,
            "capacity": 2,
            "is_available": true,
            "description": "Sea view",
            "number": "101",
            "confirm_large_capacity": false
        }
        """
        data = get_json_body()
        room = create_room(
            hotel_id,
            room_type=data.get('room_type'),
            price=data.get('price'),
            capacity=data.get('capacity'),
            is_available=data.get('is_available', True),
            description=data.get('description', ''),
            number=data.get('number'),
            confirm_large_capacity=parse_bool(data.get('confirm_large_capacity', False),
                                              'confirm_large_capacity'),
            actor=current_user
        )
        return api_success(data=room, message=MESSAGES['room_created'], status=201)

    @bp.route('/hotels/<int:hotel_id>/rooms/available', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.ROOMS_VIEW)
    def rooms_available(hotel_id):
        """
        Rooms free for a stay.

        Query params:
            check_in, check_out: YYYY-MM-DD (check_out exclusive)
            guests: Minimum capacity (optional)
        """
        guests = request.args.get('guests')
        rooms = get_available_rooms(
            hotel_id,
            request.args.get('check_in'),
            request.args.get('check_out'),
            guests=parse_int(guests, 'guests', minimum=1) if guests else None
        )
        return api_success(data=rooms, count=len(rooms))

    @bp.route('/hotels/<int:hotel_id>/rooms/<int:room_id>', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.ROOMS_VIEW)
    def rooms_detail(hotel_id, room_id):
        return api_success(data=get_room(room_id, hotel_id))

    @bp.route('/hotels/<int:hotel_id>/rooms/<int:room_id>', methods=['PATCH', 'PUT'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.ROOMS_MANAGE)
    def rooms_update(hotel_id, room_id):
        """Partially update a room. Unknown fields are rejected."""
        data = dict(get_json_body())
        confirm = parse_bool(data.pop('confirm_large_capacity', False), 'confirm_large_capacity')
        room = update_room(room_id, hotel_id, data, confirm_large_capacity=confirm,
                           actor=current_user)
        return api_success(data=room, message=MESSAGES['room_updated'])

    @bp.route('/hotels/<int:hotel_id>/rooms/<int:room_id>', methods=['DELETE'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.ROOMS_MANAGE)
    def rooms_delete(hotel_id, room_id):
        delete_room(room_id, hotel_id, actor=current_user)
        return api_success(message=MESSAGES['room_deleted'])

    @bp.route('/hotels/<int:hotel_id>/rooms/<int:room_id>/unavailable-dates', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.ROOMS_VIEW)
    def rooms_unavailable_dates(hotel_id, room_id):
        """
        Nights already taken by confirmed or checked-in stays.

        Query params:
            start, end: Window as YYYY-MM-DD (end exclusive)
        """
        get_room(room_id, hotel_id)
        dates = get_unavailable_dates(room_id, request.args.get('start'), request.args.get('end'))
        return api_success(data=dates, room_id=room_id)
