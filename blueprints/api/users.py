"""
Hotel staff and guest account endpoints.
"""

from flask import request
from flask_login import current_user

from models.role import Capability
from models.user import create_user, deactivate_user, get_hotel_user, list_users, serialize_user, update_user
from utils.api_response import api_paginated, api_success, get_json_body, get_pagination_args
from utils.decorators import hotel_scoped, login_required, permission_required
from utils.messages import MESSAGES
from utils.validators import parse_bool

USER_UPDATE_FIELDS = ('email', 'full_name', 'phone', 'role', 'active', 'password')


def register_routes(bp):
    """Register user routes on the blueprint."""

    @bp.route('/hotels/<int:hotel_id>/users', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.USERS_VIEW)
    def users_list(hotel_id):
        """
        List accounts of a hotel.

        Query params:
            role: Restrict to one role
            active: true to hide deactivated accounts
            page, per_page: Pagination
        """
        page, per_page = get_pagination_args()
        active = request.args.get('active')
        result = list_users(
            hotel_id=hotel_id,
            role=request.args.get('role') or None,
            active_only=parse_bool(active, 'active') if active else False,
            page=page,
            per_page=per_page
        )
        return api_paginated(result)

    @bp.route('/hotels/<int:hotel_id>/users', methods=['POST'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.USERS_MANAGE)
    def users_create(hotel_id):
        """
        Create an account in the hotel.

        Request JSON:
        {
            "username": "frontdesk1",
            "email": "frontdesk1@hotel.test",
            "password": "********",
            "role": "receptionist",
            "full_name": "Front Desk",
            "phone": "+34 600 000 000"
        }
        """
        data = get_json_body()
        user = create_user(
            username=data.get('username'),
            email=data.get('email'),
            password=data.get('password'),
            role=data.get('role'),
            hotel_id=hotel_id,
            full_name=data.get('full_name'),
            phone=data.get('phone'),
            actor=current_user
        )
        return api_success(data=user, message=MESSAGES['user_created'], status=201)

    @bp.route('/hotels/<int:hotel_id>/users/<int:user_id>', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.USERS_VIEW)
    def users_detail(hotel_id, user_id):
        return api_success(data=serialize_user(get_hotel_user(user_id, hotel_id)))

    @bp.route('/hotels/<int:hotel_id>/users/<int:user_id>', methods=['PATCH', 'PUT'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.USERS_MANAGE)
    def users_update(hotel_id, user_id):
        data = get_json_body()
        fields = {key: value for key, value in data.items() if key in USER_UPDATE_FIELDS}
        user = update_user(user_id, hotel_id=hotel_id, actor=current_user, **fields)
        return api_success(data=user, message=MESSAGES['user_updated'])

    @bp.route('/hotels/<int:hotel_id>/users/<int:user_id>', methods=['DELETE'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.USERS_MANAGE)
    def users_deactivate(hotel_id, user_id):
        user = deactivate_user(user_id, hotel_id=hotel_id, actor=current_user)
        return api_success(data=user, message=MESSAGES['user_deactivated'])
