"""Hotel settings endpoints."""

from flask_login import current_user

from models.role import Capability
from models.setting import get_hotel_settings, update_hotel_settings
from utils.api_response import api_success, get_json_body
from utils.decorators import hotel_scoped, login_required, permission_required
from utils.messages import MESSAGES


def register_routes(bp):
    """Register settings routes on the blueprint."""

    @bp.route('/hotels/<int:hotel_id>/settings', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.SETTINGS_VIEW)
    def settings_get(hotel_id):
        return api_success(data=get_hotel_settings(hotel_id))

    @bp.route('/hotels/<int:hotel_id>/settings', methods=['PUT', 'PATCH'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.SETTINGS_MANAGE)
    def settings_update(hotel_id):
        """
        Update known settings.

        Request JSON:
        {
            "currency": "EUR",
            "check_in_time": "15:00",
            "check_out_time": "11:00"
        }
        """
        settings = update_hotel_settings(hotel_id, get_json_body(), actor=current_user)
        return api_success(data=settings, message=MESSAGES['settings_updated'])
