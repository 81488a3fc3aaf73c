"""
Admin routes for system-level management.
Provides hotel (tenant) CRUD and the backup exporter endpoints.
"""

from flask import Blueprint, request, send_file
from flask_login import current_user

from blueprints.admin.services.backup_service import create_backup, download_backup
from models.backup import get_backup, list_backups
from models.hotel import create_hotel, delete_hotel, get_hotel, list_hotels, update_hotel
from models.role import Capability
from utils.api_response import api_paginated, api_success, get_json_body, get_pagination_args
from utils.decorators import hotel_scoped, login_required, permission_required
from utils.messages import MESSAGES

admin_bp = Blueprint('admin', __name__)


# =============================================================================
# HOTELS
# =============================================================================

@admin_bp.route('/hotels', methods=['GET'])
@login_required
@permission_required(Capability.HOTELS_MANAGE)
def hotels_list():
    """
    List hotels (super-admin).

    Query params:
        search: Name, city or country substring
        page, per_page: Pagination
    """
    page, per_page = get_pagination_args()
    return api_paginated(list_hotels(request.args.get('search') or None, page, per_page))


@admin_bp.route('/hotels', methods=['POST'])
@login_required
@permission_required(Capability.HOTELS_MANAGE)
def hotels_create():
    """
    Create a hotel.

    Request JSON:
    {
        "name": "Hotel Mar Azul",
        "city": "Valencia",
        "country": "Spain",
        "phone": "+34 960 000 000",
        "email": "info@marazul.test",
        "timezone": "Europe/Madrid"
    }
    """
    hotel = create_hotel(get_json_body(), actor=current_user)
    return api_success(data=hotel, message=MESSAGES['hotel_created'], status=201)


@admin_bp.route('/hotels/<int:hotel_id>', methods=['GET'])
@login_required
@hotel_scoped
@permission_required(Capability.HOTELS_VIEW)
def hotels_detail(hotel_id):
    return api_success(data=get_hotel(hotel_id))


@admin_bp.route('/hotels/<int:hotel_id>', methods=['PUT', 'PATCH'])
@login_required
@permission_required(Capability.HOTELS_MANAGE)
def hotels_update(hotel_id):
    hotel = update_hotel(hotel_id, get_json_body(), actor=current_user)
    return api_success(data=hotel, message=MESSAGES['hotel_updated'])


@admin_bp.route('/hotels/<int:hotel_id>', methods=['DELETE'])
@login_required
@permission_required(Capability.HOTELS_MANAGE)
def hotels_delete(hotel_id):
    delete_hotel(hotel_id, actor=current_user)
    return api_success(message=MESSAGES['hotel_deleted'])


# =============================================================================
# BACKUPS
# =============================================================================

@admin_bp.route('/backups/hotel/<int:hotel_id>', methods=['POST'])
@login_required
@permission_required(Capability.BACKUPS_MANAGE)
def backups_create_hotel(hotel_id):
    """Queue a backup of one hotel. Poll GET /backups/<id> for progress."""
    backup = create_backup(hotel_id, actor=current_user)
    return api_success(data=backup, message=MESSAGES['backup_queued'], status=202)


@admin_bp.route('/backups/full', methods=['POST'])
@login_required
@permission_required(Capability.BACKUPS_MANAGE)
def backups_create_full():
    """Queue a full-system backup."""
    backup = create_backup(None, actor=current_user)
    return api_success(data=backup, message=MESSAGES['backup_queued'], status=202)


@admin_bp.route('/backups', methods=['GET'])
@login_required
@permission_required(Capability.BACKUPS_MANAGE)
def backups_list():
    """
    List backups, newest first.

    Query params:
        hotel_id: Only backups of this hotel
        page, per_page: Pagination
    """
    page, per_page = get_pagination_args()
    result = list_backups(request.args.get('hotel_id', type=int), page, per_page)
    return api_paginated(result)


@admin_bp.route('/backups/<int:backup_id>', methods=['GET'])
@login_required
@permission_required(Capability.BACKUPS_MANAGE)
def backups_detail(backup_id):
    return api_success(data=get_backup(backup_id))


@admin_bp.route('/backups/<int:backup_id>/download', methods=['GET'])
@login_required
@permission_required(Capability.BACKUPS_MANAGE)
def backups_download(backup_id):
    """Download the archive of a successful backup (409 otherwise)."""
    backup = download_backup(backup_id, actor=current_user)
    return send_file(
        backup['path'],
        mimetype='application/zip',
        as_attachment=True,
        download_name=backup['filename']
    )
