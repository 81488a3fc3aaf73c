"""
Audit log API endpoints.
Read-only, filtered and paginated access to the audit trail.
"""

from flask import request

from models.audit_log import get_audit_log_by_id, get_audit_logs, get_distinct_actions
from models.role import Capability
from utils.api_response import api_paginated, api_success, get_pagination_args
from utils.decorators import hotel_scoped, login_required, permission_required
from utils.errors import NotFound


def _filters() -> dict:
    """Read the audit filters from the query string (from/to as YYYY-MM-DD)."""
    return {
        'user_id': request.args.get('user_id', type=int),
        'action': request.args.get('action') or None,
        'date_from': request.args.get('from') or request.args.get('date_from') or None,
        'date_to': request.args.get('to') or request.args.get('date_to') or None,
    }


def register_routes(bp):
    """Register audit log routes on the blueprint."""

    @bp.route('/hotels/<int:hotel_id>/audit-logs', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.AUDIT_VIEW)
    def hotel_audit_logs(hotel_id):
        """
        Audit entries of one hotel, newest first.

        Query params:
            user_id: Acting user
            action: Case-insensitive substring (e.g. "reservation.")
            from, to: Date range, YYYY-MM-DD, both inclusive
            page, per_page: Pagination
        """
        page, per_page = get_pagination_args()
        result = get_audit_logs(hotel_id=hotel_id, page=page, per_page=per_page, **_filters())
        return api_paginated(result)

    @bp.route('/hotels/<int:hotel_id>/audit-logs/actions', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.AUDIT_VIEW)
    def hotel_audit_actions(hotel_id):
        return api_success(data=get_distinct_actions(hotel_id))

    @bp.route('/hotels/<int:hotel_id>/audit-logs/<int:audit_log_id>', methods=['GET'])
    @login_required
    @hotel_scoped
    @permission_required(Capability.AUDIT_VIEW)
    def hotel_audit_log_detail(hotel_id, audit_log_id):
        entry = get_audit_log_by_id(audit_log_id, hotel_id)
        if not entry:
            raise NotFound('Audit log entry not found')
        return api_success(data=entry)

    @bp.route('/audit-logs', methods=['GET'])
    @login_required
    @permission_required(Capability.AUDIT_VIEW_ALL)
    def system_audit_logs():
        """
        Audit entries across every hotel (super-admin).

        Query params:
            hotel_id: Restrict to one hotel
            user_id, action, from, to, page, per_page: As for hotel audit logs
        """
        page, per_page = get_pagination_args()
        result = get_audit_logs(
            hotel_id=request.args.get('hotel_id', type=int),
            page=page,
            per_page=per_page,
            **_filters()
        )
        return api_paginated(result)
