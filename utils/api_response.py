"""
Standardized API response helpers.

Provides consistent JSON response format across all API endpoints:

    Success:    {"success": true, "data": {...}, "message": "..."}
    Error:      {"success": false, "error": "...", "error_type": "..."}
    Warning:    {"success": true, "data": {...}, "warning": "..."}
    Paginated:  {"success": true, "data": [...], "meta": {current_page, per_page, total, last_page}}

Usage:
    from utils.api_response import api_success, api_error

    return api_success(data={'id': 1}, message='Created')
    return api_error('Missing data', status=400)
"""

import math
from typing import Any

from flask import current_app, jsonify, request

from utils.errors import ValidationError


def api_success(
    data: Any = None,
    message: str | None = None,
    warning: str | None = None,
    status: int = 200,
    **extra_fields: Any
) -> tuple:
    """
    Build a standardized success JSON response.

    Args:
        data: Optional payload to include as 'data' key.
        message: Optional success message.
        warning: Optional warning message.
        status: HTTP status code (default 200).
        **extra_fields: Additional top-level fields to include in the response.

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': True}

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    if warning:
        response['warning'] = warning

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_error(error: str, status: int = 400, **extra_fields: Any) -> tuple:
    """
    Build a standardized error JSON response.

    Args:
        error: Error message.
        status: HTTP status code (default 400).
        **extra_fields: Additional top-level fields (e.g., conflicts, error_type).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': False, 'error': error}

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_paginated(page_result: dict, **extra_fields: Any) -> tuple:
    """
    Build a paginated success response from a model page result.

    Args:
        page_result: Dict with 'data' and 'meta' keys (see paginate_meta)

    Returns:
        Tuple of (Response, status_code)
    """
    return api_success(data=page_result['data'], meta=page_result['meta'], **extra_fields)


# =============================================================================
# PAGINATION
# =============================================================================

def paginate_meta(total: int, page: int, per_page: int) -> dict:
    """
    Build pagination metadata.

    last_page is ceil(total / per_page); an empty result still reports
    last_page = 0 so that any page >= 1 is past the end.
    """
    return {
        'current_page': page,
        'per_page': per_page,
        'total': total,
        'last_page': math.ceil(total / per_page) if per_page else 0
    }


def normalize_pagination(page, per_page, max_per_page: int = 100) -> tuple:
    """
    Validate page/per_page values coming from callers.

    Raises:
        ValidationError: page < 1, per_page < 1 or per_page above the cap
    """
    from utils.validators import parse_int

    page = parse_int(page, 'page', minimum=1)
    per_page = parse_int(per_page, 'per_page', minimum=1)
    if per_page > max_per_page:
        raise ValidationError(f'per_page must not exceed {max_per_page}', field='per_page')
    return page, per_page


def get_pagination_args() -> tuple:
    """Read page/per_page from the query string with configured defaults."""
    default_per_page = current_app.config.get('ITEMS_PER_PAGE', 20)
    max_per_page = current_app.config.get('MAX_PER_PAGE', 100)
    page = request.args.get('page', '1')
    per_page = request.args.get('per_page', str(default_per_page))
    return normalize_pagination(page, per_page, max_per_page)


def get_json_body() -> dict:
    """
    Get the request's JSON object body.

    Raises:
        ValidationError: Body missing or not a JSON object
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data
