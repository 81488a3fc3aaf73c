"""
Input validation helper functions.
Provides validation and strict parsing for common input types.

The ``parse_*`` helpers raise ValidationError naming the offending field;
they never coerce a bad value into a plausible one.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from utils.errors import ValidationError

DATE_FORMAT = '%Y-%m-%d'


def validate_email(email: str) -> bool:
    """
    Validate email format.

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def validate_phone(phone: str) -> bool:
    """
    Validate an international phone number loosely.
    Accepts an optional leading +, digits and common separators, 6-15 digits.

    Args:
        phone: Phone number to validate

    Returns:
        True if valid phone format
    """
    if not phone:
        return False

    cleaned = re.sub(r'[\s\-\(\)\.]', '', phone)
    return bool(re.match(r'^\+?[0-9]{6,15}$', cleaned))


def validate_date_format(date_str: str) -> bool:
    """
    Validate date is in YYYY-MM-DD format.

    Args:
        date_str: Date string to validate

    Returns:
        True if valid format
    """
    try:
        datetime.strptime(date_str, DATE_FORMAT)
        return True
    except (ValueError, TypeError):
        return False


def validate_date_range(check_in: str, check_out: str) -> bool:
    """
    Validate that check-out is strictly after check-in.

    Args:
        check_in: Start date (YYYY-MM-DD)
        check_out: End date (YYYY-MM-DD), exclusive

    Returns:
        True if valid date range
    """
    try:
        start = datetime.strptime(check_in, DATE_FORMAT).date()
        end = datetime.strptime(check_out, DATE_FORMAT).date()
        return end > start
    except (ValueError, TypeError):
        return False


def validate_password(password: str, min_length: int = 8) -> tuple:
    """
    Validate password strength.

    Args:
        password: Password to validate
        min_length: Minimum password length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, 'Password is required'

    if len(password) < min_length:
        return False, f'Password must be at least {min_length} characters'

    return True, ''


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    sanitized = str(text).strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


# =============================================================================
# STRICT PARSERS
# =============================================================================

def parse_date(value, field: str) -> date:
    """
    Parse a calendar date (YYYY-MM-DD). No timezone shifting is applied.

    Args:
        value: date instance or string
        field: Field name for the error message

    Returns:
        datetime.date

    Raises:
        ValidationError: Missing or malformed date
    """
    if isinstance(value, datetime):
        raise ValidationError(f'{field} must be a calendar date (YYYY-MM-DD)', field=field)
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError(f'{field} is required (YYYY-MM-DD)', field=field)
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f'{field} must be a valid date in YYYY-MM-DD format', field=field)


def parse_stay_dates(check_in, check_out) -> tuple:
    """
    Parse a [check_in, check_out) pair and enforce check_out > check_in.

    Returns:
        Tuple of (check_in, check_out) as dates
    """
    start = parse_date(check_in, 'check_in')
    end = parse_date(check_out, 'check_out')
    if end <= start:
        raise ValidationError('check_out must be after check_in', field='check_out')
    return start, end


def parse_int(value, field: str, minimum: int = None) -> int:
    """
    Parse an integer, rejecting floats with fractions, booleans and text.

    Raises:
        ValidationError: Not an integer or below minimum
    """
    if isinstance(value, bool) or value is None or value == '':
        raise ValidationError(f'{field} must be an integer', field=field)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f'{field} must be an integer', field=field)
        value = int(value)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer', field=field)
    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} must be at least {minimum}', field=field)
    return number


def parse_price(value, field: str = 'price') -> float:
    """
    Parse a non-negative decimal amount, rounded to cents.

    Raises:
        ValidationError: Not a number or negative
    """
    if isinstance(value, bool) or value is None or value == '':
        raise ValidationError(f'{field} is required', field=field)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be a number', field=field)
    if not amount.is_finite():
        raise ValidationError(f'{field} must be a number', field=field)
    if amount < 0:
        raise ValidationError(f'{field} must not be negative', field=field)
    return float(amount.quantize(Decimal('0.01')))


def parse_bool(value, field: str) -> bool:
    """
    Parse a boolean from JSON or query-string style input.

    Raises:
        ValidationError: Unrecognized value
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('true', '1', 'yes'):
            return True
        if lowered in ('false', '0', 'no'):
            return False
    raise ValidationError(f'{field} must be true or false', field=field)


def require_text(value, field: str, max_length: int = 255) -> str:
    """
    Require a non-empty text value.

    Raises:
        ValidationError: Missing or blank
    """
    text = sanitize_input(value if isinstance(value, str) else ('' if value is None else str(value)),
                          max_length)
    if not text:
        raise ValidationError(f'{field} is required', field=field)
    return text
