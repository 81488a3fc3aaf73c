"""
Tests for input validation utilities.
"""

import pytest
from datetime import date, datetime

from utils.errors import ValidationError
from utils.validators import (
    validate_email,
    validate_phone,
    validate_date_range,
    validate_password,
    validate_date_format,
    sanitize_input,
    parse_date,
    parse_stay_dates,
    parse_int,
    parse_price,
    parse_bool,
    require_text
)


class TestValidateEmail:
    """Tests for email validation."""

    def test_valid_email(self):
        assert validate_email('user@example.com') is True
        assert validate_email('user.name+tag@example.co.uk') is True

    def test_invalid_email(self):
        assert validate_email('') is False
        assert validate_email(None) is False
        assert validate_email('missing@domain') is False
        assert validate_email('spaces in@email.com') is False


class TestValidatePhone:
    """Tests for international phone validation."""

    def test_valid_phones(self):
        assert validate_phone('+34 612 345 678') is True
        assert validate_phone('(212) 555-0100') is True
        assert validate_phone('612345') is True

    def test_invalid_phones(self):
        assert validate_phone('') is False
        assert validate_phone('12345') is False
        assert validate_phone('phone me') is False


class TestDateValidation:
    """Tests for date format and range checks."""

    def test_date_format(self):
        assert validate_date_format('2025-01-10') is True
        assert validate_date_format('10/01/2025') is False
        assert validate_date_format(None) is False

    def test_date_range_is_exclusive(self):
        assert validate_date_range('2025-01-10', '2025-01-11') is True
        assert validate_date_range('2025-01-10', '2025-01-10') is False
        assert validate_date_range('2025-01-11', '2025-01-10') is False


class TestParsers:
    """Tests for the strict parse_* helpers."""

    def test_parse_date(self):
        assert parse_date('2025-03-01', 'check_in') == date(2025, 3, 1)
        assert parse_date(date(2025, 3, 1), 'check_in') == date(2025, 3, 1)

    def test_parse_date_rejects_datetimes_and_garbage(self):
        with pytest.raises(ValidationError) as exc:
            parse_date(datetime(2025, 3, 1, 12, 0), 'check_in')
        assert exc.value.extra['field'] == 'check_in'

        with pytest.raises(ValidationError):
            parse_date('2025-02-30', 'check_in')
        with pytest.raises(ValidationError):
            parse_date('', 'check_in')

    def test_parse_stay_dates_requires_one_night(self):
        assert parse_stay_dates('2025-01-10', '2025-01-13') == (date(2025, 1, 10), date(2025, 1, 13))

        with pytest.raises(ValidationError) as exc:
            parse_stay_dates('2025-01-10', '2025-01-10')
        assert exc.value.extra['field'] == 'check_out'

    def test_parse_int(self):
        assert parse_int('3', 'guests') == 3
        assert parse_int(4.0, 'guests') == 4

        for bad in (True, None, '', 'two', 2.5):
            with pytest.raises(ValidationError):
                parse_int(bad, 'guests')

        with pytest.raises(ValidationError):
            parse_int(0, 'guests', minimum=1)

    def test_parse_price(self):
        assert parse_price('120') == 120.0
        assert parse_price(99.999) == 100.0
        assert parse_price(0) == 0.0

        for bad in (-1, 'abc', None, 'nan', True):
            with pytest.raises(ValidationError):
                parse_price(bad)

    def test_parse_bool(self):
        assert parse_bool('true', 'flag') is True
        assert parse_bool(0, 'flag') is False
        assert parse_bool('No', 'flag') is False

        with pytest.raises(ValidationError):
            parse_bool('maybe', 'flag')

    def test_require_text(self):
        assert require_text('  Double  ', 'room_type') == 'Double'
        with pytest.raises(ValidationError):
            require_text('   ', 'room_type')


class TestMiscValidators:

    def test_validate_password(self):
        assert validate_password('long-enough') == (True, '')
        valid, message = validate_password('short')
        assert valid is False
        assert '8' in message

    def test_sanitize_input(self):
        assert sanitize_input('  hello  ') == 'hello'
        assert sanitize_input('abcdef', max_length=3) == 'abc'
        assert sanitize_input(None) == ''
