"""
Tests for room availability: overlap detection, taken nights and free rooms.
"""

import pytest

from models.reservation_availability import (
    find_conflicts, has_conflict, get_unavailable_dates, get_available_rooms
)
from models.reservation_crud import create_reservation
from models.reservation_state import (
    cancel_reservation, check_in_reservation, check_out_reservation, confirm_reservation
)
from models.room import update_room
from utils.errors import ValidationError


def _confirmed(hotel_id, room_id, check_in, check_out):
    reservation, _ = create_reservation(hotel_id, room_id, check_in, check_out,
                                        guest_name='Availability Guest')
    return confirm_reservation(reservation['id'], hotel_id)


class TestFindConflicts:
    """Half-open interval overlap against active reservations."""

    @pytest.mark.parametrize('check_in,check_out,expected', [
        ('2025-01-10', '2025-01-13', True),   # same stay
        ('2025-01-12', '2025-01-15', True),   # overlaps the tail
        ('2025-01-08', '2025-01-11', True),   # overlaps the head
        ('2025-01-11', '2025-01-12', True),   # inside
        ('2025-01-09', '2025-01-14', True),   # surrounds
        ('2025-01-13', '2025-01-16', False),  # starts on departure day
        ('2025-01-07', '2025-01-10', False),  # ends on arrival day
    ])
    def test_interval_overlap(self, ctx, hotel, room, check_in, check_out, expected):
        _confirmed(hotel['id'], room['id'], '2025-01-10', '2025-01-13')
        assert has_conflict(room['id'], check_in, check_out) is expected

    def test_pending_reservations_do_not_block(self, ctx, hotel, room):
        create_reservation(hotel['id'], room['id'], '2025-01-10', '2025-01-13', guest_name='Hold')
        assert find_conflicts(room['id'], '2025-01-10', '2025-01-13') == []

    def test_closed_reservations_do_not_block(self, ctx, hotel, room):
        cancelled = _confirmed(hotel['id'], room['id'], '2025-01-10', '2025-01-13')
        cancel_reservation(cancelled['id'], hotel['id'])

        finished = _confirmed(hotel['id'], room['id'], '2025-01-10', '2025-01-13')
        check_in_reservation(finished['id'], hotel['id'])
        check_out_reservation(finished['id'], hotel['id'])

        assert not has_conflict(room['id'], '2025-01-10', '2025-01-13')

    def test_checked_in_blocks(self, ctx, hotel, room):
        reservation = _confirmed(hotel['id'], room['id'], '2025-01-10', '2025-01-13')
        check_in_reservation(reservation['id'], hotel['id'])
        assert has_conflict(room['id'], '2025-01-12', '2025-01-14')

    def test_excluded_reservation_is_ignored(self, ctx, hotel, room):
        reservation = _confirmed(hotel['id'], room['id'], '2025-01-10', '2025-01-13')
        assert not has_conflict(room['id'], '2025-01-11', '2025-01-14',
                                exclude_reservation_id=reservation['id'])

    def test_invalid_range(self, ctx, room):
        with pytest.raises(ValidationError):
            find_conflicts(room['id'], '2025-01-13', '2025-01-10')


class TestUnavailableDates:

    def test_taken_nights_are_clipped_to_window(self, ctx, hotel, room):
        _confirmed(hotel['id'], room['id'], '2025-01-10', '2025-01-13')
        _confirmed(hotel['id'], room['id'], '2025-01-20', '2025-01-22')

        dates = get_unavailable_dates(room['id'], '2025-01-11', '2025-01-21')

        assert dates == ['2025-01-11', '2025-01-12', '2025-01-20']


class TestAvailableRooms:

    def test_filters_booked_flagged_and_small_rooms(self, ctx, hotel, room, second_room):
        free = get_available_rooms(hotel['id'], '2025-03-01', '2025-03-04')
        assert [r['id'] for r in free] == [room['id'], second_room['id']]

        _confirmed(hotel['id'], room['id'], '2025-03-02', '2025-03-03')
        free = get_available_rooms(hotel['id'], '2025-03-01', '2025-03-04')
        assert [r['id'] for r in free] == [second_room['id']]

        assert get_available_rooms(hotel['id'], '2025-03-01', '2025-03-04', guests=5) == []

        update_room(second_room['id'], hotel['id'], {'is_available': False})
        assert get_available_rooms(hotel['id'], '2025-03-01', '2025-03-04') == []

    def test_other_hotels_rooms_are_not_listed(self, ctx, hotel, other_hotel, room):
        assert get_available_rooms(other_hotel['id'], '2025-03-01', '2025-03-04') == []
