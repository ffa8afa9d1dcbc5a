import pytest

from busbooking.services.seat_layout import (
    generate_seat_layout, is_valid_seat, normalize_layout, normalize_seat_number, parse_layout, seat_numbers,
)


def test_forty_seat_two_by_two_layout():
    seats = generate_seat_layout(40, "2x2")
    assert len(seats) == 40
    assert seats[0].seat_number == "A1"
    assert seats[-1].seat_number == "D10"
    assert [s.seat_number for s in seats[:4]] == ["A1", "B1", "C1", "D1"]
    assert {s.column for s in seats if s.is_aisle} == {"B", "C"}


def test_partial_last_row():
    seats = generate_seat_layout(41, "2x2")
    assert seats[-1].seat_number == "A11"
    assert seats[-1].row == 11


def test_two_by_three_columns():
    seats = generate_seat_layout(10, "2x3")
    assert [s.column for s in seats[:5]] == ["A", "B", "C", "D", "E"]
    assert seats[5].seat_number == "A2"
    assert {s.column for s in seats if s.is_aisle} == {"B", "C"}


def test_single_side_layout_has_one_aisle_column():
    seats = generate_seat_layout(6, "3x0")
    assert {s.column for s in seats if s.is_aisle} == {"C"}


@pytest.mark.parametrize("bad", ["", "abc", "0x2", "4x3", "2-2"])
def test_parse_layout_rejects_garbage(bad):
    with pytest.raises(ValueError):
        parse_layout(bad)


def test_normalize_layout():
    assert normalize_layout(" 2X2 ") == "2x2"
    assert normalize_layout(None) == "2x2"


def test_seat_validation():
    assert is_valid_seat("A1", 40, "2x2")
    assert is_valid_seat(" d10 ", 40, "2x2")
    assert not is_valid_seat("E1", 40, "2x2")
    assert not is_valid_seat("A11", 40, "2x2")
    assert not is_valid_seat("1A", 40, "2x2")
    assert not is_valid_seat("", 40, "2x2")


def test_seat_numbers_and_normalization():
    assert len(seat_numbers(40, "2x2")) == 40
    assert normalize_seat_number(" b3") == "B3"


def test_zero_seats_rejected():
    with pytest.raises(ValueError):
        generate_seat_layout(0, "2x2")
