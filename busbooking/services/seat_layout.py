"""Seat numbering for a bus layout.

A layout string ``"LxR"`` means ``L`` seats left of the aisle and ``R`` seats
right of it, so every row holds ``L + R`` seats lettered from ``A``. Seat
numbers are ``<column><row>`` (``A1``, ``D10``); the last row may be partial.
Everything here is a pure function of ``(total_seats, layout_type)``.
"""
from __future__ import annotations

import re
import string
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_LAYOUT = "2x2"
_LAYOUT_RE = re.compile(r"^\s*(\d)\s*x\s*(\d)\s*$", re.IGNORECASE)
_SEAT_RE = re.compile(r"^([A-Z])(\d+)$")


@dataclass(frozen=True)
class SeatPosition:
    seat_number: str
    row: int
    column: str
    is_aisle: bool


def parse_layout(layout_type: str) -> tuple[int, int]:
    """Return (left, right) seat counts, raising ValueError for bad layouts."""
    m = _LAYOUT_RE.match(layout_type or "")
    if not m:
        raise ValueError(f"invalid layout_type {layout_type!r}, expected e.g. '2x2'")
    left, right = int(m.group(1)), int(m.group(2))
    if left < 1 or right < 0 or left + right > 6:
        raise ValueError(f"invalid layout_type {layout_type!r}")
    return left, right


def normalize_layout(layout_type: str | None) -> str:
    left, right = parse_layout(layout_type or DEFAULT_LAYOUT)
    return f"{left}x{right}"


@lru_cache(maxsize=256)
def generate_seat_layout(total_seats: int, layout_type: str) -> tuple[SeatPosition, ...]:
    if total_seats < 1:
        raise ValueError("total_seats must be >= 1")
    left, right = parse_layout(layout_type)
    columns = string.ascii_uppercase[: left + right]
    aisle_columns = {columns[left - 1]} | ({columns[left]} if right else set())

    seats = []
    row = 1
    while len(seats) < total_seats:
        for col in columns:
            if len(seats) >= total_seats:
                break
            seats.append(SeatPosition(f"{col}{row}", row, col, col in aisle_columns))
        row += 1
    return tuple(seats)


def seat_numbers(total_seats: int, layout_type: str) -> frozenset[str]:
    return frozenset(s.seat_number for s in generate_seat_layout(total_seats, layout_type))


def normalize_seat_number(seat_number: str) -> str:
    return (seat_number or "").strip().upper()


def is_valid_seat(seat_number: str, total_seats: int, layout_type: str) -> bool:
    sn = normalize_seat_number(seat_number)
    if not _SEAT_RE.match(sn):
        return False
    return sn in seat_numbers(total_seats, layout_type)
