import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from busbooking.core.errors import NotFound
from busbooking.models.booking import Booking, BOOKING_CONFIRMED
from busbooking.models.bus import Bus
from busbooking.models.schedule import Schedule
from busbooking.services.seat_layout import generate_seat_layout

logger = logging.getLogger(__name__)


@dataclass
class CounterDrift:
    schedule_id: str
    recorded: int
    expected: int


def load_schedule_and_bus(db: Session, schedule_id: str) -> tuple[Schedule, Bus]:
    schedule = db.get(Schedule, schedule_id)
    if not schedule:
        raise NotFound("Schedule not found")
    bus = db.get(Bus, schedule.bus_id)
    if not bus:
        raise NotFound("Bus for schedule not found")
    return schedule, bus


def booked_seat_numbers(db: Session, schedule_id: str) -> set[str]:
    rows = db.execute(
        select(Booking.seat_number).where(
            Booking.schedule_id == schedule_id,
            Booking.booking_status == BOOKING_CONFIRMED,
        )
    ).scalars().all()
    return set(rows)


def confirmed_count(db: Session, schedule_id: str) -> int:
    return int(db.execute(
        select(func.count(Booking.id)).where(
            Booking.schedule_id == schedule_id,
            Booking.booking_status == BOOKING_CONFIRMED,
        )
    ).scalar_one())


def get_seat_map(db: Session, schedule_id: str) -> dict:
    schedule, bus = load_schedule_and_bus(db, schedule_id)
    booked = booked_seat_numbers(db, schedule_id)
    seats = [
        {
            "seatNumber": s.seat_number,
            "row": s.row,
            "column": s.column,
            "status": "booked" if s.seat_number in booked else "available",
            "isAisle": s.is_aisle,
        }
        for s in generate_seat_layout(bus.total_seats, bus.layout_type)
    ]
    booked_count = sum(1 for s in seats if s["status"] == "booked")
    return {
        "scheduleId": schedule.id,
        "totalSeats": bus.total_seats,
        "bookedCount": booked_count,
        "availableCount": bus.total_seats - booked_count,
        "layout": bus.layout_type,
        "data": seats,
    }


def get_available_count(db: Session, schedule_id: str) -> int:
    """Live count from the ledger, independent of the cached counter."""
    _, bus = load_schedule_and_bus(db, schedule_id)
    return bus.total_seats - confirmed_count(db, schedule_id)


def find_counter_drift(db: Session) -> list[CounterDrift]:
    confirmed = (
        select(Booking.schedule_id, func.count(Booking.id).label("n"))
        .where(Booking.booking_status == BOOKING_CONFIRMED)
        .group_by(Booking.schedule_id)
        .subquery()
    )
    rows = db.execute(
        select(Schedule.id, Schedule.available_seats, Bus.total_seats, func.coalesce(confirmed.c.n, 0))
        .join(Bus, Bus.id == Schedule.bus_id)
        .outerjoin(confirmed, confirmed.c.schedule_id == Schedule.id)
    ).all()
    drifts = []
    for sid, recorded, total, n in rows:
        expected = int(total) - int(n)
        if int(recorded) != expected:
            drifts.append(CounterDrift(schedule_id=sid, recorded=int(recorded), expected=expected))
    return drifts


def reconcile_seat_counters(db: Session, fix: bool = False) -> dict:
    drifts = find_counter_drift(db)
    for d in drifts:
        logger.warning(
            "available_seats drift on schedule %s: recorded=%s expected=%s",
            d.schedule_id, d.recorded, d.expected,
        )
        if fix:
            schedule = db.get(Schedule, d.schedule_id)
            # Overbooked schedules cannot go negative; clamp and leave the drift visible in the log.
            schedule.available_seats = max(d.expected, 0)
    if fix and drifts:
        db.commit()
    return {
        "checked": db.query(Schedule).count(),
        "drifted": len(drifts),
        "fixed": fix,
        "items": [{"scheduleId": d.schedule_id, "recorded": d.recorded, "expected": d.expected} for d in drifts],
    }
