import logging
import uuid
from datetime import date, datetime, time, timezone

from pydantic import BaseModel, ConfigDict
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from busbooking.core.config import Settings
from busbooking.core.errors import InvalidRequest, InvalidSeat, NotFound, ScheduleInUse
from busbooking.core.security import Identity
from busbooking.models.booking import Booking, BOOKING_CANCELLED, BOOKING_CONFIRMED, PAYMENT_REFUNDED
from busbooking.models.bus import Bus
from busbooking.models.route import Route
from busbooking.models.schedule import Schedule, SCHEDULE_CANCELLED, SCHEDULE_SCHEDULED, SCHEDULE_STATUSES
from busbooking.services.audit_service import log_audit
from busbooking.services.booking_service import booking_transaction, build_summary
from busbooking.services.notification_service import notify_booking_cancelled
from busbooking.services.seat_layout import seat_numbers
from busbooking.services.seat_map_service import booked_seat_numbers, confirmed_count

logger = logging.getLogger(__name__)


class SchedulePatch(BaseModel):
    """Fields an admin may change on a schedule. The seat counter is not one of them."""
    model_config = ConfigDict(extra="forbid")

    route_id: str | None = None
    bus_id: str | None = None
    travel_date: date | None = None
    departure_time: time | None = None
    arrival_time: time | None = None
    status: str | None = None


def _get_route(db: Session, route_id: str) -> Route:
    route = db.get(Route, route_id)
    if not route:
        raise NotFound("Route not found")
    return route


def _get_bus(db: Session, bus_id: str) -> Bus:
    bus = db.get(Bus, bus_id)
    if not bus:
        raise NotFound("Bus not found")
    return bus


def _check_times(departure: time, arrival: time) -> None:
    if departure == arrival:
        raise InvalidRequest("arrival_time must differ from departure_time")


def create_schedule(db: Session, route_id: str, bus_id: str, travel_date: date,
                    departure_time: time, arrival_time: time, actor: Identity | str | None = None) -> Schedule:
    _get_route(db, route_id)
    bus = _get_bus(db, bus_id)
    if not bus.is_active:
        raise InvalidRequest("Bus is not active")
    _check_times(departure_time, arrival_time)
    s = Schedule(
        id=str(uuid.uuid4()),
        route_id=route_id,
        bus_id=bus_id,
        travel_date=travel_date,
        departure_time=departure_time,
        arrival_time=arrival_time,
        available_seats=bus.total_seats,
        status=SCHEDULE_SCHEDULED,
    )
    db.add(s)
    log_audit(db, actor, "schedule.create", "schedule", s.id, {"routeId": route_id, "busId": bus_id, "travelDate": travel_date})
    db.commit()
    return s


def update_schedule(db: Session, schedule_id: str, patch: SchedulePatch, actor: Identity | None = None,
                    settings: Settings | None = None) -> Schedule:
    fields = patch.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise InvalidRequest("No fields to update")
    status = fields.pop("status", None)

    timeout_ms = settings.BOOKING_TIMEOUT_MS if settings else None
    with booking_transaction(db, timeout_ms):
        schedule = db.execute(select(Schedule).where(Schedule.id == schedule_id).with_for_update()).scalar_one_or_none()
        if not schedule:
            raise NotFound("Schedule not found")
        confirmed = confirmed_count(db, schedule.id)

        if "route_id" in fields and fields["route_id"] != schedule.route_id:
            if confirmed:
                raise ScheduleInUse("Cannot change route for schedule with existing bookings")
            _get_route(db, fields["route_id"])
        if "bus_id" in fields and fields["bus_id"] != schedule.bus_id:
            new_bus = _get_bus(db, fields["bus_id"])
            missing = booked_seat_numbers(db, schedule.id) - seat_numbers(new_bus.total_seats, new_bus.layout_type)
            if missing:
                raise InvalidSeat(f"Booked seats do not exist on bus {new_bus.bus_number}: {', '.join(sorted(missing))}")
            # Capacity changed: derive the counter from the ledger, never carry it over.
            fields["available_seats"] = new_bus.total_seats - confirmed

        _check_times(fields.get("departure_time", schedule.departure_time), fields.get("arrival_time", schedule.arrival_time))
        for k, v in fields.items():
            setattr(schedule, k, v)
        log_audit(db, actor, "schedule.update", "schedule", schedule.id, fields)

    if status:
        set_schedule_status(db, schedule_id, status, actor, settings)
    return schedule


def set_schedule_status(db: Session, schedule_id: str, status: str, actor: Identity | None = None,
                        settings: Settings | None = None) -> dict:
    if status not in SCHEDULE_STATUSES:
        raise InvalidRequest("Invalid status. Must be: Scheduled, Cancelled, or Completed")

    timeout_ms = settings.BOOKING_TIMEOUT_MS if settings else None
    summaries = []
    with booking_transaction(db, timeout_ms):
        schedule = db.execute(select(Schedule).where(Schedule.id == schedule_id).with_for_update()).scalar_one_or_none()
        if not schedule:
            raise NotFound("Schedule not found")
        previous = schedule.status
        schedule.status = status
        if status == SCHEDULE_CANCELLED:
            route = db.get(Route, schedule.route_id)
            bus = db.get(Bus, schedule.bus_id)
            victims = db.execute(
                select(Booking).where(
                    Booking.schedule_id == schedule.id,
                    Booking.booking_status == BOOKING_CONFIRMED,
                ).with_for_update()
            ).scalars().all()
            summaries = [build_summary(b, schedule, route) for b in victims]
            db.execute(
                update(Booking)
                .where(Booking.schedule_id == schedule.id, Booking.booking_status == BOOKING_CONFIRMED)
                .values(
                    booking_status=BOOKING_CANCELLED,
                    payment_status=PAYMENT_REFUNDED,
                    cancelled_at=datetime.now(timezone.utc),
                    cancellation_reason="Schedule cancelled",
                )
                .execution_options(synchronize_session=False)
            )
            schedule.available_seats = bus.total_seats - confirmed_count(db, schedule.id)
        log_audit(db, actor, "schedule.status", "schedule", schedule.id, {
            "from": previous, "to": status, "cancelledBookings": len(summaries),
        })

    for s in summaries:
        notify_booking_cancelled(s, settings)
    logger.info("schedule %s -> %s (%s bookings cancelled)", schedule_id, status, len(summaries))
    return {"scheduleId": schedule_id, "status": status, "cancelledBookings": len(summaries)}


def delete_schedule(db: Session, schedule_id: str, actor: Identity | None = None) -> None:
    schedule = db.get(Schedule, schedule_id)
    if not schedule:
        raise NotFound("Schedule not found")
    n = db.query(func.count(Booking.id)).filter(Booking.schedule_id == schedule_id).scalar()
    if n:
        raise ScheduleInUse("Cannot delete schedule with existing bookings. Consider cancelling it instead.")
    db.execute(delete(Schedule).where(Schedule.id == schedule_id))
    log_audit(db, actor, "schedule.delete", "schedule", schedule_id)
    db.commit()


def list_schedules(db: Session, route_id: str | None = None, status: str | None = None,
                   start_date: date | None = None, end_date: date | None = None) -> list[tuple]:
    q = (
        db.query(Schedule, Route, Bus)
        .join(Route, Route.id == Schedule.route_id)
        .join(Bus, Bus.id == Schedule.bus_id)
    )
    if route_id:
        q = q.filter(Schedule.route_id == route_id)
    if status:
        q = q.filter(Schedule.status == status)
    if start_date:
        q = q.filter(Schedule.travel_date >= start_date)
    if end_date:
        q = q.filter(Schedule.travel_date <= end_date)
    return q.order_by(Schedule.travel_date, Schedule.departure_time).all()


def upcoming_for_route(db: Session, route_id: str, today: date | None = None) -> list[tuple]:
    today = today or date.today()
    return (
        db.query(Schedule, Route, Bus)
        .join(Route, Route.id == Schedule.route_id)
        .join(Bus, Bus.id == Schedule.bus_id)
        .filter(
            Schedule.route_id == route_id,
            Schedule.travel_date >= today,
            Schedule.status == SCHEDULE_SCHEDULED,
        )
        .order_by(Schedule.travel_date, Schedule.departure_time)
        .all()
    )
