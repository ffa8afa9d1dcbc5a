"""Seat reservation engine.

Every operation here is one database transaction that keeps two things in
step: the booking ledger (``bookings``) and the cached seat counter
(``schedules.available_seats``). Exclusivity of a seat is enforced by the
partial unique index on ``(schedule_id, seat_number)`` for Confirmed rows;
the counter only moves through compare-and-set UPDATEs issued in the same
transaction as the ledger write. Notifications are dispatched after commit.
"""
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from busbooking.core.config import Settings
from busbooking.core.errors import (
    AlreadyCancelled, InvalidBookingState, InvalidRequest, InvalidSeat, NotFound,
    ScheduleFull, ScheduleNotBookable, SeatAlreadyBooked, Timeout, Unauthorized,
)
from busbooking.core.security import Identity
from busbooking.models.booking import (
    Booking, BOOKING_CANCELLED, BOOKING_CONFIRMED, PAYMENT_PAID, PAYMENT_REFUNDED,
)
from busbooking.models.bus import Bus
from busbooking.models.route import Route
from busbooking.models.schedule import Schedule, SCHEDULE_SCHEDULED
from busbooking.services.audit_service import log_audit
from busbooking.services.notification_service import (
    BookingSummary, notify_booking_cancelled, notify_booking_confirmed,
)
from busbooking.services.seat_layout import is_valid_seat, normalize_seat_number
from busbooking.services.seat_map_service import load_schedule_and_bus

logger = logging.getLogger(__name__)


@dataclass
class PassengerInfo:
    name: str
    phone: str
    email: str | None = None


@contextmanager
def booking_transaction(db: Session, timeout_ms: int | None = None):
    """Commit the block as one unit; roll back on any error.

    A lock or statement timeout surfaces as ``Timeout`` with nothing applied.
    """
    try:
        _apply_timeouts(db, timeout_ms)
        yield
        db.commit()
    except OperationalError as e:
        db.rollback()
        if not _is_lock_timeout(e):
            raise
        logger.warning("booking transaction aborted: %s", e.orig)
        raise Timeout() from e
    except Exception:
        db.rollback()
        raise


LOCK_TIMEOUT_PGCODES = ("55P03", "57014")  # lock_not_available, query_canceled


def _is_lock_timeout(e: OperationalError) -> bool:
    if getattr(e.orig, "pgcode", None) in LOCK_TIMEOUT_PGCODES:
        return True
    return "database is locked" in str(e.orig)


def _apply_timeouts(db: Session, timeout_ms: int | None) -> None:
    if not timeout_ms or db.get_bind().dialect.name != "postgresql":
        return
    ms = int(timeout_ms)
    db.execute(text(f"SET LOCAL lock_timeout = {ms}"))
    db.execute(text(f"SET LOCAL statement_timeout = {ms}"))


# -------------------------
# ledger / counter primitives (call inside booking_transaction)
# -------------------------
def seat_holder(db: Session, schedule_id: str, seat_number: str) -> str | None:
    """Id of the Confirmed booking holding the seat, if any."""
    return db.execute(
        select(Booking.id).where(
            Booking.schedule_id == schedule_id,
            Booking.seat_number == seat_number,
            Booking.booking_status == BOOKING_CONFIRMED,
        )
    ).scalar_one_or_none()


def take_seat(db: Session, schedule_id: str) -> None:
    """Decrement the counter of a schedule that is still open for booking."""
    res = db.execute(
        update(Schedule)
        .where(
            Schedule.id == schedule_id,
            Schedule.status == SCHEDULE_SCHEDULED,
            Schedule.available_seats > 0,
        )
        .values(available_seats=Schedule.available_seats - 1)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 1:
        return
    current = db.execute(select(Schedule.status).where(Schedule.id == schedule_id)).scalar_one_or_none()
    if current is None:
        raise NotFound("Schedule not found")
    if current != SCHEDULE_SCHEDULED:
        raise ScheduleNotBookable(f"Schedule is {current}")
    raise ScheduleFull()


def release_seat(db: Session, schedule_id: str) -> None:
    db.execute(
        update(Schedule)
        .where(Schedule.id == schedule_id)
        .values(available_seats=Schedule.available_seats + 1)
        .execution_options(synchronize_session=False)
    )


def mark_cancelled(db: Session, booking: Booking, reason: str) -> None:
    """Confirmed -> Cancelled and give the seat back. Loses cleanly to a concurrent cancel."""
    res = db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.booking_status == BOOKING_CONFIRMED)
        .values(
            booking_status=BOOKING_CANCELLED,
            payment_status=PAYMENT_REFUNDED,
            cancelled_at=datetime.now(timezone.utc),
            cancellation_reason=reason,
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        raise AlreadyCancelled()
    release_seat(db, booking.schedule_id)


def load_booking(db: Session, booking_uuid: str, lock: bool = False) -> Booking:
    stmt = select(Booking).where(Booking.booking_uuid == booking_uuid)
    if lock:
        stmt = stmt.with_for_update()
    booking = db.execute(stmt).scalar_one_or_none()
    if not booking:
        raise NotFound("Booking not found")
    return booking


def build_summary(booking: Booking, schedule: Schedule | None, route: Route | None) -> BookingSummary:
    return BookingSummary(
        booking_reference=booking.booking_uuid,
        passenger_name=booking.passenger_name,
        passenger_email=booking.passenger_email,
        seat_number=booking.seat_number,
        route=f"{route.origin} to {route.destination}" if route else "",
        travel_date=schedule.travel_date.isoformat() if schedule else "",
        departure_time=schedule.departure_time.strftime("%H:%M") if schedule else "",
        amount=f"{Decimal(booking.amount_paid or 0):.2f}",
    )


def ensure_can_manage(booking: Booking, actor: Identity | None) -> None:
    # Guests act through the unguessable booking reference.
    if actor and booking.user_id and not actor.is_admin and actor.user_id != booking.user_id:
        raise Unauthorized("You do not have permission to cancel this booking")


def _ensure_bookable(schedule: Schedule, today: date) -> None:
    if schedule.status != SCHEDULE_SCHEDULED:
        raise ScheduleNotBookable(f"Schedule is {schedule.status}")
    if schedule.travel_date < today:
        raise ScheduleNotBookable("Schedule has already departed")


# -------------------------
# operations
# -------------------------
def create_booking(
    db: Session,
    schedule_id: str,
    seat_number: str,
    passenger: PassengerInfo,
    user_id: str | None = None,
    *,
    timeout_ms: int | None = None,
    today: date | None = None,
) -> Booking:
    name = (passenger.name or "").strip()
    phone = (passenger.phone or "").strip()
    if not name or not phone:
        raise InvalidRequest("Missing required fields: name, phone")
    seat = normalize_seat_number(seat_number)
    today = today or date.today()

    with booking_transaction(db, timeout_ms):
        schedule, bus = load_schedule_and_bus(db, schedule_id)
        _ensure_bookable(schedule, today)
        if not is_valid_seat(seat, bus.total_seats, bus.layout_type):
            raise InvalidSeat(f"Seat {seat or '?'} does not exist on bus {bus.bus_number}")
        if schedule.available_seats <= 0:
            raise ScheduleFull()
        if seat_holder(db, schedule.id, seat):
            raise SeatAlreadyBooked()

        route = db.get(Route, schedule.route_id)
        booking = Booking(
            id=str(uuid.uuid4()),
            booking_uuid=str(uuid.uuid4()),
            schedule_id=schedule.id,
            user_id=user_id,
            seat_number=seat,
            passenger_name=name,
            passenger_phone=phone,
            passenger_email=(passenger.email or "").strip() or None,
            booking_status=BOOKING_CONFIRMED,
            amount_paid=Decimal(route.base_price) if route else Decimal("0"),
            payment_status=PAYMENT_PAID,
        )
        db.add(booking)
        try:
            db.flush()
        except IntegrityError as e:
            # lost the race for this seat
            raise SeatAlreadyBooked() from e
        # Counter last so the schedule row is held only until commit.
        take_seat(db, schedule.id)
        summary = build_summary(booking, schedule, route)

    logger.info("booking %s confirmed: schedule=%s seat=%s", summary.booking_reference, schedule_id, seat)
    notify_booking_confirmed(summary)
    return booking


def cancel_booking(
    db: Session,
    booking_uuid: str,
    actor: Identity | None,
    reason: str | None = None,
    *,
    settings: Settings | None = None,
    timeout_ms: int | None = None,
    today: date | None = None,
) -> Booking:
    today = today or date.today()
    is_admin = bool(actor and actor.is_admin)

    with booking_transaction(db, timeout_ms):
        booking = load_booking(db, booking_uuid, lock=True)
        ensure_can_manage(booking, actor)
        if booking.booking_status == BOOKING_CANCELLED:
            raise AlreadyCancelled()
        if booking.booking_status != BOOKING_CONFIRMED:
            raise InvalidBookingState(f"Booking is {booking.booking_status} and cannot be cancelled")
        schedule = db.get(Schedule, booking.schedule_id)
        if not is_admin and schedule and schedule.travel_date < today:
            raise ScheduleNotBookable("Cannot cancel past bookings")

        reason = reason or ("Cancelled by admin" if is_admin else "Cancelled by passenger")
        mark_cancelled(db, booking, reason)
        log_audit(db, actor, "booking.cancel", "booking", booking.booking_uuid, {"reason": reason, "seat": booking.seat_number})
        summary = build_summary(booking, schedule, db.get(Route, schedule.route_id) if schedule else None)

    logger.info("booking %s cancelled (%s)", booking_uuid, reason)
    notify_booking_cancelled(summary, settings)
    return booking


def reactivate_booking(
    db: Session,
    booking_uuid: str,
    actor: Identity | None = None,
    *,
    timeout_ms: int | None = None,
) -> Booking:
    """Cancelled -> Confirmed, admitted again exactly like a new booking of the same seat."""
    with booking_transaction(db, timeout_ms):
        booking = load_booking(db, booking_uuid, lock=True)
        if booking.booking_status != BOOKING_CANCELLED:
            raise InvalidBookingState(f"Booking is {booking.booking_status}, only cancelled bookings can be reactivated")
        schedule, bus = load_schedule_and_bus(db, booking.schedule_id)
        if schedule.status != SCHEDULE_SCHEDULED:
            raise ScheduleNotBookable(f"Schedule is {schedule.status}")
        if not is_valid_seat(booking.seat_number, bus.total_seats, bus.layout_type):
            raise InvalidSeat(f"Seat {booking.seat_number} no longer exists on bus {bus.bus_number}")
        if seat_holder(db, schedule.id, booking.seat_number):
            raise SeatAlreadyBooked(f"Seat {booking.seat_number} has been booked by another passenger")

        try:
            res = db.execute(
                update(Booking)
                .where(Booking.id == booking.id, Booking.booking_status == BOOKING_CANCELLED)
                .values(
                    booking_status=BOOKING_CONFIRMED,
                    payment_status=PAYMENT_PAID,
                    cancelled_at=None,
                    cancellation_reason=None,
                )
                .execution_options(synchronize_session=False)
            )
        except IntegrityError as e:
            raise SeatAlreadyBooked(f"Seat {booking.seat_number} has been booked by another passenger") from e
        if res.rowcount != 1:
            raise InvalidBookingState("Booking changed while reactivating")
        take_seat(db, schedule.id)
        log_audit(db, actor, "booking.reactivate", "booking", booking.booking_uuid, {"seat": booking.seat_number})

    logger.info("booking %s reactivated", booking_uuid)
    return booking


def delete_booking(
    db: Session,
    booking_uuid: str,
    actor: Identity | None = None,
    *,
    timeout_ms: int | None = None,
) -> dict:
    """Hard delete. A Confirmed booking is cancelled first so its seat is not leaked."""
    with booking_transaction(db, timeout_ms):
        booking = load_booking(db, booking_uuid, lock=True)
        released = booking.booking_status == BOOKING_CONFIRMED
        if released:
            mark_cancelled(db, booking, "Deleted by admin")
        log_audit(db, actor, "booking.delete", "booking", booking.booking_uuid, {
            "scheduleId": booking.schedule_id,
            "seat": booking.seat_number,
            "releasedSeat": released,
        })
        db.delete(booking)

    logger.info("booking %s deleted (seat released: %s)", booking_uuid, released)
    return {"bookingReference": booking_uuid, "releasedSeat": released}


def change_seat(
    db: Session,
    booking_uuid: str,
    new_seat: str,
    actor: Identity | None = None,
    *,
    timeout_ms: int | None = None,
) -> Booking:
    seat = normalize_seat_number(new_seat)
    if not seat:
        raise InvalidRequest("Seat number is required")

    with booking_transaction(db, timeout_ms):
        booking = load_booking(db, booking_uuid, lock=True)
        if booking.booking_status != BOOKING_CONFIRMED:
            raise InvalidBookingState("Only confirmed bookings can be modified")
        _, bus = load_schedule_and_bus(db, booking.schedule_id)
        if not is_valid_seat(seat, bus.total_seats, bus.layout_type):
            raise InvalidSeat(f"Seat {seat} does not exist on bus {bus.bus_number}")
        old_seat = booking.seat_number
        if seat != old_seat:
            if seat_holder(db, booking.schedule_id, seat):
                raise SeatAlreadyBooked("Seat already booked for this schedule")
            booking.seat_number = seat
            try:
                db.flush()
            except IntegrityError as e:
                raise SeatAlreadyBooked("Seat already booked for this schedule") from e
            log_audit(db, actor, "booking.change_seat", "booking", booking.booking_uuid, {"from": old_seat, "to": seat})

    return booking


# -------------------------
# reads
# -------------------------
def _booking_query(db: Session):
    return (
        db.query(Booking, Schedule, Route, Bus)
        .join(Schedule, Schedule.id == Booking.schedule_id)
        .join(Route, Route.id == Schedule.route_id)
        .join(Bus, Bus.id == Schedule.bus_id)
    )


def list_bookings(db: Session, identity: Identity, limit: int = 500) -> list[tuple]:
    q = _booking_query(db)
    if not identity.is_admin:
        q = q.filter(Booking.user_id == identity.user_id)
    return q.order_by(Booking.booked_at.desc()).limit(min(max(limit, 1), 1000)).all()


def get_booking_detail(db: Session, booking_uuid: str) -> tuple:
    row = _booking_query(db).filter(Booking.booking_uuid == booking_uuid).first()
    if not row:
        raise NotFound("Booking not found")
    return row
