from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from busbooking.api.deps import get_identity, get_optional_identity, get_settings, require_roles
from busbooking.core.config import Settings
from busbooking.core.security import Identity, ROLE_ADMIN
from busbooking.db.session import get_db
from busbooking.models.booking import Booking
from busbooking.schemas.booking import BookingCreate, BookingOut, CancelIn, SeatChangeIn
from busbooking.services.booking_service import (
    PassengerInfo, cancel_booking, change_seat, create_booking, get_booking_detail, list_bookings,
)

router = APIRouter(tags=["bookings"])


def booking_out(b: Booking) -> BookingOut:
    return BookingOut(
        bookingId=b.id,
        bookingReference=b.booking_uuid,
        scheduleId=b.schedule_id,
        seatNumber=b.seat_number,
        passengerName=b.passenger_name,
        bookingStatus=b.booking_status,
        paymentStatus=b.payment_status,
        amountPaid=float(b.amount_paid),
    )


def booking_row_out(b, s, r, bus) -> dict:
    return {
        "id": b.id,
        "bookingReference": b.booking_uuid,
        "scheduleId": b.schedule_id,
        "seatNumber": b.seat_number,
        "passengerName": b.passenger_name,
        "passengerPhone": b.passenger_phone,
        "passengerEmail": b.passenger_email,
        "bookingStatus": b.booking_status,
        "paymentStatus": b.payment_status,
        "cancellationReason": b.cancellation_reason,
        "cancelledAt": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "amountPaid": float(b.amount_paid),
        "bookedAt": b.booked_at.isoformat() if b.booked_at else None,
        "origin": r.origin,
        "destination": r.destination,
        "duration": r.duration,
        "travelDate": s.travel_date.isoformat(),
        "departureTime": s.departure_time.strftime("%H:%M"),
        "arrivalTime": s.arrival_time.strftime("%H:%M"),
        "busNumber": bus.bus_number,
        "busType": bus.bus_type,
    }


@router.post("/book", response_model=BookingOut, status_code=201)
def book_seat(
    body: BookingCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: Identity | None = Depends(get_optional_identity),
):
    booking = create_booking(
        db,
        body.scheduleId,
        body.seatNumber,
        PassengerInfo(name=body.name, phone=body.phone, email=body.email),
        user_id=identity.user_id if identity else None,
        timeout_ms=settings.BOOKING_TIMEOUT_MS,
    )
    return booking_out(booking)


@router.get("/bookings")
def my_bookings(db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    """Bookings of the signed-in user; admins see everything."""
    rows = list_bookings(db, identity)
    return {"success": True, "count": len(rows), "data": [booking_row_out(*row) for row in rows]}


@router.get("/booking/{booking_uuid}")
def booking_detail(booking_uuid: str, db: Session = Depends(get_db)):
    return {"success": True, "data": booking_row_out(*get_booking_detail(db, booking_uuid))}


def _cancel(db: Session, settings: Settings, booking_uuid: str, identity: Identity | None, reason: str | None):
    booking = cancel_booking(
        db, booking_uuid, identity, reason,
        settings=settings, timeout_ms=settings.BOOKING_TIMEOUT_MS,
    )
    return {"success": True, "message": "Booking cancelled successfully", "data": booking_out(booking).model_dump()}


@router.patch("/bookings/{booking_uuid}/cancel")
def cancel(
    booking_uuid: str,
    body: CancelIn | None = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: Identity | None = Depends(get_optional_identity),
):
    return _cancel(db, settings, booking_uuid, identity, body.reason if body else None)


@router.delete("/booking/{booking_uuid}")
def cancel_by_delete(
    booking_uuid: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    identity: Identity | None = Depends(get_optional_identity),
):
    return _cancel(db, settings, booking_uuid, identity, None)


@router.put("/booking/{booking_uuid}/seat")
def update_seat(
    booking_uuid: str,
    body: SeatChangeIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: Identity = Depends(require_roles(ROLE_ADMIN)),
):
    booking = change_seat(db, booking_uuid, body.seat_number, admin, timeout_ms=settings.BOOKING_TIMEOUT_MS)
    return {"success": True, "message": "Seat updated successfully", "data": booking_out(booking).model_dump()}
