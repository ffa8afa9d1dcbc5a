from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from busbooking.models.booking import Booking, BOOKING_CANCELLED, BOOKING_CONFIRMED, PAYMENT_PAID
from busbooking.models.bus import Bus
from busbooking.models.route import Route
from busbooking.models.schedule import Schedule, SCHEDULE_SCHEDULED
from busbooking.models.user import User


def _money(v) -> float:
    return float(Decimal(v or 0).quantize(Decimal("0.01")))


def dashboard_stats(db: Session, today: date | None = None) -> dict:
    today = today or date.today()
    confirmed = db.query(func.count(Booking.id)).filter(Booking.booking_status == BOOKING_CONFIRMED).scalar() or 0
    cancelled = db.query(func.count(Booking.id)).filter(Booking.booking_status == BOOKING_CANCELLED).scalar() or 0
    revenue = db.query(func.coalesce(func.sum(Booking.amount_paid), 0)).filter(Booking.payment_status == PAYMENT_PAID).scalar()
    today_bookings = (
        db.query(func.count(Booking.id))
        .filter(func.date(Booking.booked_at) == today.isoformat(), Booking.booking_status == BOOKING_CONFIRMED)
        .scalar() or 0
    )
    upcoming = (
        db.query(func.count(Schedule.id))
        .filter(Schedule.travel_date >= today, Schedule.status == SCHEDULE_SCHEDULED)
        .scalar() or 0
    )
    active_users = db.query(func.count(User.id)).filter(User.is_active == True).scalar() or 0  # noqa: E712
    total = confirmed + cancelled
    return {
        "totalBookings": int(confirmed),
        "totalRevenue": _money(revenue),
        "todayBookings": int(today_bookings),
        "upcomingTrips": int(upcoming),
        "activeUsers": int(active_users),
        "cancellationRate": round(cancelled / total * 100, 2) if total else 0.0,
    }


def revenue_by_day(db: Session, start: date | None = None, end: date | None = None, today: date | None = None) -> list[dict]:
    today = today or date.today()
    if not (start and end):
        start, end = today - timedelta(days=30), today
    day = func.date(Booking.booked_at)
    rows = (
        db.query(day.label("d"), func.count(Booking.id), func.coalesce(func.sum(Booking.amount_paid), 0))
        .filter(Booking.payment_status == PAYMENT_PAID, day >= start.isoformat(), day <= end.isoformat())
        .group_by(day)
        .order_by(day.desc())
        .all()
    )
    return [{"date": str(d), "bookings": int(n), "revenue": _money(r)} for d, n, r in rows]


def popular_routes(db: Session, limit: int = 10) -> list[dict]:
    n = func.count(Booking.id)
    rows = (
        db.query(Route.id, Route.origin, Route.destination, Route.base_price, n, func.coalesce(func.sum(Booking.amount_paid), 0))
        .outerjoin(Schedule, Schedule.route_id == Route.id)
        .outerjoin(Booking, (Booking.schedule_id == Schedule.id) & (Booking.booking_status == BOOKING_CONFIRMED))
        .group_by(Route.id, Route.origin, Route.destination, Route.base_price)
        .order_by(n.desc())
        .limit(limit)
        .all()
    )
    return [{
        "routeId": rid, "origin": o, "destination": d, "basePrice": _money(p),
        "totalBookings": int(c), "totalRevenue": _money(r),
    } for rid, o, d, p, c, r in rows]


def occupancy(db: Session, limit: int = 20, today: date | None = None) -> list[dict]:
    """Upcoming trips; booked seats come from the ledger, not the cached counter."""
    today = today or date.today()
    booked = (
        db.query(Booking.schedule_id.label("sid"), func.count(Booking.id).label("n"))
        .filter(Booking.booking_status == BOOKING_CONFIRMED)
        .group_by(Booking.schedule_id)
        .subquery()
    )
    rows = (
        db.query(Schedule, Route, Bus, func.coalesce(booked.c.n, 0))
        .join(Route, Route.id == Schedule.route_id)
        .join(Bus, Bus.id == Schedule.bus_id)
        .outerjoin(booked, booked.c.sid == Schedule.id)
        .filter(Schedule.travel_date >= today, Schedule.status == SCHEDULE_SCHEDULED)
        .order_by(Schedule.travel_date, Schedule.departure_time)
        .limit(limit)
        .all()
    )
    return [{
        "scheduleId": s.id,
        "origin": r.origin,
        "destination": r.destination,
        "travelDate": s.travel_date.isoformat(),
        "departureTime": s.departure_time.strftime("%H:%M"),
        "busNumber": b.bus_number,
        "totalSeats": b.total_seats,
        "bookedSeats": int(n),
        "availableSeats": s.available_seats,
        "occupancyRate": round(int(n) / b.total_seats * 100, 2) if b.total_seats else 0.0,
    } for s, r, b, n in rows]
