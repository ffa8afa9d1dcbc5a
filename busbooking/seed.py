import logging
import uuid
from datetime import date, time, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError

from busbooking.db.session import SessionLocal, init_engine
from busbooking.core.config import get_settings
from busbooking.core.logging import setup_logging
from busbooking.core.security import ROLE_ADMIN, ROLE_CUSTOMER, hash_password
from busbooking.models.user import User
from busbooking.models.route import Route
from busbooking.models.bus import Bus
from busbooking.models.schedule import Schedule
from busbooking.services.schedule_service import create_schedule

logger = logging.getLogger(__name__)

ROUTES = [
    # origin, destination, duration, km, price
    ("Colombo", "Kandy", "3h 30m", 115, "850.00"),
    ("Kandy", "Colombo", "3h 30m", 115, "850.00"),
    ("Colombo", "Galle", "2h 15m", 126, "650.00"),
    ("Galle", "Colombo", "2h 15m", 126, "650.00"),
    ("Colombo", "Jaffna", "8h 00m", 396, "2200.00"),
]

BUSES = [
    # number, type, seats, layout
    ("NB-1234", "AC", 40, "2x2"),
    ("NC-5678", "Non-AC", 49, "2x3"),
    ("ND-9012", "Luxury", 30, "2x1"),
]

DEPARTURES = [(time(6, 0), time(9, 30)), (time(14, 0), time(17, 30))]


def ensure_user(db: Session, email: str, password: str, role: str, name: str):
    u = db.query(User).filter(User.email == email).first()
    if u:
        return
    db.add(
        User(
            id=str(uuid.uuid4()),
            email=email,
            full_name=name,
            role=role,
            password_hash=hash_password(password),
            is_active=True,
        )
    )
    db.commit()


def ensure_route(db: Session, origin: str, destination: str, duration: str, km: int, price: str) -> Route:
    r = db.query(Route).filter(Route.origin == origin, Route.destination == destination).first()
    if r:
        return r
    r = Route(id=str(uuid.uuid4()), origin=origin, destination=destination, duration=duration,
              distance_km=km, base_price=Decimal(price))
    db.add(r)
    db.commit()
    return r


def ensure_bus(db: Session, number: str, bus_type: str, seats: int, layout: str) -> Bus:
    b = db.query(Bus).filter(Bus.bus_number == number).first()
    if b:
        return b
    b = Bus(id=str(uuid.uuid4()), bus_number=number, bus_type=bus_type, total_seats=seats, layout_type=layout, is_active=True)
    db.add(b)
    db.commit()
    return b


def run(db=None, days: int = 7):
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM users LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            logger.warning("users table not found yet; skipping seed (run alembic upgrade head)")
            return

        ensure_user(db, "admin@busbooking.local", "admin12345", ROLE_ADMIN, "Admin")
        ensure_user(db, "customer@busbooking.local", "customer12345", ROLE_CUSTOMER, "Demo Customer")

        routes = [ensure_route(db, *r) for r in ROUTES]
        buses = [ensure_bus(db, *b) for b in BUSES]

        created = 0
        today = date.today()
        for offset in range(days):
            day = today + timedelta(days=offset)
            for i, route in enumerate(routes):
                bus = buses[i % len(buses)]
                for dep, arr in DEPARTURES:
                    exists = db.query(Schedule).filter(
                        Schedule.route_id == route.id,
                        Schedule.travel_date == day,
                        Schedule.departure_time == dep,
                    ).first()
                    if exists:
                        continue
                    create_schedule(db, route.id, bus.id, day, dep, arr, "system")
                    created += 1
        logger.info("seed done: %s routes, %s buses, %s new schedules", len(routes), len(buses), created)
    finally:
        db.close()


if __name__ == "__main__":
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    init_engine(settings)
    run()
