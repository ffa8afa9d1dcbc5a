import os
import uuid
from datetime import date, time, timedelta
from decimal import Decimal

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import update  # noqa: E402

from busbooking.core.config import Settings  # noqa: E402
from busbooking.core.security import Identity, ROLE_ADMIN, ROLE_CUSTOMER, create_access_token, hash_password  # noqa: E402
from busbooking.db.session import Base, SessionLocal, init_engine  # noqa: E402
from busbooking.main import create_app  # noqa: E402
from busbooking.models.audit_log import AuditLog  # noqa: E402,F401
from busbooking.models.booking import Booking  # noqa: E402,F401
from busbooking.models.bus import Bus  # noqa: E402
from busbooking.models.email_log import EmailLog  # noqa: E402,F401
from busbooking.models.route import Route  # noqa: E402
from busbooking.models.schedule import Schedule  # noqa: E402
from busbooking.models.user import User  # noqa: E402
from busbooking.services import notification_service  # noqa: E402
from busbooking.services.booking_service import PassengerInfo  # noqa: E402
from busbooking.services.schedule_service import create_schedule  # noqa: E402

TOMORROW = date.today() + timedelta(days=1)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        SECRET_KEY="test-secret",
        DATABASE_URL=f"sqlite:///{tmp_path / 'busbooking.db'}",
        BOOKING_TIMEOUT_MS=5000,
        BULK_MAX_ITEMS=3,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def engine(settings):
    engine = init_engine(settings)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(settings, engine):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture(autouse=True)
def sent(monkeypatch):
    """Captured notifications instead of Celery."""
    calls = []
    monkeypatch.setattr(notification_service, "_enqueue", lambda kind, payload: calls.append((kind, payload)))
    return calls


def make_route(db, origin="Colombo", destination="Kandy", price="850.00") -> Route:
    r = Route(id=str(uuid.uuid4()), origin=origin, destination=destination, duration="3h 30m",
              distance_km=115, base_price=Decimal(price))
    db.add(r)
    db.commit()
    return r


def make_bus(db, total_seats=40, layout="2x2", is_active=True) -> Bus:
    b = Bus(id=str(uuid.uuid4()), bus_number=f"NB-{uuid.uuid4().hex[:6].upper()}", bus_type="AC",
            total_seats=total_seats, layout_type=layout, is_active=is_active)
    db.add(b)
    db.commit()
    return b


def make_schedule(db, route=None, bus=None, travel_date=TOMORROW, total_seats=40, layout="2x2") -> str:
    route = route or make_route(db)
    bus = bus or make_bus(db, total_seats, layout)
    return create_schedule(db, route.id, bus.id, travel_date, time(8, 0), time(11, 30)).id


def make_user(db, role=ROLE_CUSTOMER, email=None) -> User:
    u = User(id=str(uuid.uuid4()), email=email or f"{uuid.uuid4().hex[:8]}@example.com", full_name="Test User",
             role=role, password_hash=hash_password("password123"), is_active=True)
    db.add(u)
    db.commit()
    return u


def identity(user: User) -> Identity:
    return Identity(user_id=user.id, role=user.role)


def auth_header(settings, user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(settings, user.id, user.role)}"}


def counter(db, schedule_id: str) -> int:
    db.expire_all()
    return db.get(Schedule, schedule_id).available_seats


def force_counter(db, schedule_id: str, value: int) -> None:
    db.execute(update(Schedule).where(Schedule.id == schedule_id).values(available_seats=value))
    db.commit()


def passenger(name="Nimal Perera", email="nimal@example.com") -> PassengerInfo:
    return PassengerInfo(name=name, phone="0771234567", email=email)


@pytest.fixture
def schedule_id(db):
    return make_schedule(db)


@pytest.fixture
def admin(db):
    return make_user(db, ROLE_ADMIN)


@pytest.fixture
def customer(db):
    return make_user(db, ROLE_CUSTOMER)
