from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from busbooking.core.config import Settings


class Base(DeclarativeBase):
    pass


# Bound to an engine by init_engine() at startup (API, worker, seed).
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def make_engine(settings: Settings) -> Engine:
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": settings.BOOKING_TIMEOUT_MS / 1000},
        )
    return create_engine(url, pool_pre_ping=True)


def init_engine(settings: Settings) -> Engine:
    engine = make_engine(settings)
    SessionLocal.configure(bind=engine)
    return engine


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
