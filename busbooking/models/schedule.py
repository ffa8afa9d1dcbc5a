from datetime import date, datetime, time, timezone
from sqlalchemy import String, Integer, Date, Time, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from busbooking.db.session import Base

SCHEDULE_SCHEDULED = "Scheduled"
SCHEDULE_CANCELLED = "Cancelled"
SCHEDULE_COMPLETED = "Completed"
SCHEDULE_STATUSES = (SCHEDULE_SCHEDULED, SCHEDULE_CANCELLED, SCHEDULE_COMPLETED)

class Schedule(Base):
    __tablename__ = "schedules"
    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="ck_schedules_available_seats_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    route_id: Mapped[str] = mapped_column(String(36), index=True)
    bus_id: Mapped[str] = mapped_column(String(36), index=True)

    travel_date: Mapped[date] = mapped_column(Date, index=True)
    departure_time: Mapped[time] = mapped_column(Time)
    arrival_time: Mapped[time] = mapped_column(Time)

    # Cached bus.total_seats minus Confirmed bookings; only the booking services write it.
    available_seats: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default=SCHEDULE_SCHEDULED, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                                                 onupdate=lambda: datetime.now(timezone.utc))
