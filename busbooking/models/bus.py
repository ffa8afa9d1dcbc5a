from sqlalchemy import String, Integer, DateTime, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from busbooking.db.session import Base

BUS_TYPES = ("AC", "Non-AC", "Luxury", "Semi-Luxury")

class Bus(Base):
    __tablename__ = "buses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    bus_number: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    bus_type: Mapped[str] = mapped_column(String(20), default="Non-AC")  # AC, Non-AC, Luxury, Semi-Luxury
    total_seats: Mapped[int] = mapped_column(Integer)
    layout_type: Mapped[str] = mapped_column(String(10), default="2x2")  # seats left x right of the aisle
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
