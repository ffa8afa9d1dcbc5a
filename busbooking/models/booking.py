from decimal import Decimal
from sqlalchemy import String, DateTime, Numeric, Index, text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from busbooking.db.session import Base

BOOKING_CONFIRMED = "Confirmed"
BOOKING_CANCELLED = "Cancelled"
BOOKING_COMPLETED = "Completed"

PAYMENT_PAID = "Paid"
PAYMENT_REFUNDED = "Refunded"

class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        # At most one Confirmed booking per seat per schedule.
        Index(
            "uq_bookings_schedule_seat_confirmed",
            "schedule_id", "seat_number",
            unique=True,
            postgresql_where=text("booking_status = 'Confirmed'"),
            sqlite_where=text("booking_status = 'Confirmed'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_uuid: Mapped[str] = mapped_column(String(36), unique=True, index=True)  # public reference

    schedule_id: Mapped[str] = mapped_column(String(36), index=True)
    user_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)  # null = guest

    seat_number: Mapped[str] = mapped_column(String(8))
    passenger_name: Mapped[str] = mapped_column(String(200))
    passenger_phone: Mapped[str] = mapped_column(String(40))
    passenger_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    booking_status: Mapped[str] = mapped_column(String(20), default=BOOKING_CONFIRMED, index=True)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    payment_status: Mapped[str] = mapped_column(String(20), default=PAYMENT_PAID)

    cancellation_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    booked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                                                 onupdate=lambda: datetime.now(timezone.utc))
