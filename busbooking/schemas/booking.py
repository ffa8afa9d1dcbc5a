from pydantic import BaseModel, Field
from typing import List, Optional

class BookingCreate(BaseModel):
    scheduleId: str
    seatNumber: str = Field(min_length=1, max_length=8)
    name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=40)
    email: Optional[str] = None  # plain str to allow .local and other dev domains

class BookingOut(BaseModel):
    bookingId: str
    bookingReference: str
    scheduleId: str
    seatNumber: str
    passengerName: str
    bookingStatus: str
    paymentStatus: str
    amountPaid: float

class CancelIn(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=255)

class SeatChangeIn(BaseModel):
    seat_number: str = Field(min_length=1, max_length=8)

class BulkBookingIds(BaseModel):
    bookingIds: List[str] = Field(min_length=1)
