"""Typed errors raised by the reservation engine.

Each error carries a stable machine-readable ``kind`` and the HTTP status the
API boundary maps it to.
"""


class BookingError(Exception):
    kind = "BookingError"
    status_code = 400
    default_message = "Booking request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(BookingError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"


class SeatAlreadyBooked(BookingError):
    kind = "SeatAlreadyBooked"
    status_code = 409
    default_message = "This seat is already booked. Please select another seat."


class ScheduleFull(BookingError):
    kind = "ScheduleFull"
    status_code = 409
    default_message = "No seats left on this schedule"


class ScheduleNotBookable(BookingError):
    kind = "ScheduleNotBookable"
    status_code = 400
    default_message = "Schedule is not open for booking"


class InvalidSeat(BookingError):
    kind = "InvalidSeat"
    status_code = 400
    default_message = "Seat does not exist on this bus"


class AlreadyCancelled(BookingError):
    kind = "AlreadyCancelled"
    status_code = 409
    default_message = "Booking is already cancelled"


class InvalidBookingState(BookingError):
    kind = "InvalidBookingState"
    status_code = 409
    default_message = "Booking cannot be changed in its current state"


class ScheduleInUse(BookingError):
    kind = "ScheduleInUse"
    status_code = 409
    default_message = "Schedule has bookings"


class Unauthorized(BookingError):
    kind = "Unauthorized"
    status_code = 403
    default_message = "You do not have permission to change this booking"


class Timeout(BookingError):
    kind = "Timeout"
    status_code = 504
    default_message = "Booking request timed out, please try again"


class InvalidRequest(BookingError):
    kind = "InvalidRequest"
    status_code = 400
    default_message = "Invalid request"
