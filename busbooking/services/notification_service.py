"""Booking notifications.

The reservation engine calls these after its transaction has committed. They
only enqueue a Celery task; the worker renders and sends the email with its
own retry policy. Nothing here may raise into the booking flow.
"""
import logging
from dataclasses import asdict, dataclass

from busbooking.core.config import Settings

logger = logging.getLogger(__name__)

CONFIRMED = "confirmed"
CANCELLED = "cancelled"


@dataclass
class BookingSummary:
    booking_reference: str
    passenger_name: str
    passenger_email: str | None
    seat_number: str
    route: str
    travel_date: str
    departure_time: str
    amount: str


def render(kind: str, summary: dict, currency: str = "LKR") -> tuple[str, str]:
    ref = summary["booking_reference"]
    if kind == CONFIRMED:
        subject = f"Booking Confirmation - {ref}"
        body = (
            f"Dear {summary['passenger_name']},\n\n"
            "Your bus seat booking has been confirmed.\n\n"
            f"Booking Reference: {ref}\n"
            f"Route: {summary['route']}\n"
            f"Travel Date: {summary['travel_date']}\n"
            f"Departure Time: {summary['departure_time']}\n"
            f"Seat Number: {summary['seat_number']}\n"
            f"Amount Paid: {currency} {summary['amount']}\n\n"
            "Please arrive at the departure point at least 15 minutes before the scheduled time.\n"
        )
    else:
        subject = f"Booking Cancelled - {ref}"
        body = (
            f"Dear {summary['passenger_name']},\n\n"
            f"Your booking {ref} (seat {summary['seat_number']}, {summary['route']}) has been cancelled.\n"
            "Any refund will be processed to the original payment method.\n"
        )
    return subject, body


def _enqueue(kind: str, payload: dict) -> None:
    from busbooking.tasks.jobs import send_booking_notification
    send_booking_notification.delay(kind, payload)


def _dispatch(kind: str, summary: BookingSummary) -> bool:
    try:
        _enqueue(kind, asdict(summary))
        return True
    except Exception:
        logger.exception("could not enqueue %s notification for booking %s", kind, summary.booking_reference)
        return False


def notify_booking_confirmed(summary: BookingSummary) -> bool:
    if not summary.passenger_email:
        return False
    return _dispatch(CONFIRMED, summary)


def notify_booking_cancelled(summary: BookingSummary, settings: Settings | None = None) -> bool:
    if not summary.passenger_email and not (settings and settings.CANCELLATION_FALLBACK_EMAIL):
        return False
    return _dispatch(CANCELLED, summary)
