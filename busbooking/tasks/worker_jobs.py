import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError

from busbooking.core.config import Settings, get_settings
from busbooking.db.session import SessionLocal
from busbooking.services import notification_service
from busbooking.services.email_service import process_pending_emails, queue_email
from busbooking.services.seat_map_service import reconcile_seat_counters as _reconcile

logger = logging.getLogger(__name__)


def send_booking_notification(kind: str, summary: dict, settings: Settings | None = None) -> dict:
    """Render and send one booking email. Failed sends stay in the outbox for process_email_queue."""
    settings = settings or get_settings()
    to_email = summary.get("passenger_email") or ""
    bcc = ""
    if kind == notification_service.CANCELLED:
        to_email = to_email or settings.CANCELLATION_FALLBACK_EMAIL
        bcc = settings.CANCELLATION_BCC_EMAIL
    if not to_email:
        return {"skipped": True, "reason": "no_recipient"}

    subject, body = notification_service.render(kind, summary, settings.CURRENCY)
    db: Session = SessionLocal()
    try:
        eid = queue_email(db, settings, to_email, subject, body,
                          related_booking_ref=summary.get("booking_reference", ""), bcc_email=bcc)
        return {"emailId": eid}
    finally:
        db.close()


def process_email_queue(limit: int = 50, settings: Settings | None = None) -> dict:
    """Process queued/failed emails (retry send). Run periodically via Celery beat."""
    db: Session = SessionLocal()
    try:
        try:
            return process_pending_emails(db, settings or get_settings(), limit=limit)
        except ProgrammingError:
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
    finally:
        db.close()


def reconcile_seat_counters(fix: bool = False) -> dict:
    db: Session = SessionLocal()
    try:
        try:
            result = _reconcile(db, fix=fix)
        except ProgrammingError:
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        if result["drifted"]:
            logger.warning("seat counter drift on %s schedule(s)", result["drifted"])
        return result
    finally:
        db.close()
