import logging
from datetime import datetime, timezone
import smtplib
from email.message import EmailMessage
from sqlalchemy.orm import Session
import uuid
import requests

from busbooking.core.config import Settings
from busbooking.models.email_log import EmailLog

logger = logging.getLogger(__name__)

MAX_SEND_ATTEMPTS = 8


def queue_email(db: Session, settings: Settings, to_email: str, subject: str, body: str,
                related_booking_ref: str = "", bcc_email: str = "") -> str:
    """Queue and attempt immediate send. Body is stored so the worker can retry on failure."""
    eid = str(uuid.uuid4())
    log = EmailLog(
        id=eid,
        to_email=to_email,
        bcc_email=bcc_email or "",
        subject=subject,
        body=body,
        status="queued",
        attempts=0,
        related_booking_ref=related_booking_ref,
    )
    db.add(log)
    db.commit()

    _attempt(settings, log)
    db.commit()
    return eid


def _attempt(settings: Settings, log: EmailLog) -> bool:
    log.attempts = (log.attempts or 0) + 1
    try:
        send_email(settings, log.to_email, log.subject, log.body or "", bcc_email=log.bcc_email)
    except Exception:
        logger.warning("email %s to %s failed (attempt %s)", log.id, log.to_email, log.attempts, exc_info=True)
        log.status = "failed"
        return False
    log.status = "sent"
    log.sent_at = datetime.now(timezone.utc)
    return True


def send_email(settings: Settings, to_email: str, subject: str, body: str, bcc_email: str = ""):
    """Send email via SendGrid if configured, otherwise SMTP (MailHog recommended for local)."""

    if settings.SENDGRID_API_KEY:
        _send_via_sendgrid(settings, to_email, subject, body, bcc_email)
        return

    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    if bcc_email:
        msg["Bcc"] = bcc_email
    msg["Subject"] = subject
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(msg)


def _send_via_sendgrid(settings: Settings, to_email: str, subject: str, body: str, bcc_email: str = ""):
    from_email = settings.SENDGRID_FROM_EMAIL or settings.SMTP_FROM
    personalization = {"to": [{"email": to_email}]}
    if bcc_email:
        personalization["bcc"] = [{"email": bcc_email}]
    payload = {
        "personalizations": [personalization],
        "from": {"email": from_email},
        "subject": subject,
        "content": [{"type": "text/plain", "value": body}],
    }

    r = requests.post(
        "https://api.sendgrid.com/v3/mail/send",
        json=payload,
        headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
        timeout=20,
    )
    if r.status_code >= 400:
        raise RuntimeError(f"SendGrid error {r.status_code}: {r.text}")


def process_pending_emails(db: Session, settings: Settings, limit: int = 50) -> dict:
    """Retry up to `limit` queued or failed emails that still have attempts left. Returns counts."""
    pending = (
        db.query(EmailLog)
        .filter(
            EmailLog.status.in_(["queued", "failed"]),
            EmailLog.attempts < MAX_SEND_ATTEMPTS,
            EmailLog.body.isnot(None),
            EmailLog.body != "",
        )
        .order_by(EmailLog.created_at.asc())
        .limit(limit)
        .all()
    )
    sent = sum(1 for log in pending if _attempt(settings, log))
    if pending:
        db.commit()
    return {"processed": len(pending), "sent": sent, "failed": len(pending) - sent}
