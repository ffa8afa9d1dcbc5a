"""Bulk booking actions.

Each id gets its own transaction, so one bad id never rolls back the others.
Results are grouped as done / skipped (idempotent no-ops) / errors.
"""
import logging
from typing import Callable

from sqlalchemy.orm import Session

from busbooking.core.config import Settings
from busbooking.core.errors import AlreadyCancelled, BookingError, InvalidBookingState
from busbooking.core.security import Identity
from busbooking.services.booking_service import cancel_booking, delete_booking, reactivate_booking

logger = logging.getLogger(__name__)

SKIPPABLE = (AlreadyCancelled, InvalidBookingState)


def _unique(ids: list[str]) -> list[str]:
    seen = set()
    out = []
    for i in ids:
        i = (i or "").strip()
        if i and i not in seen:
            seen.add(i)
            out.append(i)
    return out


def _run(db: Session, verb: str, ids: list[str], op: Callable[[str], object]) -> dict:
    done, skipped, errors = [], [], []
    for booking_id in _unique(ids):
        try:
            op(booking_id)
            done.append(booking_id)
        except SKIPPABLE as e:
            skipped.append({"id": booking_id, "reason": e.kind, "message": e.message})
        except BookingError as e:
            errors.append({"id": booking_id, "error": e.kind, "message": e.message})
        except Exception:
            # booking_transaction already rolled back; keep going with the rest
            logger.exception("bulk %s failed for booking %s", verb, booking_id)
            db.rollback()
            errors.append({"id": booking_id, "error": "InternalError", "message": "Unexpected error"})
    logger.info("bulk %s: %s done, %s skipped, %s errors", verb, len(done), len(skipped), len(errors))
    return {
        "summary": {verb: len(done), "skipped": len(skipped), "errors": len(errors)},
        "results": {verb: done, "skipped": skipped, "errors": errors},
    }


def bulk_cancel(db: Session, ids: list[str], actor: Identity, settings: Settings) -> dict:
    return _run(db, "cancelled", ids, lambda i: cancel_booking(
        db, i, actor, "Cancelled by admin", settings=settings, timeout_ms=settings.BOOKING_TIMEOUT_MS,
    ))


def bulk_delete(db: Session, ids: list[str], actor: Identity, settings: Settings) -> dict:
    return _run(db, "deleted", ids, lambda i: delete_booking(db, i, actor, timeout_ms=settings.BOOKING_TIMEOUT_MS))


def bulk_reactivate(db: Session, ids: list[str], actor: Identity, settings: Settings) -> dict:
    return _run(db, "reactivated", ids, lambda i: reactivate_booking(db, i, actor, timeout_ms=settings.BOOKING_TIMEOUT_MS))
