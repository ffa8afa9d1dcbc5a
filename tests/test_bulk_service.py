from busbooking.services.booking_service import cancel_booking, create_booking
from busbooking.services.bulk_service import bulk_cancel, bulk_delete, bulk_reactivate

from conftest import counter, identity, passenger


def _book(db, schedule_id, *seats):
    return [create_booking(db, schedule_id, s, passenger()).booking_uuid for s in seats]


def test_bulk_cancel_partial_failure(db, schedule_id, admin, settings):
    live, done = _book(db, schedule_id, "A1", "B1")
    cancel_booking(db, done, None)

    out = bulk_cancel(db, [live, done, "missing-ref"], identity(admin), settings)

    assert out["summary"] == {"cancelled": 1, "skipped": 1, "errors": 1}
    assert out["results"]["cancelled"] == [live]
    assert out["results"]["skipped"][0]["reason"] == "AlreadyCancelled"
    assert out["results"]["errors"][0] == {"id": "missing-ref", "error": "NotFound", "message": "Booking not found"}
    assert counter(db, schedule_id) == 40


def test_bulk_cancel_ignores_duplicates(db, schedule_id, admin, settings):
    (ref,) = _book(db, schedule_id, "A1")
    out = bulk_cancel(db, [ref, ref, " "], identity(admin), settings)
    assert out["summary"]["cancelled"] == 1
    assert out["summary"]["skipped"] == 0
    assert counter(db, schedule_id) == 40


def test_bulk_delete_releases_only_confirmed_seats(db, schedule_id, admin, settings):
    live, done, other = _book(db, schedule_id, "A1", "B1", "C1")
    cancel_booking(db, done, None)
    assert counter(db, schedule_id) == 38

    out = bulk_delete(db, [live, done], identity(admin), settings)

    assert out["summary"] == {"deleted": 2, "skipped": 0, "errors": 0}
    assert counter(db, schedule_id) == 39


def test_bulk_reactivate_reports_conflicts(db, schedule_id, admin, settings):
    a, b = _book(db, schedule_id, "A1", "B1")
    cancel_booking(db, a, None)
    cancel_booking(db, b, None)
    create_booking(db, schedule_id, "B1", passenger("Kamal"))
    (live,) = _book(db, schedule_id, "C1")

    out = bulk_reactivate(db, [a, b, live], identity(admin), settings)

    assert out["results"]["reactivated"] == [a]
    assert out["results"]["errors"][0]["error"] == "SeatAlreadyBooked"
    assert out["results"]["skipped"][0]["id"] == live
    assert counter(db, schedule_id) == 37


def test_bulk_keeps_going_after_unexpected_error(db, schedule_id, admin, settings, monkeypatch):
    from busbooking.services import bulk_service

    first, second = _book(db, schedule_id, "A1", "B1")
    real = bulk_service.cancel_booking

    def flaky(db_, ref, *args, **kwargs):
        if ref == first:
            raise RuntimeError("boom")
        return real(db_, ref, *args, **kwargs)
    monkeypatch.setattr(bulk_service, "cancel_booking", flaky)

    out = bulk_cancel(db, [first, second], identity(admin), settings)

    assert out["summary"] == {"cancelled": 1, "skipped": 0, "errors": 1}
    assert out["results"]["errors"][0]["error"] == "InternalError"
    assert counter(db, schedule_id) == 39
