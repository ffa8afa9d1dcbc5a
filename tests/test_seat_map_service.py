import pytest

from busbooking.core.errors import NotFound
from busbooking.services.booking_service import create_booking
from busbooking.services.seat_map_service import (
    find_counter_drift, get_available_count, get_seat_map, reconcile_seat_counters,
)

from conftest import counter, force_counter, make_schedule, passenger


def test_seat_map_shape(db, schedule_id):
    create_booking(db, schedule_id, "C2", passenger())
    seat_map = get_seat_map(db, schedule_id)

    assert seat_map["totalSeats"] == 40
    assert seat_map["layout"] == "2x2"
    assert len(seat_map["data"]) == 40
    booked = [s["seatNumber"] for s in seat_map["data"] if s["status"] == "booked"]
    assert booked == ["C2"]
    c2 = next(s for s in seat_map["data"] if s["seatNumber"] == "C2")
    assert c2 == {"seatNumber": "C2", "row": 2, "column": "C", "status": "booked", "isAisle": True}


def test_seat_map_unknown_schedule(db):
    with pytest.raises(NotFound):
        get_seat_map(db, "missing")


def test_live_count_ignores_cached_counter(db, schedule_id):
    create_booking(db, schedule_id, "A1", passenger())
    force_counter(db, schedule_id, 5)
    assert get_available_count(db, schedule_id) == 39


def test_reconcile_reports_then_fixes_drift(db, schedule_id):
    create_booking(db, schedule_id, "A1", passenger())
    healthy = make_schedule(db)
    force_counter(db, schedule_id, 12)

    report = reconcile_seat_counters(db)
    assert report["checked"] == 2
    assert report["drifted"] == 1
    assert report["fixed"] is False
    assert report["items"] == [{"scheduleId": schedule_id, "recorded": 12, "expected": 39}]
    assert counter(db, schedule_id) == 12

    reconcile_seat_counters(db, fix=True)
    assert counter(db, schedule_id) == 39
    assert counter(db, healthy) == 40
    assert find_counter_drift(db) == []


def test_reconcile_job_repairs_counters(engine, db, schedule_id):
    from busbooking.tasks import worker_jobs

    force_counter(db, schedule_id, 1)
    out = worker_jobs.reconcile_seat_counters(fix=True)
    assert out["drifted"] == 1
    assert counter(db, schedule_id) == 40
