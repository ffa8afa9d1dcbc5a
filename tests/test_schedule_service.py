from datetime import time

import pytest
from pydantic import ValidationError

from busbooking.core.errors import InvalidRequest, InvalidSeat, NotFound, ScheduleInUse
from busbooking.models.booking import Booking
from busbooking.models.schedule import Schedule
from busbooking.services import notification_service
from busbooking.services.booking_service import cancel_booking, create_booking
from busbooking.services.schedule_service import (
    SchedulePatch, create_schedule, delete_schedule, list_schedules, set_schedule_status,
    update_schedule, upcoming_for_route,
)

from conftest import TOMORROW, counter, make_bus, make_route, make_schedule, passenger


def test_create_schedule_starts_with_full_capacity(db):
    route, bus = make_route(db), make_bus(db, 49, "2x3")
    s = create_schedule(db, route.id, bus.id, TOMORROW, time(6, 0), time(9, 30))
    assert s.available_seats == 49
    assert s.status == "Scheduled"


def test_create_schedule_validation(db):
    route, bus = make_route(db), make_bus(db)
    with pytest.raises(NotFound):
        create_schedule(db, "nope", bus.id, TOMORROW, time(6, 0), time(9, 0))
    with pytest.raises(InvalidRequest):
        create_schedule(db, route.id, bus.id, TOMORROW, time(6, 0), time(6, 0))
    idle = make_bus(db, is_active=False)
    with pytest.raises(InvalidRequest):
        create_schedule(db, route.id, idle.id, TOMORROW, time(6, 0), time(9, 0))


def test_cancelling_schedule_cascades_to_bookings(db, schedule_id, sent):
    a = create_booking(db, schedule_id, "A1", passenger())
    create_booking(db, schedule_id, "B1", passenger(email=None))
    c = create_booking(db, schedule_id, "C1", passenger())
    cancel_booking(db, c.booking_uuid, None)
    sent.clear()

    out = set_schedule_status(db, schedule_id, "Cancelled")

    assert out["cancelledBookings"] == 2
    db.expire_all()
    statuses = {b.booking_status for b in db.query(Booking).all()}
    assert statuses == {"Cancelled"}
    assert db.get(Booking, a.id).cancellation_reason == "Schedule cancelled"
    assert db.get(Booking, a.id).payment_status == "Refunded"
    assert counter(db, schedule_id) == 40
    assert [k for k, _ in sent] == [notification_service.CANCELLED]


def test_invalid_status(db, schedule_id):
    with pytest.raises(InvalidRequest):
        set_schedule_status(db, schedule_id, "Delayed")


def test_bus_swap_recomputes_counter(db, schedule_id):
    create_booking(db, schedule_id, "A1", passenger())
    create_booking(db, schedule_id, "B1", passenger())
    smaller = make_bus(db, 30, "2x1")

    update_schedule(db, schedule_id, SchedulePatch(bus_id=smaller.id))

    db.expire_all()
    s = db.get(Schedule, schedule_id)
    assert s.bus_id == smaller.id
    assert s.available_seats == 28


def test_bus_swap_rejects_missing_seats(db, schedule_id):
    create_booking(db, schedule_id, "D5", passenger())
    narrow = make_bus(db, 30, "2x1")
    with pytest.raises(InvalidSeat):
        update_schedule(db, schedule_id, SchedulePatch(bus_id=narrow.id))
    assert counter(db, schedule_id) == 39


def test_route_change_blocked_by_bookings(db, schedule_id):
    create_booking(db, schedule_id, "A1", passenger())
    other = make_route(db, "Colombo", "Galle")
    with pytest.raises(ScheduleInUse):
        update_schedule(db, schedule_id, SchedulePatch(route_id=other.id))


def test_patch_times_and_status(db, schedule_id):
    create_booking(db, schedule_id, "A1", passenger())
    update_schedule(db, schedule_id, SchedulePatch(departure_time=time(7, 0), status="Cancelled"))
    db.expire_all()
    s = db.get(Schedule, schedule_id)
    assert s.departure_time == time(7, 0)
    assert s.status == "Cancelled"
    assert s.available_seats == 40


def test_patch_rejects_counter_and_empty(db, schedule_id):
    with pytest.raises(ValidationError):
        SchedulePatch(available_seats=3)
    with pytest.raises(InvalidRequest):
        update_schedule(db, schedule_id, SchedulePatch())


def test_delete_schedule(db):
    sid = make_schedule(db)
    delete_schedule(db, sid)
    assert db.get(Schedule, sid) is None
    with pytest.raises(NotFound):
        delete_schedule(db, sid)


def test_delete_schedule_with_any_booking_is_blocked(db, schedule_id):
    b = create_booking(db, schedule_id, "A1", passenger())
    cancel_booking(db, b.booking_uuid, None)
    with pytest.raises(ScheduleInUse):
        delete_schedule(db, schedule_id)


def test_listing(db):
    route = make_route(db)
    sid = make_schedule(db, route=route)
    cancelled = make_schedule(db, route=route)
    set_schedule_status(db, cancelled, "Cancelled")

    assert [s.id for s, _, _ in upcoming_for_route(db, route.id)] == [sid]
    assert len(list_schedules(db, route_id=route.id)) == 2
    assert [s.id for s, _, _ in list_schedules(db, status="Cancelled")] == [cancelled]
