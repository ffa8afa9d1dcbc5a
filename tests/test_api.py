from busbooking.models.booking import Booking
from busbooking.services.booking_service import cancel_booking, create_booking

from conftest import auth_header, counter, force_counter, make_user, passenger

BODY = {"name": "Nimal Perera", "phone": "0771234567", "email": "nimal@example.com"}


def _book(client, schedule_id, seat, headers=None):
    return client.post("/api/book", json={"scheduleId": schedule_id, "seatNumber": seat, **BODY}, headers=headers or {})


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_register_login_me(client):
    r = client.post("/api/auth/register", json={"email": "Sam@Example.com", "password": "password123", "full_name": "Sam"})
    assert r.status_code == 201
    assert r.json()["role"] == "customer"

    r = client.post("/api/auth/login", json={"email": "sam@example.com", "password": "password123"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["email"] == "sam@example.com"

    assert client.post("/api/auth/login", json={"email": "sam@example.com", "password": "wrong-pass"}).status_code == 401
    assert client.post("/api/auth/register", json={"email": "sam@example.com", "password": "password123"}).status_code == 409


def test_public_listing(client, db, schedule_id):
    routes = client.get("/api/routes").json()
    assert routes["count"] == 1
    route_id = routes["data"][0]["id"]

    schedules = client.get(f"/api/schedules/{route_id}").json()
    assert [s["id"] for s in schedules["data"]] == [schedule_id]
    assert schedules["data"][0]["availableSeats"] == 40


def test_book_and_conflict(client, db, schedule_id):
    r = _book(client, schedule_id, "a1")
    assert r.status_code == 201
    data = r.json()
    assert data["seatNumber"] == "A1"
    assert data["bookingStatus"] == "Confirmed"

    r = _book(client, schedule_id, "A1")
    assert r.status_code == 409
    assert r.json() == {
        "success": False,
        "error": "SeatAlreadyBooked",
        "message": "This seat is already booked. Please select another seat.",
        "refreshSeatMap": True,
    }

    seat_map = client.get(f"/api/seats/{schedule_id}").json()
    assert seat_map["bookedCount"] == 1


def test_book_error_codes(client, db, schedule_id):
    r = client.post("/api/book", json={"scheduleId": schedule_id, "seatNumber": "A1"})
    assert r.status_code == 400
    assert r.json()["error"] == "InvalidRequest"

    assert _book(client, schedule_id, "Z1").json()["error"] == "InvalidSeat"
    assert _book(client, "missing", "A1").status_code == 404

    force_counter(db, schedule_id, 0)
    r = _book(client, schedule_id, "A1")
    assert r.status_code == 409
    assert r.json()["error"] == "ScheduleFull"


def test_booking_detail_and_cancel(client, db, schedule_id):
    ref = _book(client, schedule_id, "A1").json()["bookingReference"]

    detail = client.get(f"/api/booking/{ref}").json()["data"]
    assert detail["origin"] == "Colombo"
    assert detail["seatNumber"] == "A1"

    r = client.patch(f"/api/bookings/{ref}/cancel", json={"reason": "Plans changed"})
    assert r.status_code == 200
    assert r.json()["data"]["bookingStatus"] == "Cancelled"
    assert counter(db, schedule_id) == 40

    r = client.delete(f"/api/booking/{ref}")
    assert r.status_code == 409
    assert r.json()["error"] == "AlreadyCancelled"

    assert client.get("/api/booking/nope").json()["error"] == "NotFound"


def test_cancel_by_delete_without_body(client, db, schedule_id):
    ref = _book(client, schedule_id, "A1").json()["bookingReference"]
    assert client.delete(f"/api/booking/{ref}").status_code == 200
    assert counter(db, schedule_id) == 40


def test_signed_in_non_owner_cannot_cancel(client, db, settings, schedule_id, customer):
    ref = _book(client, schedule_id, "A1", auth_header(settings, customer)).json()["bookingReference"]
    stranger = make_user(db)

    r = client.patch(f"/api/bookings/{ref}/cancel", headers=auth_header(settings, stranger))
    assert r.status_code == 403
    assert r.json()["error"] == "Unauthorized"
    assert counter(db, schedule_id) == 39


def test_my_bookings(client, db, settings, schedule_id, customer, admin):
    assert client.get("/api/bookings").status_code == 401
    _book(client, schedule_id, "A1", auth_header(settings, customer))
    _book(client, schedule_id, "B1")

    mine = client.get("/api/bookings", headers=auth_header(settings, customer)).json()
    assert [b["seatNumber"] for b in mine["data"]] == ["A1"]
    everything = client.get("/api/bookings", headers=auth_header(settings, admin)).json()
    assert everything["count"] == 2


def test_admin_routes_require_admin(client, settings, customer):
    assert client.get("/api/admin/stats").status_code == 401
    r = client.get("/api/admin/stats", headers=auth_header(settings, customer))
    assert r.status_code == 403
    assert r.json()["success"] is False


def test_admin_bulk_cancel(client, db, settings, schedule_id, admin):
    refs = [_book(client, schedule_id, s).json()["bookingReference"] for s in ("A1", "B1")]
    h = auth_header(settings, admin)

    r = client.post("/api/admin/bookings/bulk-cancel", json={"bookingIds": refs + ["missing"]}, headers=h)
    body = r.json()
    assert r.status_code == 200
    assert body["summary"] == {"cancelled": 2, "skipped": 0, "errors": 1}
    assert counter(db, schedule_id) == 40

    too_many = {"bookingIds": ["a", "b", "c", "d"]}
    assert client.post("/api/admin/bookings/bulk-delete", json=too_many, headers=h).status_code == 400
    assert client.post("/api/admin/bookings/bulk-cancel", json={"bookingIds": []}, headers=h).status_code == 400


def test_admin_reactivate_and_change_seat(client, db, settings, schedule_id, admin):
    b = create_booking(db, schedule_id, "A1", passenger())
    ref = b.booking_uuid
    cancel_booking(db, ref, None)
    h = auth_header(settings, admin)

    r = client.post(f"/api/admin/bookings/{ref}/reactivate", headers=h)
    assert r.status_code == 200
    assert r.json()["data"]["bookingStatus"] == "Confirmed"

    r = client.put(f"/api/booking/{ref}/seat", json={"seat_number": "D4"}, headers=h)
    assert r.status_code == 200
    assert r.json()["data"]["seatNumber"] == "D4"
    assert counter(db, schedule_id) == 39

    r = client.post(f"/api/admin/bookings/{ref}/reactivate", headers=h)
    assert r.json()["error"] == "InvalidBookingState"


def test_admin_fleet_and_schedules(client, db, settings, admin):
    h = auth_header(settings, admin)
    r = client.post("/api/admin/buses", json={"bus_number": "nb-1", "bus_type": "semi luxury", "total_seats": 30, "layout_type": "2X1"}, headers=h)
    assert r.status_code == 201
    bus = r.json()["data"]
    assert bus["busType"] == "Semi-Luxury"
    assert bus["layoutType"] == "2x1"
    assert client.post("/api/admin/buses", json={"bus_number": "nb-2", "total_seats": 30, "layout_type": "9x9"}, headers=h).status_code == 400

    r = client.post("/api/admin/routes", json={"origin": "Colombo", "destination": "Galle", "duration": "2h", "base_price": "650"}, headers=h)
    assert r.status_code == 201
    route = r.json()["data"]

    r = client.post("/api/admin/schedules", json={
        "route_id": route["id"], "bus_id": bus["id"], "travel_date": "2099-01-01",
        "departure_time": "06:00", "arrival_time": "08:00",
    }, headers=h)
    assert r.status_code == 201
    sid = r.json()["data"]["id"]
    assert r.json()["data"]["availableSeats"] == 30

    r = client.patch(f"/api/admin/schedules/{sid}", json={"available_seats": 1}, headers=h)
    assert r.status_code == 400

    _book(client, sid, "C10")
    r = client.patch(f"/api/admin/schedules/{sid}/status", json={"status": "Cancelled"}, headers=h)
    assert r.json()["data"]["cancelledBookings"] == 1
    assert counter(db, sid) == 30

    r = client.delete(f"/api/admin/schedules/{sid}", headers=h)
    assert r.status_code == 409
    assert r.json()["error"] == "ScheduleInUse"


def test_admin_reports_and_reconcile(client, db, settings, schedule_id, admin):
    h = auth_header(settings, admin)
    _book(client, schedule_id, "A1")
    force_counter(db, schedule_id, 3)

    assert client.get("/api/admin/stats", headers=h).json()["data"]["totalBookings"] == 1
    assert client.get("/api/admin/reports/occupancy", headers=h).json()["data"][0]["bookedSeats"] == 1
    assert client.get("/api/admin/reports/popular-routes", headers=h).json()["data"][0]["totalBookings"] == 1
    assert client.get("/api/admin/reports/revenue", headers=h).status_code == 200

    r = client.post("/api/admin/maintenance/reconcile-seats?fix=true", headers=h)
    assert r.json()["data"]["drifted"] == 1
    assert counter(db, schedule_id) == 39
    assert db.query(Booking).count() == 1
