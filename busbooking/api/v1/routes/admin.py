import uuid
from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from busbooking.api.deps import get_settings, require_roles
from busbooking.api.v1.routes.bookings import booking_out
from busbooking.api.v1.routes.public import route_out, schedule_out
from busbooking.core.config import Settings
from busbooking.core.security import Identity, ROLE_ADMIN
from busbooking.db.session import get_db
from busbooking.models.bus import Bus, BUS_TYPES
from busbooking.models.route import Route
from busbooking.schemas.booking import BulkBookingIds
from busbooking.schemas.schedule import BusIn, RouteIn, ScheduleIn, ScheduleStatusIn
from busbooking.services import report_service
from busbooking.services.audit_service import log_audit
from busbooking.services.booking_service import reactivate_booking
from busbooking.services.bulk_service import bulk_cancel, bulk_delete, bulk_reactivate
from busbooking.services.schedule_service import (
    SchedulePatch, create_schedule, delete_schedule, list_schedules, set_schedule_status, update_schedule,
)
from busbooking.services.seat_layout import normalize_layout
from busbooking.services.seat_map_service import reconcile_seat_counters

router = APIRouter(tags=["admin"])

admin_only = require_roles(ROLE_ADMIN)


def _check_batch(body: BulkBookingIds, settings: Settings) -> list[str]:
    if len(body.bookingIds) > settings.BULK_MAX_ITEMS:
        raise HTTPException(status_code=400, detail=f"At most {settings.BULK_MAX_ITEMS} bookings per request")
    return body.bookingIds


def _bus_out(b: Bus) -> dict:
    return {
        "id": b.id,
        "busNumber": b.bus_number,
        "busType": b.bus_type,
        "totalSeats": b.total_seats,
        "layoutType": b.layout_type,
        "isActive": b.is_active,
    }


def _normalize_bus_type(value: str) -> str:
    key = (value or "").strip().lower().replace("_", "-").replace(" ", "-")
    for t in BUS_TYPES:
        if t.lower() == key:
            return t
    if key == "nonac":
        return "Non-AC"
    raise HTTPException(status_code=400, detail=f"busType must be one of: {', '.join(BUS_TYPES)}")


# -------------------------
# ADMIN: BOOKINGS
# -------------------------
@router.post("/admin/bookings/bulk-cancel")
def admin_bulk_cancel(body: BulkBookingIds, db: Session = Depends(get_db),
                      settings: Settings = Depends(get_settings), admin: Identity = Depends(admin_only)):
    return {"success": True, **bulk_cancel(db, _check_batch(body, settings), admin, settings)}

@router.post("/admin/bookings/bulk-delete")
def admin_bulk_delete(body: BulkBookingIds, db: Session = Depends(get_db),
                      settings: Settings = Depends(get_settings), admin: Identity = Depends(admin_only)):
    return {"success": True, **bulk_delete(db, _check_batch(body, settings), admin, settings)}

@router.post("/admin/bookings/reactivate")
def admin_bulk_reactivate(body: BulkBookingIds, db: Session = Depends(get_db),
                          settings: Settings = Depends(get_settings), admin: Identity = Depends(admin_only)):
    return {"success": True, **bulk_reactivate(db, _check_batch(body, settings), admin, settings)}

@router.post("/admin/bookings/{booking_uuid}/reactivate")
def admin_reactivate(booking_uuid: str, db: Session = Depends(get_db),
                     settings: Settings = Depends(get_settings), admin: Identity = Depends(admin_only)):
    booking = reactivate_booking(db, booking_uuid, admin, timeout_ms=settings.BOOKING_TIMEOUT_MS)
    return {"success": True, "message": "Booking reactivated", "data": booking_out(booking).model_dump()}


# -------------------------
# ADMIN: SCHEDULES
# -------------------------
@router.get("/admin/schedules")
def admin_list_schedules(routeId: str | None = None, status: str | None = None,
                         startDate: date | None = None, endDate: date | None = None,
                         db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    rows = list_schedules(db, routeId, status, startDate, endDate)
    return {"success": True, "count": len(rows), "data": [schedule_out(s, r, b) for s, r, b in rows]}

@router.post("/admin/schedules", status_code=201)
def admin_create_schedule(body: ScheduleIn, db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    s = create_schedule(db, body.route_id, body.bus_id, body.travel_date, body.departure_time, body.arrival_time, admin)
    return {"success": True, "data": {"id": s.id, "availableSeats": s.available_seats, "status": s.status}}

@router.patch("/admin/schedules/{schedule_id}")
def admin_update_schedule(schedule_id: str, body: SchedulePatch, db: Session = Depends(get_db),
                          settings: Settings = Depends(get_settings), admin: Identity = Depends(admin_only)):
    s = update_schedule(db, schedule_id, body, admin, settings)
    db.refresh(s)
    return {"success": True, "data": {"id": s.id, "availableSeats": s.available_seats, "status": s.status}}

@router.patch("/admin/schedules/{schedule_id}/status")
def admin_schedule_status(schedule_id: str, body: ScheduleStatusIn, db: Session = Depends(get_db),
                          settings: Settings = Depends(get_settings), admin: Identity = Depends(admin_only)):
    return {"success": True, "data": set_schedule_status(db, schedule_id, body.status, admin, settings)}

@router.delete("/admin/schedules/{schedule_id}")
def admin_delete_schedule(schedule_id: str, db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    delete_schedule(db, schedule_id, admin)
    return {"success": True, "message": "Schedule deleted"}


# -------------------------
# ADMIN: ROUTES + BUSES
# -------------------------
@router.get("/admin/routes")
def admin_list_routes(db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    items = db.query(Route).order_by(Route.created_at.desc()).all()
    return {"success": True, "data": [route_out(r) for r in items]}

@router.post("/admin/routes", status_code=201)
def admin_create_route(body: RouteIn, db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    origin, destination = body.origin.strip(), body.destination.strip()
    if origin.lower() == destination.lower():
        raise HTTPException(status_code=400, detail="origin and destination must differ")
    r = Route(id=str(uuid.uuid4()), origin=origin, destination=destination, duration=body.duration.strip(),
              distance_km=body.distance_km, base_price=body.base_price)
    db.add(r)
    log_audit(db, admin, "route.create", "route", r.id, {"origin": origin, "destination": destination, "basePrice": body.base_price})
    db.commit()
    return {"success": True, "data": route_out(r)}

@router.get("/admin/buses")
def admin_list_buses(db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    items = db.query(Bus).order_by(Bus.bus_number).all()
    return {"success": True, "data": [_bus_out(b) for b in items]}

@router.post("/admin/buses", status_code=201)
def admin_create_bus(body: BusIn, db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    try:
        layout = normalize_layout(body.layout_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    number = body.bus_number.strip().upper()
    if db.query(Bus).filter(Bus.bus_number == number).first():
        raise HTTPException(status_code=409, detail="bus number already exists")
    b = Bus(id=str(uuid.uuid4()), bus_number=number, bus_type=_normalize_bus_type(body.bus_type),
            total_seats=body.total_seats, layout_type=layout, is_active=body.is_active)
    db.add(b)
    log_audit(db, admin, "bus.create", "bus", b.id, {"busNumber": number, "totalSeats": b.total_seats, "layout": layout})
    db.commit()
    return {"success": True, "data": _bus_out(b)}


# -------------------------
# ADMIN: REPORTS
# -------------------------
@router.get("/admin/stats")
def admin_stats(db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    return {"success": True, "data": report_service.dashboard_stats(db)}

@router.get("/admin/reports/revenue")
def admin_revenue(startDate: date | None = None, endDate: date | None = None,
                  db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    return {"success": True, "data": report_service.revenue_by_day(db, startDate, endDate)}

@router.get("/admin/reports/popular-routes")
def admin_popular_routes(limit: int = 10, db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    return {"success": True, "data": report_service.popular_routes(db, min(max(limit, 1), 100))}

@router.get("/admin/reports/occupancy")
def admin_occupancy(limit: int = 20, db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    return {"success": True, "data": report_service.occupancy(db, min(max(limit, 1), 200))}


# -------------------------
# ADMIN: MAINTENANCE
# -------------------------
@router.post("/admin/maintenance/reconcile-seats")
def admin_reconcile(fix: bool = False, db: Session = Depends(get_db), admin: Identity = Depends(admin_only)):
    """Compare every schedule's counter with its Confirmed bookings; optionally repair."""
    return {"success": True, "data": reconcile_seat_counters(db, fix=fix)}
