from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from busbooking.db.session import get_db
from busbooking.models.route import Route
from busbooking.services.schedule_service import upcoming_for_route
from busbooking.services.seat_map_service import get_seat_map

router = APIRouter(tags=["public"])


def route_out(r: Route) -> dict:
    return {
        "id": r.id,
        "origin": r.origin,
        "destination": r.destination,
        "duration": r.duration,
        "distanceKm": r.distance_km,
        "basePrice": float(r.base_price),
    }


def schedule_out(s, r, b) -> dict:
    return {
        "id": s.id,
        "routeId": s.route_id,
        "busId": s.bus_id,
        "travelDate": s.travel_date.isoformat(),
        "departureTime": s.departure_time.strftime("%H:%M"),
        "arrivalTime": s.arrival_time.strftime("%H:%M"),
        "availableSeats": s.available_seats,
        "status": s.status,
        "busNumber": b.bus_number,
        "busType": b.bus_type,
        "totalSeats": b.total_seats,
        "layoutType": b.layout_type,
        "origin": r.origin,
        "destination": r.destination,
        "duration": r.duration,
        "basePrice": float(r.base_price),
    }


@router.get("/routes")
def list_routes(db: Session = Depends(get_db)):
    items = db.query(Route).order_by(Route.origin, Route.destination).all()
    return {"success": True, "count": len(items), "data": [route_out(r) for r in items]}


@router.get("/schedules/{route_id}")
def list_route_schedules(route_id: str, db: Session = Depends(get_db)):
    """Upcoming bookable departures for a route."""
    rows = upcoming_for_route(db, route_id)
    return {"success": True, "count": len(rows), "data": [schedule_out(s, r, b) for s, r, b in rows]}


@router.get("/seats/{schedule_id}")
def seat_map(schedule_id: str, db: Session = Depends(get_db)):
    return {"success": True, **get_seat_map(db, schedule_id)}
