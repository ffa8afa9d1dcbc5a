from datetime import date, time
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

class ScheduleIn(BaseModel):
    route_id: str
    bus_id: str
    travel_date: date
    departure_time: time
    arrival_time: time

class ScheduleStatusIn(BaseModel):
    status: str

class RouteIn(BaseModel):
    origin: str = Field(min_length=1, max_length=120)
    destination: str = Field(min_length=1, max_length=120)
    duration: str = Field(min_length=1, max_length=40)
    distance_km: Optional[int] = None
    base_price: Decimal = Field(gt=0)

class BusIn(BaseModel):
    bus_number: str = Field(min_length=1, max_length=30)
    bus_type: str = "Non-AC"
    total_seats: int = Field(gt=0, le=120)
    layout_type: str = "2x2"
    is_active: bool = True
