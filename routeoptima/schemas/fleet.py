"""
Pydantic schemas for the dispatcher fleet snapshot.
"""

from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, Field

from routeoptima.schemas.driver import DriverResponse
from routeoptima.schemas.order import OrderResponse


class FleetSummaryResponse(BaseModel):
    orders_by_status: Dict[str, int]
    available_drivers: int
    busy_drivers: int
    off_duty_drivers: int
    stale_drivers: int


class FleetSnapshotResponse(BaseModel):
    owner_id: str
    generated_at: datetime
    poll_interval_seconds: int
    summary: FleetSummaryResponse
    orders: List[OrderResponse] = Field(default_factory=list)
    drivers: List[DriverResponse] = Field(default_factory=list)
