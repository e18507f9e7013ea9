"""
Pydantic schemas for driver endpoints.
Registration, duty toggle, location reports and driver views.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from routeoptima.models import Driver


class DriverCreate(BaseModel):
    """Register a driver in a dispatcher's fleet."""
    owner_id: str = Field(..., min_length=1, description="Dispatcher scope identifier")
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)


class DriverUpdate(BaseModel):
    """Edit contact details; omitted fields are left unchanged."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)


class DutyUpdate(BaseModel):
    on_duty: bool


class LocationReport(BaseModel):
    """A position report pushed by the driver device."""
    latitude: float
    longitude: float
    reported_at: Optional[datetime] = Field(
        default=None,
        description="Device timestamp; reports older than the stored one are ignored",
    )


class LocationReceiptResponse(BaseModel):
    driver_id: int
    accepted: bool
    current_order_id: Optional[int] = None
    stored_reported_at: Optional[datetime] = None
    poll_interval_seconds: int


class LocationInfo(BaseModel):
    latitude: float
    longitude: float
    reported_at: Optional[datetime] = None
    received_at: Optional[datetime] = None


class DriverResponse(BaseModel):
    """Driver view shared by dispatcher and driver clients."""
    id: int
    owner_id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    is_available: bool
    off_duty: bool
    current_order_id: Optional[int] = None
    location: Optional[LocationInfo] = None
    location_stale: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_driver(cls, driver: Driver, location_stale: bool = False) -> "DriverResponse":
        location = None
        if driver.location is not None:
            location = LocationInfo(
                latitude=driver.latitude,
                longitude=driver.longitude,
                reported_at=driver.location_reported_at,
                received_at=driver.location_received_at,
            )
        return cls(
            id=driver.id,
            owner_id=driver.owner_id,
            name=driver.name,
            phone=driver.phone,
            email=driver.email,
            is_available=driver.is_available,
            off_duty=driver.is_off_duty,
            current_order_id=driver.current_order_id,
            location=location,
            location_stale=location_stale,
            created_at=driver.created_at,
            updated_at=driver.updated_at,
        )


class DriversListResponse(BaseModel):
    owner_id: str
    drivers: List[DriverResponse] = Field(default_factory=list)
