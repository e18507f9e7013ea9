"""
Pydantic schemas for order and dispatch endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from routeoptima.models import Order
from routeoptima.services.geo import Coordinate


class CoordinateIn(BaseModel):
    latitude: float = Field(..., description="Decimal degrees")
    longitude: float = Field(..., description="Decimal degrees")

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @property
    def is_legacy_sentinel(self) -> bool:
        """Older clients send (0, 0) when geocoding failed."""
        return self.latitude == 0 and self.longitude == 0


class CoordinateOut(BaseModel):
    latitude: float
    longitude: float


class OrderCreate(BaseModel):
    """Create an order. The drop location is geocoded from the address unless given."""
    owner_id: str = Field(..., min_length=1, description="Dispatcher scope identifier")
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    address: str = Field(..., min_length=1)
    items: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    pickup: Optional[CoordinateIn] = Field(
        default=None,
        description="Defaults to the configured depot",
    )
    drop: Optional[CoordinateIn] = Field(
        default=None,
        description="Skips geocoding when provided; (0, 0) counts as unresolved",
    )


class DropLocationUpdate(BaseModel):
    """Manual override of an order's drop location; null clears it."""
    drop: Optional[CoordinateIn] = None

    @model_validator(mode="after")
    def normalize_sentinel(self) -> "DropLocationUpdate":
        if self.drop is not None and self.drop.is_legacy_sentinel:
            self.drop = None
        return self


class OrderResponse(BaseModel):
    id: int
    owner_id: str
    customer_name: str
    customer_phone: Optional[str] = None
    address: str
    items: Optional[str] = None
    price: Optional[float] = None
    pickup: CoordinateOut
    drop: Optional[CoordinateOut] = None
    drop_resolved: bool
    status: str
    assigned_driver_id: Optional[int] = None
    delivered_by_driver_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    assigned_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        drop = order.drop
        return cls(
            id=order.id,
            owner_id=order.owner_id,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            address=order.address,
            items=order.items,
            price=order.price,
            pickup=CoordinateOut(latitude=order.pickup_latitude, longitude=order.pickup_longitude),
            drop=CoordinateOut(latitude=drop.latitude, longitude=drop.longitude) if drop else None,
            drop_resolved=drop is not None,
            status=order.status.value,
            assigned_driver_id=order.assigned_driver_id,
            delivered_by_driver_id=order.delivered_by_driver_id,
            created_at=order.created_at,
            updated_at=order.updated_at,
            assigned_at=order.assigned_at,
            delivered_at=order.delivered_at,
        )


class OrdersListResponse(BaseModel):
    owner_id: str
    orders: List[OrderResponse] = Field(default_factory=list)


class CurrentOrderResponse(BaseModel):
    """Driver poll result; order is null when the driver has nothing assigned."""
    driver_id: int
    order: Optional[OrderResponse] = None
    poll_interval_seconds: int


class CandidateDriver(BaseModel):
    driver_id: int
    name: str
    phone: Optional[str] = None
    distance_km: Optional[float] = Field(
        default=None,
        description="Straight-line distance; null if the driver never reported a position",
    )
    location_stale: bool


class AvailableDriversResponse(BaseModel):
    """Nearest-first candidates for an order. An empty list is a normal outcome."""
    order_id: int
    reference_point: CoordinateOut
    # True when the drop location is unresolved and pickup was used instead
    degraded: bool
    candidates: List[CandidateDriver] = Field(default_factory=list)


class AssignmentResponse(BaseModel):
    order: OrderResponse
    driver_id: int
    mode: str
    previous_driver_id: Optional[int] = None


class CompletionResponse(BaseModel):
    order: OrderResponse
    released_driver_id: int
