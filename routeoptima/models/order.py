"""
Order database model.
Represents a delivery order and its lifecycle state.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Float, Integer, Text, DateTime, ForeignKey, Enum
from sqlalchemy.orm import Mapped, mapped_column

from routeoptima.database import Base
from routeoptima.services.geo import Coordinate


class OrderStatus(str, enum.Enum):
    """Delivery lifecycle: PENDING -> ASSIGNED -> DELIVERED."""
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    DELIVERED = "DELIVERED"


class Order(Base):
    """
    Order model.

    The drop coordinate is NULL until resolved by geocoding or a manual
    override; (0, 0) is never stored as a stand-in for "unknown".
    """
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    address: Mapped[str] = mapped_column(Text, nullable=False)

    pickup_latitude: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    drop_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    drop_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    assigned_driver_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("drivers.id"),
        nullable=True,
        index=True,
    )
    delivered_by_driver_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    items: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def pickup(self) -> Coordinate:
        return Coordinate(self.pickup_latitude, self.pickup_longitude)

    @property
    def drop(self) -> Optional[Coordinate]:
        """Resolved drop coordinate, or None while unresolved."""
        if self.drop_latitude is None or self.drop_longitude is None:
            return None
        return Coordinate(self.drop_latitude, self.drop_longitude)

    @property
    def drop_resolved(self) -> bool:
        return self.drop is not None

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, status={self.status}, driver={self.assigned_driver_id})>"
