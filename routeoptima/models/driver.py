"""
Driver database model.
Holds contact details, availability, last known location and the current pairing.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Float, Integer, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from routeoptima.database import Base
from routeoptima.services.geo import Coordinate


class Driver(Base):
    """
    Driver model representing delivery personnel within a dispatcher's fleet.

    is_available and current_order_id are only written together, through
    DriverRegistry.bind_order / release / set_duty.
    """
    __tablename__ = "drivers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    # Plain column, not a FK: orders.assigned_driver_id already points the other way
    current_order_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location_reported_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    location_received_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    @property
    def location(self) -> Optional[Coordinate]:
        """Last known position, or None if the driver never reported one."""
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinate(self.latitude, self.longitude)

    @property
    def is_off_duty(self) -> bool:
        return not self.is_available and self.current_order_id is None

    def __repr__(self) -> str:
        return f"<Driver(id={self.id}, name={self.name}, available={self.is_available})>"
