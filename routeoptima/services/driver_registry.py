"""
Driver Registry.

Owns driver records: contact info, availability, last known location and the
current order pairing. Pairing writes are conditional UPDATEs so that a lost
race surfaces as ConflictingState instead of silently double-booking.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select, update, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from routeoptima.core.errors import NotFound, ConflictingState
from routeoptima.models import Driver
from routeoptima.services.geo import Coordinate, distance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedDriver:
    """A candidate driver with its straight-line distance to the reference point."""
    driver: Driver
    distance_km: Optional[float]


def rank_by_proximity(
    candidates: Iterable[Driver],
    reference_point: Coordinate,
) -> List[RankedDriver]:
    """
    Order candidates nearest-first.

    Ties are broken by driver id ascending. Drivers that never reported a
    position cannot be measured; they follow every located driver, by id,
    with distance_km=None.
    """
    located: List[RankedDriver] = []
    unlocated: List[RankedDriver] = []
    for driver in candidates:
        position = driver.location
        if position is None:
            unlocated.append(RankedDriver(driver=driver, distance_km=None))
        else:
            located.append(RankedDriver(driver=driver, distance_km=distance(position, reference_point)))

    located.sort(key=lambda r: (r.distance_km, r.driver.id))
    unlocated.sort(key=lambda r: r.driver.id)
    return located + unlocated


class DriverRegistry:
    """Driver record access bound to one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(
        self,
        owner_id: str,
        name: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Driver:
        driver = Driver(
            owner_id=owner_id,
            name=name,
            phone=phone,
            email=email,
            is_available=True,
            current_order_id=None,
        )
        self.db.add(driver)
        await self.db.flush()
        await self.db.refresh(driver)
        return driver

    async def get(self, driver_id: int) -> Driver:
        """Fetch a driver, re-reading the row so callers see its latest state."""
        result = await self.db.execute(
            select(Driver)
            .where(Driver.id == driver_id)
            .execution_options(populate_existing=True)
        )
        driver = result.scalar_one_or_none()
        if driver is None:
            raise NotFound(f"Driver {driver_id} not found")
        return driver

    async def list_for_owner(self, owner_id: str) -> Sequence[Driver]:
        result = await self.db.execute(
            select(Driver)
            .where(Driver.owner_id == owner_id)
            .order_by(Driver.id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def list_available(self, owner_id: str) -> Sequence[Driver]:
        """Drivers in the owner's scope that may take a new assignment."""
        result = await self.db.execute(
            select(Driver)
            .where(Driver.owner_id == owner_id, Driver.is_available.is_(True))
            .order_by(Driver.id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def update_contact(
        self,
        driver_id: int,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Driver:
        """Edit contact details. Fields left as None keep their stored value."""
        driver = await self.get(driver_id)
        if name is not None:
            driver.name = name
        if phone is not None:
            driver.phone = phone
        if email is not None:
            driver.email = email
        await self.db.flush()
        await self.db.refresh(driver)
        return driver

    async def update_location(
        self,
        driver_id: int,
        coordinate: Coordinate,
        reported_at: datetime,
        received_at: Optional[datetime] = None,
    ) -> bool:
        """
        Overwrite the stored position unless a newer report is already stored.

        Returns True when the report was applied, False when it was older than
        the stored one. Raises NotFound for an unknown driver.
        """
        received_at = received_at or datetime.utcnow()
        result = await self.db.execute(
            update(Driver)
            .where(
                Driver.id == driver_id,
                or_(
                    Driver.location_reported_at.is_(None),
                    Driver.location_reported_at <= reported_at,
                ),
            )
            .values(
                latitude=coordinate.latitude,
                longitude=coordinate.longitude,
                location_reported_at=reported_at,
                location_received_at=received_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return True

        # Either the driver is unknown or the report lost to a newer one
        await self.get(driver_id)
        return False

    async def bind_order(self, driver_id: int, order_id: int) -> None:
        """
        Pair the driver with an order: availability false, current order set.

        Compare-and-set on (is_available, current_order_id); raises
        ConflictingState if the driver is busy or off duty.
        """
        result = await self.db.execute(
            update(Driver)
            .where(
                Driver.id == driver_id,
                Driver.is_available.is_(True),
                Driver.current_order_id.is_(None),
            )
            .values(is_available=False, current_order_id=order_id, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            driver = await self.get(driver_id)
            raise ConflictingState(
                f"Driver {driver.id} is not available"
                + (f" (busy with order {driver.current_order_id})" if driver.current_order_id else "")
            )

    async def release(self, driver_id: int, order_id: int) -> None:
        """
        Clear the pairing: availability true, current order none.

        Only succeeds while the driver still holds order_id.
        """
        result = await self.db.execute(
            update(Driver)
            .where(Driver.id == driver_id, Driver.current_order_id == order_id)
            .values(is_available=True, current_order_id=None, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            driver = await self.get(driver_id)
            raise ConflictingState(
                f"Driver {driver.id} does not hold order {order_id} "
                f"(current order: {driver.current_order_id})"
            )

    async def set_duty(self, driver_id: int, on_duty: bool) -> None:
        """Toggle availability for a driver that holds no order."""
        result = await self.db.execute(
            update(Driver)
            .where(Driver.id == driver_id, Driver.current_order_id.is_(None))
            .values(is_available=on_duty, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            driver = await self.get(driver_id)
            raise ConflictingState(
                f"Driver {driver.id} is busy with order {driver.current_order_id}"
            )

    async def delete(self, driver_id: int) -> None:
        """Remove a driver that holds no order."""
        result = await self.db.execute(
            delete(Driver)
            .where(Driver.id == driver_id, Driver.current_order_id.is_(None))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            driver = await self.get(driver_id)
            raise ConflictingState(
                f"Driver {driver.id} is busy with order {driver.current_order_id}"
            )
