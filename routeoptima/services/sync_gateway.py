"""
Synchronization Gateway.

Read-only, stateless queries that polling clients re-issue on a fixed
interval. Nothing here locks or writes; each call reads the latest committed
state of every record it returns.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from routeoptima.models import Driver, Order, OrderStatus
from routeoptima.services.driver_registry import DriverRegistry
from routeoptima.services.order_store import OrderStore


@dataclass(frozen=True)
class FleetSummary:
    orders_by_status: Dict[str, int]
    available_drivers: int
    busy_drivers: int
    off_duty_drivers: int
    stale_drivers: int


@dataclass(frozen=True)
class FleetSnapshot:
    owner_id: str
    orders: Sequence[Order]
    drivers: Sequence[Driver]
    stale_driver_ids: frozenset
    summary: FleetSummary
    generated_at: datetime = field(default_factory=datetime.utcnow)


def is_location_stale(driver: Driver, now: datetime, stale_after_seconds: int) -> bool:
    """True when the driver never reported, or last reported too long ago."""
    if driver.location_received_at is None:
        return True
    return (now - driver.location_received_at).total_seconds() > stale_after_seconds


async def current_order_for_driver(db: AsyncSession, driver_id: int) -> Optional[Order]:
    """
    The order the driver should be working on, or None.

    Raises NotFound for an unknown driver id.
    """
    await DriverRegistry(db).get(driver_id)
    return await OrderStore(db).find_active_for_driver(driver_id)


async def fleet_snapshot(
    db: AsyncSession,
    owner_id: str,
    stale_after_seconds: int,
) -> FleetSnapshot:
    """Orders and drivers in a dispatcher's scope, plus dashboard counters."""
    orders = await OrderStore(db).list_for_owner(owner_id)
    drivers = await DriverRegistry(db).list_for_owner(owner_id)

    now = datetime.utcnow()
    stale_ids = frozenset(
        d.id for d in drivers if is_location_stale(d, now, stale_after_seconds)
    )

    status_counts = Counter(o.status.value for o in orders)
    summary = FleetSummary(
        orders_by_status={s.value: status_counts.get(s.value, 0) for s in OrderStatus},
        available_drivers=sum(1 for d in drivers if d.is_available),
        busy_drivers=sum(1 for d in drivers if d.current_order_id is not None),
        off_duty_drivers=sum(1 for d in drivers if d.is_off_duty),
        stale_drivers=len(stale_ids),
    )

    return FleetSnapshot(
        owner_id=owner_id,
        orders=orders,
        drivers=drivers,
        stale_driver_ids=stale_ids,
        summary=summary,
        generated_at=now,
    )
