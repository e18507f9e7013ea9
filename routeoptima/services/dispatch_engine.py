"""
Dispatch Engine.

Coordinates assignment, reassignment and completion across the Order Store and
the Driver Registry. Every mutating entry point is one unit of work:

1. take the in-process KeyedLock for the order and each involved driver,
2. re-read the records and check preconditions,
3. apply conditional UPDATEs (compare-and-set) on both tables,
4. commit while still holding the lock; on any failure roll back and re-raise.

The lock serializes handlers inside one worker process; the conditional
UPDATEs keep order and driver pairings consistent when several workers share
the database.
"""

import enum
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import lru_cache
from typing import AsyncIterator, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from routeoptima.core.errors import ConflictingState, InvalidTransition
from routeoptima.core.locks import KeyedLock, driver_key, order_key
from routeoptima.models import Driver, Order, OrderStatus
from routeoptima.services.driver_registry import DriverRegistry, RankedDriver, rank_by_proximity
from routeoptima.services.geo import Coordinate
from routeoptima.services.order_store import OrderStore

logger = logging.getLogger(__name__)


class AssignmentMode(str, enum.Enum):
    INITIAL = "INITIAL"
    REASSIGN = "REASSIGN"


@dataclass(frozen=True)
class ReferencePoint:
    """Where candidates are measured from for an order."""
    coordinate: Coordinate
    # True when the drop is unresolved and the pickup stands in for it
    degraded: bool


@dataclass(frozen=True)
class AssignmentResult:
    order: Order
    driver: Driver
    mode: AssignmentMode
    previous_driver_id: Optional[int] = None


@dataclass(frozen=True)
class CompletionResult:
    order: Order
    driver: Driver


def reference_point(order: Order) -> ReferencePoint:
    """Drop coordinate if resolved, otherwise the pickup coordinate."""
    drop = order.drop
    if drop is not None:
        return ReferencePoint(coordinate=drop, degraded=False)
    return ReferencePoint(coordinate=order.pickup, degraded=True)


class DispatchEngine:
    """
    Process-wide coordinator. Holds no record state of its own; sessions are
    passed per call.
    """

    def __init__(self, lock: Optional[KeyedLock] = None):
        self.lock = lock or KeyedLock()

    @asynccontextmanager
    async def _unit_of_work(self, db: AsyncSession, keys: Iterable[str]) -> AsyncIterator[None]:
        async with self.lock.hold(keys):
            try:
                yield
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def open_assignment(self, db: AsyncSession, order_id: int) -> List[RankedDriver]:
        """
        Rank every available driver in the order's scope, nearest first.

        Returns an empty list when nobody is available. Read-only; takes no lock.
        """
        order = await OrderStore(db).get(order_id)
        point = reference_point(order)
        if point.degraded:
            logger.info(
                f"Order {order_id} has no resolved drop location; ranking against pickup"
            )

        candidates = await DriverRegistry(db).list_available(order.owner_id)
        ranked = rank_by_proximity(candidates, point.coordinate)
        logger.debug(f"Order {order_id}: {len(ranked)} candidate drivers")
        return ranked

    async def assign(
        self,
        db: AsyncSession,
        order_id: int,
        driver_id: int,
        mode: AssignmentMode = AssignmentMode.INITIAL,
    ) -> AssignmentResult:
        """
        Pair an order with a driver.

        INITIAL: order must be PENDING and the driver available.
        REASSIGN: order must be ASSIGNED; the previous driver is released and
        the new one paired in the same transaction.
        """
        if mode == AssignmentMode.REASSIGN:
            return await self._reassign(db, order_id, driver_id)

        orders = OrderStore(db)
        drivers = DriverRegistry(db)

        async with self._unit_of_work(db, [order_key(order_id), driver_key(driver_id)]):
            order = await orders.get(order_id)
            driver = await drivers.get(driver_id)

            if order.status == OrderStatus.DELIVERED:
                raise InvalidTransition(f"Order {order_id} is already DELIVERED")
            if order.status != OrderStatus.PENDING:
                raise ConflictingState(
                    f"Order {order_id} is {order.status.value}, expected PENDING"
                )
            self._check_scope(order, driver)
            if not driver.is_available:
                raise ConflictingState(f"Driver {driver_id} is not available")

            await drivers.bind_order(driver_id, order_id)
            await orders.mark_assigned(order_id, driver_id, expected_status=OrderStatus.PENDING)

            order = await orders.get(order_id)
            driver = await drivers.get(driver_id)

        logger.info(f"Assigned order {order_id} to driver {driver_id}")
        return AssignmentResult(order=order, driver=driver, mode=AssignmentMode.INITIAL)

    async def _reassign(self, db: AsyncSession, order_id: int, driver_id: int) -> AssignmentResult:
        orders = OrderStore(db)
        drivers = DriverRegistry(db)

        # The previous driver is only known after reading the order; it is
        # re-checked under the lock below.
        observed = await orders.get(order_id)
        previous_driver_id = observed.assigned_driver_id
        await db.rollback()

        keys = [order_key(order_id), driver_key(driver_id)]
        if previous_driver_id is not None:
            keys.append(driver_key(previous_driver_id))

        async with self._unit_of_work(db, keys):
            order = await orders.get(order_id)
            if order.status == OrderStatus.DELIVERED:
                raise InvalidTransition(f"Order {order_id} is already DELIVERED")
            if order.status != OrderStatus.ASSIGNED:
                raise ConflictingState(
                    f"Order {order_id} is {order.status.value}, expected ASSIGNED"
                )
            if order.assigned_driver_id != previous_driver_id:
                raise ConflictingState(f"Order {order_id} was reassigned concurrently")
            if previous_driver_id == driver_id:
                raise ConflictingState(f"Order {order_id} is already assigned to driver {driver_id}")

            driver = await drivers.get(driver_id)
            self._check_scope(order, driver)
            if not driver.is_available:
                raise ConflictingState(f"Driver {driver_id} is not available")

            await drivers.release(previous_driver_id, order_id)
            await drivers.bind_order(driver_id, order_id)
            await orders.mark_assigned(
                order_id,
                driver_id,
                expected_status=OrderStatus.ASSIGNED,
                expected_driver_id=previous_driver_id,
            )

            order = await orders.get(order_id)
            driver = await drivers.get(driver_id)

        logger.info(f"Reassigned order {order_id} from driver {previous_driver_id} to driver {driver_id}")
        return AssignmentResult(
            order=order,
            driver=driver,
            mode=AssignmentMode.REASSIGN,
            previous_driver_id=previous_driver_id,
        )

    async def complete(self, db: AsyncSession, order_id: int) -> CompletionResult:
        """Deliver an ASSIGNED order and free its driver."""
        orders = OrderStore(db)
        drivers = DriverRegistry(db)

        observed = await orders.get(order_id)
        if observed.status != OrderStatus.ASSIGNED:
            raise InvalidTransition(
                f"Order {order_id} cannot be completed from {observed.status.value}"
            )
        observed_driver_id = observed.assigned_driver_id
        # Close the read transaction before waiting on the lock
        await db.rollback()

        keys = [order_key(order_id), driver_key(observed_driver_id)]

        async with self._unit_of_work(db, keys):
            driver_id = await orders.mark_delivered(order_id)
            if driver_id != observed_driver_id:
                raise ConflictingState(f"Order {order_id} was reassigned concurrently")
            await drivers.release(driver_id, order_id)

            order = await orders.get(order_id)
            driver = await drivers.get(driver_id)

        logger.info(f"Order {order_id} delivered by driver {driver_id}")
        return CompletionResult(order=order, driver=driver)

    async def set_duty(self, db: AsyncSession, driver_id: int, on_duty: bool) -> Driver:
        """Put a driver on or off duty. Refused while the driver holds an order."""
        drivers = DriverRegistry(db)
        async with self._unit_of_work(db, [driver_key(driver_id)]):
            await drivers.set_duty(driver_id, on_duty)
            driver = await drivers.get(driver_id)

        logger.info(f"Driver {driver_id} is now {'on' if on_duty else 'off'} duty")
        return driver

    async def remove_driver(self, db: AsyncSession, driver_id: int) -> None:
        """Delete a driver. Refused while the driver holds an order."""
        async with self._unit_of_work(db, [driver_key(driver_id)]):
            await DriverRegistry(db).delete(driver_id)

        logger.info(f"Driver {driver_id} removed")

    async def cancel_order(self, db: AsyncSession, order_id: int) -> None:
        """Delete an order, first releasing its driver if it is ASSIGNED."""
        orders = OrderStore(db)
        drivers = DriverRegistry(db)

        observed = await orders.get(order_id)
        observed_driver_id = observed.assigned_driver_id
        await db.rollback()

        keys = [order_key(order_id)]
        if observed_driver_id is not None:
            keys.append(driver_key(observed_driver_id))

        async with self._unit_of_work(db, keys):
            order = await orders.get(order_id)
            if order.assigned_driver_id != observed_driver_id:
                raise ConflictingState(f"Order {order_id} was reassigned concurrently")
            if order.status == OrderStatus.ASSIGNED:
                await drivers.release(order.assigned_driver_id, order_id)
            await orders.delete(order_id, expected_status=order.status)

        logger.info(f"Order {order_id} cancelled")

    @staticmethod
    def _check_scope(order: Order, driver: Driver) -> None:
        if order.owner_id != driver.owner_id:
            raise ConflictingState(
                f"Driver {driver.id} does not belong to the fleet that owns order {order.id}"
            )


@lru_cache()
def get_dispatch_engine() -> DispatchEngine:
    """Process-wide engine instance (one KeyedLock per worker)."""
    return DispatchEngine()
