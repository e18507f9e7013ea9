"""
Order Store.

Owns order records and enforces the lifecycle:

    PENDING -> ASSIGNED -> DELIVERED (terminal)
    ASSIGNED -> ASSIGNED (reassignment, guarded by the Dispatch Engine)

Every transition is a conditional UPDATE on the status the caller observed.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from routeoptima.core.errors import NotFound, InvalidTransition, ConflictingState
from routeoptima.models import Order, OrderStatus
from routeoptima.services.geo import Coordinate

logger = logging.getLogger(__name__)

# Source states from which mark_assigned is legal
ASSIGNABLE_FROM = (OrderStatus.PENDING, OrderStatus.ASSIGNED)


class OrderStore:
    """Order record access bound to one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        owner_id: str,
        customer_name: str,
        address: str,
        pickup: Coordinate,
        drop: Optional[Coordinate] = None,
        customer_phone: Optional[str] = None,
        price: Optional[float] = None,
        items: Optional[str] = None,
    ) -> Order:
        """Insert a new PENDING order with no driver."""
        order = Order(
            owner_id=owner_id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            address=address,
            pickup_latitude=pickup.latitude,
            pickup_longitude=pickup.longitude,
            drop_latitude=drop.latitude if drop else None,
            drop_longitude=drop.longitude if drop else None,
            status=OrderStatus.PENDING,
            assigned_driver_id=None,
            price=price,
            items=items,
        )
        self.db.add(order)
        await self.db.flush()
        await self.db.refresh(order)
        return order

    async def get(self, order_id: int) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order

    async def list_for_owner(self, owner_id: str) -> Sequence[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.owner_id == owner_id)
            .order_by(Order.id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def find_active_for_driver(self, driver_id: int) -> Optional[Order]:
        """The ASSIGNED order currently held by driver_id, if any."""
        result = await self.db.execute(
            select(Order)
            .where(
                Order.assigned_driver_id == driver_id,
                Order.status == OrderStatus.ASSIGNED,
            )
            .order_by(Order.id)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def mark_assigned(
        self,
        order_id: int,
        driver_id: int,
        expected_status: OrderStatus,
        expected_driver_id: Optional[int] = None,
    ) -> None:
        """
        Move the order to ASSIGNED with driver_id.

        expected_status/expected_driver_id are what the caller observed; if the
        row changed in between, ConflictingState is raised. DELIVERED orders
        raise InvalidTransition.
        """
        if expected_status not in ASSIGNABLE_FROM:
            raise InvalidTransition(
                f"Order {order_id} cannot be assigned from {expected_status.value}"
            )

        now = datetime.utcnow()
        result = await self.db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.status == expected_status,
                Order.assigned_driver_id.is_(None)
                if expected_driver_id is None
                else Order.assigned_driver_id == expected_driver_id,
            )
            .values(
                status=OrderStatus.ASSIGNED,
                assigned_driver_id=driver_id,
                assigned_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = await self.get(order_id)
            if current.status == OrderStatus.DELIVERED:
                raise InvalidTransition(f"Order {order_id} is already DELIVERED")
            raise ConflictingState(
                f"Order {order_id} changed concurrently "
                f"(now {current.status.value}, driver {current.assigned_driver_id})"
            )

    async def mark_delivered(self, order_id: int) -> int:
        """
        Move an ASSIGNED order to DELIVERED and return the driver that held it.

        Not idempotent: PENDING and DELIVERED orders raise InvalidTransition.
        """
        order = await self.get(order_id)
        if order.status != OrderStatus.ASSIGNED:
            raise InvalidTransition(
                f"Order {order_id} cannot be delivered from {order.status.value}"
            )
        driver_id = order.assigned_driver_id

        now = datetime.utcnow()
        result = await self.db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.status == OrderStatus.ASSIGNED,
                Order.assigned_driver_id == driver_id,
            )
            .values(
                status=OrderStatus.DELIVERED,
                assigned_driver_id=None,
                delivered_by_driver_id=driver_id,
                delivered_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = await self.get(order_id)
            if current.status == OrderStatus.DELIVERED:
                raise InvalidTransition(f"Order {order_id} is already DELIVERED")
            raise ConflictingState(f"Order {order_id} changed concurrently")
        return driver_id

    async def set_drop_location(self, order_id: int, drop: Optional[Coordinate]) -> Order:
        """Manually resolve (or clear) the drop coordinate of an undelivered order."""
        order = await self.get(order_id)
        if order.status == OrderStatus.DELIVERED:
            raise InvalidTransition(f"Order {order_id} is already DELIVERED")

        order.drop_latitude = drop.latitude if drop else None
        order.drop_longitude = drop.longitude if drop else None
        await self.db.flush()
        return order

    async def delete(self, order_id: int, expected_status: OrderStatus) -> None:
        result = await self.db.execute(
            delete(Order)
            .where(Order.id == order_id, Order.status == expected_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.get(order_id)
            raise ConflictingState(f"Order {order_id} changed concurrently")
