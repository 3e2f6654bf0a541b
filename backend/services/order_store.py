"""
Order store — durable storage for the Order aggregate.

``save`` writes the order together with its lines in a single transaction.
It is not coupled to the catalog's stock mutations; the orchestrator
compensates those explicitly.
"""
import logging
from abc import ABC, abstractmethod

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Order
from domain.enums import OrderStatus

logger = logging.getLogger(__name__)


class OrderStore(ABC):
    @abstractmethod
    async def save(self, order: Order) -> Order:
        """Persist the order (assigning an id on first save) and return it."""

    @abstractmethod
    async def find(self, order_id: int) -> Order | None:
        ...

    @abstractmethod
    async def find_all(self) -> list[Order]:
        ...

    @abstractmethod
    async def find_by_user(self, user_id: int) -> list[Order]:
        ...

    @abstractmethod
    async def find_by_status(self, status: OrderStatus) -> list[Order]:
        ...

    @abstractmethod
    async def delete(self, order_id: int) -> bool:
        """Delete the order and its lines. Returns False if it did not exist."""


class SqlAlchemyOrderStore(OrderStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, order: Order) -> Order:
        self.db.add(order)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"Order {order.id} saved (status={order.status.value})")
        return order

    async def find(self, order_id: int) -> Order | None:
        res = await self.db.execute(select(Order).where(Order.id == order_id))
        return res.scalar_one_or_none()

    async def find_all(self) -> list[Order]:
        res = await self.db.execute(
            select(Order).order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(res.scalars().all())

    async def find_by_user(self, user_id: int) -> list[Order]:
        res = await self.db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(res.scalars().all())

    async def find_by_status(self, status: OrderStatus) -> list[Order]:
        res = await self.db.execute(
            select(Order)
            .where(Order.status == OrderStatus(status))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(res.scalars().all())

    async def delete(self, order_id: int) -> bool:
        order = await self.find(order_id)
        if order is None:
            return False
        await self.db.delete(order)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"Order {order_id} deleted")
        return True
