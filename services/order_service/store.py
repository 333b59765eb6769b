"""
Order record store used by the payment flow.

The checkout orchestrator and the reconciler run outside any request-scoped
session (reconciliation happens in a background task), so the store opens a
short-lived session per operation.
"""
import abc
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.payment_service.exceptions import DuplicateOrder, OrderNotFound, StoreUnavailable
from shared.config.database import AsyncSessionLocal

from .models import Order
from .repository import OrderRepository

logger = logging.getLogger(__name__)


class OrderStore(abc.ABC):
    """Create / update-by-key / read-by-key access to orders."""

    @abc.abstractmethod
    async def create(self, order: Order) -> None:
        """Persist a new order with its items. Raises DuplicateOrder or StoreUnavailable."""

    @abc.abstractmethod
    async def update(self, order_id: str, patch: dict, expected_status: str | None = None) -> bool:
        """Apply patch. Returns False when expected_status no longer matches; raises OrderNotFound."""

    @abc.abstractmethod
    async def read(self, order_id: str) -> Order:
        """Load one order. Raises OrderNotFound."""


class SqlOrderStore(OrderStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self._session_factory = session_factory

    async def create(self, order: Order) -> None:
        try:
            async with self._session_factory() as db:
                await OrderRepository.create_order(db, order)
        except IntegrityError as exc:
            logger.error("Order %s already exists", order.order_id)
            raise DuplicateOrder(f"Order {order.order_id} already exists", order.order_id) from exc
        except SQLAlchemyError as exc:
            logger.error("Failed to create order %s: %s", order.order_id, exc)
            raise StoreUnavailable(f"Failed to create order: {exc}", order.order_id) from exc

    async def update(self, order_id: str, patch: dict, expected_status: str | None = None) -> bool:
        try:
            async with self._session_factory() as db:
                updated = await OrderRepository.update_order(db, order_id, patch, expected_status)
                if updated:
                    return True
                if not await OrderRepository.order_exists(db, order_id):
                    raise OrderNotFound(f"Order {order_id} not found", order_id)
                return False
        except SQLAlchemyError as exc:
            logger.error("Failed to update order %s: %s", order_id, exc)
            raise StoreUnavailable(f"Failed to update order: {exc}", order_id) from exc

    async def read(self, order_id: str) -> Order:
        try:
            async with self._session_factory() as db:
                order = await OrderRepository.get_order(db, order_id)
        except SQLAlchemyError as exc:
            logger.error("Failed to read order %s: %s", order_id, exc)
            raise StoreUnavailable(f"Failed to read order: {exc}", order_id) from exc
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found", order_id)
        return order
