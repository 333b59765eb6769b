import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.payment_service.exceptions import OrderAlreadyLinked, OrderNotFound, ValidationError

from .repository import OrderRepository

logger = structlog.get_logger(__name__)


def _require_uuid(value: str, field: str) -> str:
    try:
        uuid.UUID(str(value))
        return str(value)
    except ValueError:
        raise ValidationError(field, f"Invalid {field} format")


class OrderService:
    @staticmethod
    async def get_order(db: AsyncSession, order_id: str):
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found", order_id)
        return order

    @staticmethod
    async def link_order_to_user(db: AsyncSession, order_id: str, user_id: str):
        """
        Backfill the owner of a guest order once the shopper signs in or registers.

        Idempotent: linking the same user twice is a no-op. Linking an order that
        already belongs to someone else raises OrderAlreadyLinked. Payment status is
        never touched.
        """
        order_id = _require_uuid(order_id, "order_id")
        if not user_id or not str(user_id).strip():
            raise ValidationError("user_id", "Invalid user_id format")
        user_id = str(user_id).strip()

        order = await OrderService.get_order(db, order_id)
        owner = order.user_id
        if owner is None and await OrderRepository.claim_order(db, order_id, user_id):
            logger.info("order_linked_to_user", order_id=order_id, user_id=user_id)
            order.user_id = user_id
            return order
        if owner is None:
            # Lost a concurrent claim; see who won
            owner = await OrderRepository.get_owner(db, order_id)

        if owner != user_id:
            logger.warning("order_link_conflict", order_id=order_id, user_id=user_id)
            raise OrderAlreadyLinked(f"Order {order_id} belongs to another user", order_id)
        order.user_id = owner
        return order

    @staticmethod
    async def list_orders_for_user(db: AsyncSession, user_id: str):
        """Orders a signed-in shopper placed or linked, newest first."""
        return await OrderRepository.get_orders_for_user(db, user_id)
