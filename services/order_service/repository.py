from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Order


class OrderRepository:
    @staticmethod
    async def create_order(db: AsyncSession, order: Order):
        # Order and its line items land in one commit.
        db.add(order)
        await db.commit()
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str):
        result = await db.execute(select(Order).where(Order.order_id == order_id))
        return result.scalars().first()

    @staticmethod
    async def order_exists(db: AsyncSession, order_id: str) -> bool:
        result = await db.execute(select(Order.order_id).where(Order.order_id == order_id))
        return result.scalar() is not None

    @staticmethod
    async def update_order(db: AsyncSession, order_id: str, values: dict, expected_status: str | None = None) -> int:
        """Keyed write. With expected_status it only touches the row while it still holds that status."""
        stmt = update(Order).where(Order.order_id == order_id)
        if expected_status is not None:
            stmt = stmt.where(Order.payment_status == expected_status)
        result = await db.execute(stmt.values(**values).execution_options(synchronize_session=False))
        await db.commit()
        return result.rowcount

    @staticmethod
    async def claim_order(db: AsyncSession, order_id: str, user_id: str) -> int:
        """Set the owner of an unowned order. Returns 0 when someone already owns it."""
        stmt = (
            update(Order)
            .where(Order.order_id == order_id, Order.user_id.is_(None))
            .values(user_id=user_id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount

    @staticmethod
    async def get_owner(db: AsyncSession, order_id: str):
        result = await db.execute(select(Order.user_id).where(Order.order_id == order_id))
        return result.scalar()

    @staticmethod
    async def get_orders_for_user(db: AsyncSession, user_id: str):
        result = await db.execute(
            select(Order).where(Order.user_id == user_id).order_by(Order.order_date.desc(), Order.order_id)
        )
        return result.scalars().all()
