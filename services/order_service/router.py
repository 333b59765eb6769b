from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import get_current_user, verify_internal_api_key

from .schemas import LinkOrderResponse, OrderResponse, OrderStatusResponse
from .service import OrderService

# Full order records are for internal callers only
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


@public_router.get("/mine", response_model=List[OrderResponse])
async def list_my_orders(db: AsyncSession = Depends(get_db), user_id: str = Depends(get_current_user)):
    """Order history for the signed-in shopper, including linked guest orders."""
    return await OrderService.list_orders_for_user(db, user_id)


@public_router.get("/{order_id}/status", response_model=OrderStatusResponse)
async def get_order_status(order_id: str, db: AsyncSession = Depends(get_db)):
    """Polled by the browser after checkout. The order id is the capability."""
    return await OrderService.get_order(db, order_id)


@public_router.patch("/{order_id}/user", response_model=LinkOrderResponse)
async def link_order_to_user(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
):
    order = await OrderService.link_order_to_user(db, order_id, user_id)
    return LinkOrderResponse(order_id=order.order_id, user_id=order.user_id)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    return await OrderService.get_order(db, order_id)
