from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

class OrderItemResponse(BaseModel):
    product_id: str
    quantity: int
    price_at_time_of_order: Decimal
    total_price: Decimal
    options: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True

class OrderResponse(BaseModel):
    order_id: str
    user_id: Optional[str]
    payment_status: str
    order_status: str
    total_amount: Decimal
    shipping_address: str
    billing_address: str
    email: Optional[str] = None
    phone: Optional[str] = None
    ffl_dealer: Optional[Dict[str, Any]] = None
    payment_processor_response: Optional[Dict[str, Any]] = None
    response_message: Optional[str] = None
    order_date: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True

class OrderStatusResponse(BaseModel):
    """What the browser poller sees. No addresses, no processor payload."""
    order_id: str
    payment_status: str
    response_message: Optional[str] = None

    class Config:
        from_attributes = True

class LinkOrderResponse(BaseModel):
    order_id: str
    user_id: str
