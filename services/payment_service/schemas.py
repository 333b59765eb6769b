from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# The storefront sends camelCase JSON; snake_case is accepted too.
_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AddressIn(BaseModel):
    model_config = _CAMEL

    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class OrderItemIn(BaseModel):
    model_config = _CAMEL

    product_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "productId", "product_id"))
    quantity: Optional[int] = None
    price: Optional[Decimal] = None
    options: Optional[Dict[str, Any]] = None

    @field_validator("product_id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return str(value) if isinstance(value, int) else value


class PaymentRequest(BaseModel):
    """
    Checkout payload. Deliberately permissive: presence and format rules live in
    validation.py so every failure names the offending field the same way.
    """
    model_config = _CAMEL

    order_id: Optional[str] = None
    card_number: Optional[str] = None
    expiry_month: Optional[str] = None
    expiry_year: Optional[str] = None
    cvv: Optional[str] = None
    name_on_card: Optional[str] = None
    amount: Optional[Decimal] = None
    shipping_address: Optional[AddressIn] = None
    billing_address: Optional[AddressIn] = None
    items: List[OrderItemIn] = []
    email: Optional[str] = None
    phone: Optional[str] = None
    ffl_dealer_info: Optional[Dict[str, Any]] = None

    @field_validator("expiry_month", "expiry_year", "cvv", mode="before")
    @classmethod
    def _stringify_numbers(cls, value):
        return str(value) if isinstance(value, int) else value


class SubmissionResponse(BaseModel):
    model_config = _CAMEL

    order_id: str
    status: str
    message: str
