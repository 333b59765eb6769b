"""
Checkout input validation.

Runs before anything is written: a request that fails here leaves no order
behind. Returns a normalized CheckoutRequest that the rest of the flow relies on
(digits-only card number, 4-digit expiry year, amount quantized to cents).
"""
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from .exceptions import ValidationError
from .schemas import AddressIn, PaymentRequest

CARD_NUMBER_RE = re.compile(r"^\d{15,16}$")
CVV_RE = re.compile(r"^\d{3,4}$")
CENTS = Decimal("0.01")


@dataclass(frozen=True)
class Address:
    address: str
    city: str = ""
    state: str = ""
    zip_code: str = ""

    def formatted(self) -> str:
        return ", ".join(part for part in (self.address, self.city, self.state, self.zip_code) if part)


@dataclass(frozen=True)
class LineItem:
    product_id: str
    quantity: int
    price: Decimal
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return (self.price * self.quantity).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CheckoutRequest:
    order_id: str
    card_number: str
    expiry_month: int
    expiry_year: int
    cvv: str
    amount: Decimal
    shipping: Address
    items: List[LineItem]
    billing: Optional[Address] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    ffl_dealer: Optional[Dict[str, Any]] = None

    @property
    def billing_or_shipping(self) -> Address:
        return self.billing or self.shipping

    @property
    def items_total(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0.00"))


def _text(value) -> str:
    return (value or "").strip()


def _require(value, field_name: str) -> str:
    text = _text(value)
    if not text:
        raise ValidationError(field_name, f"{field_name} is required")
    return text


def _address(data: AddressIn) -> Address:
    return Address(
        address=_text(data.address),
        city=_text(data.city),
        state=_text(data.state),
        zip_code=_text(data.zip_code),
    )


def parse_expiry(month: str, year: str, today: date) -> tuple[int, int]:
    """Returns (month, four-digit year). The current month is still valid."""
    if not month.isdigit() or not 1 <= int(month) <= 12:
        raise ValidationError("expiry_month", "Invalid expiry date")
    if not year.isdigit() or len(year) not in (2, 4):
        raise ValidationError("expiry_year", "Invalid expiry date")
    exp_month = int(month)
    exp_year = int(year) + 2000 if len(year) == 2 else int(year)
    if (exp_year, exp_month) < (today.year, today.month):
        raise ValidationError("expiry_year", "Card has expired")
    return exp_month, exp_year


def _line_items(request: PaymentRequest) -> List[LineItem]:
    if not request.items:
        raise ValidationError("items", "At least one item is required")
    items = []
    for index, item in enumerate(request.items):
        prefix = f"items[{index}]"
        product_id = _require(item.product_id, f"{prefix}.product_id")
        if item.quantity is None or item.quantity < 1:
            raise ValidationError(f"{prefix}.quantity", "Quantity must be at least 1")
        if item.price is None or item.price < 0:
            raise ValidationError(f"{prefix}.price", "Price must not be negative")
        items.append(LineItem(product_id=product_id, quantity=item.quantity,
                              price=item.price.quantize(CENTS, rounding=ROUND_HALF_UP),
                              options=dict(item.options or {})))
    return items


def validate_payment_request(request: PaymentRequest, today: date | None = None) -> CheckoutRequest:
    today = today or date.today()

    order_id = _require(request.order_id, "order_id")
    if request.amount is None:
        raise ValidationError("amount", "amount is required")
    card_number = _require(request.card_number, "card_number")
    month = _require(request.expiry_month, "expiry_month")
    year = _require(request.expiry_year, "expiry_year")
    cvv = _require(request.cvv, "cvv")
    shipping_in = request.shipping_address or AddressIn()
    _require(shipping_in.address, "shipping_address.address")
    _require(shipping_in.zip_code, "shipping_address.zip_code")
    items = _line_items(request)

    try:
        uuid.UUID(order_id)
    except ValueError:
        raise ValidationError("order_id", "Invalid order ID format")

    # Checked at the precision that is charged
    if not request.amount.is_finite():
        raise ValidationError("amount", "Amount must be greater than zero")
    amount = request.amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise ValidationError("amount", "Amount must be greater than zero")

    card_number = re.sub(r"\s+", "", card_number)
    if not CARD_NUMBER_RE.match(card_number):
        raise ValidationError("card_number", "Invalid card number")

    exp_month, exp_year = parse_expiry(month, year, today)

    if not CVV_RE.match(cvv):
        raise ValidationError("cvv", "Invalid CVV")

    billing = None
    if request.billing_address is not None and _text(request.billing_address.address):
        billing = _address(request.billing_address)

    return CheckoutRequest(
        order_id=order_id,
        card_number=card_number,
        expiry_month=exp_month,
        expiry_year=exp_year,
        cvv=cvv,
        amount=amount,
        shipping=_address(shipping_in),
        billing=billing,
        items=items,
        email=_text(request.email) or None,
        phone=_text(request.phone) or None,
        ffl_dealer=request.ffl_dealer_info,
    )


def new_order_id() -> str:
    """A fresh order identifier. Each one names exactly one checkout attempt."""
    return str(uuid.uuid4())
