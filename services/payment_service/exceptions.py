"""
Error taxonomy for the checkout flow.

Only ValidationError, StoreUnavailable/DuplicateOrder and GatewayMisconfigured
ever reach the caller of submit_payment. Everything that happens after the
submission returns is reported through the stored order status instead.
"""


class PaymentError(Exception):
    """Base class for checkout/payment failures."""

    def __init__(self, message: str, order_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.order_id = order_id


class ValidationError(PaymentError):
    """Malformed or missing input. Raised before any order is written."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class StoreUnavailable(PaymentError):
    """The order record store rejected or failed a write."""


class DuplicateOrder(StoreUnavailable):
    """An order with this identifier already exists."""


class OrderNotFound(PaymentError):
    """No order with this identifier exists."""


class OrderAlreadyLinked(PaymentError):
    """The order already belongs to a different user."""


class GatewayMisconfigured(PaymentError):
    """Merchant credentials for the card processor are missing."""


class GatewayUnreachable(PaymentError):
    """Transport-level failure talking to the card processor."""


class GatewayProtocolError(PaymentError):
    """The processor reply could not be parsed or did not echo our order id."""


class Declined(PaymentError):
    """The processor answered and refused the charge."""


class PollingTimeout(PaymentError):
    """No terminal status was observed before the polling ceiling."""
