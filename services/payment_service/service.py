from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, Optional

import structlog

from services.order_service.models import Order, OrderItem, PaymentStatus
from services.order_service.store import OrderStore, SqlOrderStore
from shared.observability import ecomm_checkout_total

from .exceptions import GatewayMisconfigured, GatewayUnreachable, StoreUnavailable, ValidationError
from .gateway import GatewayClient
from .reconciler import OrderReconciler, ReconciliationQueue
from .schemas import PaymentRequest
from .validation import CheckoutRequest, validate_payment_request

logger = structlog.get_logger(__name__)

Dispatch = Callable[[Awaitable, str], object]


@dataclass(frozen=True)
class SubmissionResult:
    order_id: str
    status: str
    message: str


def build_order(checkout: CheckoutRequest, user_id: Optional[str]) -> Order:
    shipping = checkout.shipping.formatted()
    return Order(
        order_id=checkout.order_id,
        user_id=user_id,
        payment_status=PaymentStatus.PENDING.value,
        order_status="pending",
        payment_method="credit_card",
        shipping_method="standard",
        total_amount=checkout.amount,
        shipping_address=shipping,
        billing_address=checkout.billing.formatted() if checkout.billing else shipping,
        email=checkout.email,
        phone=checkout.phone,
        ffl_dealer=checkout.ffl_dealer,
        items=[
            OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price_at_time_of_order=item.price,
                total_price=item.total,
                options=item.options,
            )
            for item in checkout.items
        ],
    )


class CheckoutOrchestrator:
    """
    Turns a checkout form into a payment attempt without waiting for settlement.

    Sequence: validate -> create pending order -> POST to the processor -> hand
    the reply to the reconciler in the background -> return 'pending'. The
    browser learns the outcome by polling the order status.
    """

    def __init__(
        self,
        store: OrderStore,
        gateway: GatewayClient,
        reconciler: Optional[OrderReconciler] = None,
        dispatch: Optional[Dispatch] = None,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.gateway = gateway
        self.reconciler = reconciler or OrderReconciler(store)
        self.queue = ReconciliationQueue()
        self._dispatch = dispatch or self.queue.submit
        self._today = today

    async def submit_payment(self, request: PaymentRequest, user_id: Optional[str] = None) -> SubmissionResult:
        try:
            checkout = validate_payment_request(request, today=self._today())
        except ValidationError as exc:
            ecomm_checkout_total.labels(status="invalid").inc()
            logger.info("checkout_rejected", order_id=request.order_id, field=exc.field, reason=exc.message)
            raise

        log = logger.bind(order_id=checkout.order_id, amount=str(checkout.amount), item_count=len(checkout.items))

        try:
            self.gateway.ensure_configured()
        except GatewayMisconfigured:
            ecomm_checkout_total.labels(status="misconfigured").inc()
            log.error("checkout_gateway_misconfigured")
            raise

        if checkout.items_total != checkout.amount:
            # Tax and shipping are added by the caller
            log.warning("checkout_amount_differs_from_items", items_total=str(checkout.items_total))

        try:
            await self.store.create(build_order(checkout, user_id))
        except StoreUnavailable:
            ecomm_checkout_total.labels(status="store_error").inc()
            log.error("checkout_order_create_failed")
            raise
        log.info("checkout_order_created", guest=user_id is None)

        try:
            reply = await self.gateway.send(checkout)
        except GatewayUnreachable as exc:
            # Truth is deferred to the stored status; the poller times out if nothing lands.
            log.warning("checkout_gateway_unreachable", error=exc.message)
        else:
            self._dispatch(self.reconciler.reconcile_reply(checkout.order_id, reply.body), checkout.order_id)

        ecomm_checkout_total.labels(status="pending").inc()
        return SubmissionResult(
            order_id=checkout.order_id,
            status=PaymentStatus.PENDING.value,
            message="Payment processing initiated",
        )


_default_orchestrator: Optional[CheckoutOrchestrator] = None


def get_orchestrator() -> CheckoutOrchestrator:
    """FastAPI dependency; tests override it through app.dependency_overrides."""
    global _default_orchestrator
    if _default_orchestrator is None:
        _default_orchestrator = CheckoutOrchestrator(store=SqlOrderStore(), gateway=GatewayClient())
    return _default_orchestrator

