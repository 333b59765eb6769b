"""
Apply processor replies to stored orders.

Reconciliation runs after the submission response has gone back to the
browser, so nothing here may raise into the request. ReconciliationQueue is
the boundary: it owns the background tasks and logs whatever they raise.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Set

import structlog

from services.order_service.models import PaymentStatus
from services.order_service.store import OrderStore
from shared.observability import ecomm_reconciliation_skipped_total, ecomm_reconciliation_total

from .exceptions import OrderNotFound, StoreUnavailable
from .parser import GatewayOutcome, OutcomeKind, parse_gateway_response

logger = structlog.get_logger(__name__)

UNCONFIRMED_MESSAGE = (
    "We could not confirm your payment status. Please contact us before trying again."
)
DECLINED_MESSAGE = "Your payment was declined."


@dataclass(frozen=True)
class ReconciliationResult:
    order_id: str
    payment_status: PaymentStatus
    kind: OutcomeKind
    applied: bool # False when the order had already left 'pending'


def user_message(outcome: GatewayOutcome) -> str | None:
    if outcome.kind is OutcomeKind.APPROVED:
        return None
    if outcome.kind is OutcomeKind.PROTOCOL_ERROR:
        return UNCONFIRMED_MESSAGE
    return outcome.error_message or DECLINED_MESSAGE


class OrderReconciler:
    def __init__(self, store: OrderStore):
        self._store = store

    async def apply(self, order_id: str, outcome: GatewayOutcome) -> ReconciliationResult:
        """
        Move a pending order to paid/failed. Only mutates existing orders; a missing
        order raises OrderNotFound. Replies for orders that already left 'pending'
        (duplicate or stale callbacks) are ignored so a late failure can never
        overwrite 'paid'.
        """
        status = PaymentStatus.PAID if outcome.approved else PaymentStatus.FAILED
        record = outcome.to_record()
        record["received_at"] = datetime.now(timezone.utc).isoformat()
        patch = {
            "payment_status": status.value,
            "payment_processor_response": record,
            "response_message": user_message(outcome),
        }
        log = logger.bind(order_id=order_id, outcome=outcome.kind.value, payment_status=status.value)

        try:
            applied = await self._store.update(order_id, patch, expected_status=PaymentStatus.PENDING.value)
        except OrderNotFound:
            ecomm_reconciliation_skipped_total.labels(reason="not_found").inc()
            log.error("reconcile_order_missing", raw_response=outcome.raw_response)
            raise
        except StoreUnavailable:
            ecomm_reconciliation_skipped_total.labels(reason="store_error").inc()
            log.error("reconcile_store_error", raw_response=outcome.raw_response)
            raise

        if not applied:
            ecomm_reconciliation_skipped_total.labels(reason="not_pending").inc()
            log.warning("reconcile_ignored_not_pending", raw_response=outcome.raw_response)
        else:
            ecomm_reconciliation_total.labels(outcome=outcome.kind.value).inc()
            log.info("reconcile_applied", error_message=outcome.error_message)
        return ReconciliationResult(order_id, status, outcome.kind, applied)

    async def reconcile_reply(self, order_id: str, body: str) -> ReconciliationResult:
        outcome = parse_gateway_response(body, order_id)
        return await self.apply(order_id, outcome)


class ReconciliationQueue:
    """Runs reconciliations in the background and keeps them referenced until done."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, job: Awaitable, order_id: str | None = None) -> asyncio.Task:
        task = asyncio.create_task(self._run(job, order_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, job: Awaitable, order_id: str | None):
        try:
            return await job
        except Exception:
            logger.exception("reconcile_failed", order_id=order_id)
            return None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight reconciliation (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
