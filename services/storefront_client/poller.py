"""
Order status polling for the checkout page.

The server never pushes settlement, so after submitting a payment the page
reads the order status until it is paid or failed, or gives up after a
ceiling. Each session walks:

    idle -> waiting (initial delay) -> polling -> resolved_paid
                                               -> resolved_failed
                                               -> timed_out

and can be cancelled at any point (the page unmounted). After cancel() no
callback fires. The timeout path only informs the caller; it never writes the
stored order.
"""
import asyncio
import enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import structlog

from services.payment_service.exceptions import PollingTimeout
from shared.config import settings

from .client import StatusUnavailable

logger = structlog.get_logger(__name__)

SUCCESS_ROUTE = "/payment/success"
ERROR_ROUTE = "/payment/error"
TIMEOUT_MESSAGE = "Payment processing timeout"
PAID = "paid"
FAILED = "failed"
TERMINAL_STATUSES = (PAID, FAILED)

FetchStatus = Callable[[str], Awaitable[tuple]]
StatusCallback = Callable[[str, Optional[str]], Any]
Navigate = Callable[[str, Dict[str, Any]], Any]


class PollState(str, enum.Enum):
    IDLE = "idle"
    WAITING = "waiting"
    POLLING = "polling"
    RESOLVED_PAID = "resolved_paid"
    RESOLVED_FAILED = "resolved_failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class PollingSession:
    """One polling run for one order. Doubles as the cancellation handle."""

    def __init__(
        self,
        poller: "OrderStatusPoller",
        order_id: str,
        on_status_change: Optional[StatusCallback],
        on_timeout: Optional[Callable[[str], Any]],
    ):
        self.poller = poller
        self.order_id = order_id
        self.on_status_change = on_status_change
        self.on_timeout = on_timeout
        self.state = PollState.IDLE
        self._cancelled = False
        self._last_status: Optional[str] = None
        self._log = logger.bind(order_id=order_id)
        self._task: Optional[asyncio.Task] = None

    def start(self) -> "PollingSession":
        self._task = asyncio.create_task(self._run())
        return self

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        """Stop the interval and the timeout. Suppresses every later callback."""
        if self._cancelled or self.done:
            return
        self._cancelled = True
        self.state = PollState.CANCELLED
        if self._task is not None:
            self._task.cancel()
        self._log.info("order_polling_cancelled")

    async def wait(self) -> PollState:
        """Wait until the session settles, times out, or is cancelled."""
        if self._task is None:
            return self.state
        await asyncio.wait({self._task})
        if not self._task.cancelled() and self._task.exception() is not None:
            raise self._task.exception()
        return self.state

    def raise_for_state(self) -> None:
        """For scripted callers: a timed-out session raises PollingTimeout."""
        if self.state is PollState.TIMED_OUT:
            raise PollingTimeout(TIMEOUT_MESSAGE, self.order_id)

    # --- internals ---

    async def _run(self) -> PollState:
        poller = self.poller
        self._log.info("order_polling_started")
        self.state = PollState.WAITING
        await asyncio.sleep(poller.initial_delay)

        self.state = PollState.POLLING
        try:
            status, message = await asyncio.wait_for(self._poll_until_settled(), timeout=poller.timeout)
        except asyncio.TimeoutError:
            self._time_out()
            return self.state

        await self._settle(status, message)
        return self.state

    async def _poll_until_settled(self) -> tuple:
        while True:
            try:
                status, message = await self.poller.fetch_status(self.order_id)
            except (StatusUnavailable, httpx.HTTPError) as exc:
                self._log.warning("order_status_check_failed", error=str(exc))
            except Exception:
                # Any failed read waits for the next tick; only the ceiling ends polling
                self._log.exception("order_status_check_error")
            else:
                self._report(status, message)
                if status in TERMINAL_STATUSES:
                    return status, message
            await asyncio.sleep(self.poller.interval)

    def _report(self, status: str, message: Optional[str]) -> None:
        if status == self._last_status:
            return
        self._last_status = status
        self._log.info("order_status_update", status=status, message=message)
        self._emit(status, message)

    def _emit(self, status: str, message: Optional[str]) -> None:
        if not self._cancelled and self.on_status_change is not None:
            self.on_status_change(status, message)

    def _navigate(self, route: str, message: str) -> None:
        if not self._cancelled and self.poller.navigate is not None:
            self.poller.navigate(route, {"orderId": self.order_id, "message": message})

    async def _settle(self, status: str, message: Optional[str]) -> None:
        if status == PAID:
            self.state = PollState.RESOLVED_PAID
            if not self._cancelled and self.poller.on_paid is not None:
                self.poller.on_paid()
            await asyncio.sleep(self.poller.settle_delay)
            self._navigate(SUCCESS_ROUTE, "Your payment has been processed successfully.")
        else:
            self.state = PollState.RESOLVED_FAILED
            await asyncio.sleep(self.poller.settle_delay)
            self._navigate(ERROR_ROUTE, message or "There was an error processing your payment.")

    def _time_out(self) -> None:
        self.state = PollState.TIMED_OUT
        self._log.warning("order_polling_timed_out", timeout=self.poller.timeout)
        self._emit(FAILED, TIMEOUT_MESSAGE)
        if not self._cancelled and self.on_timeout is not None:
            self.on_timeout(self.order_id)
        self._navigate(ERROR_ROUTE, "Payment processing timed out. Please try again.")


class OrderStatusPoller:
    """
    Polling policy plus the page's side effects.

    fetch_status(order_id) returns (payment_status, message), e.g.
    StorefrontClient.get_order_status. on_paid clears the cart; navigate(route,
    state) moves the page. Both are injected so the flow runs without a UI.
    The timeout ceiling starts with the first read, after the initial delay.
    """

    def __init__(
        self,
        fetch_status: FetchStatus,
        *,
        initial_delay: float | None = None,
        interval: float | None = None,
        timeout: float | None = None,
        settle_delay: float | None = None,
        on_paid: Optional[Callable[[], Any]] = None,
        navigate: Optional[Navigate] = None,
    ):
        self.fetch_status = fetch_status
        self.initial_delay = settings.POLL_INITIAL_DELAY_SECONDS if initial_delay is None else initial_delay
        self.interval = settings.POLL_INTERVAL_SECONDS if interval is None else interval
        self.timeout = settings.POLL_TIMEOUT_SECONDS if timeout is None else timeout
        self.settle_delay = settings.POLL_SETTLE_DELAY_SECONDS if settle_delay is None else settle_delay
        self.on_paid = on_paid
        self.navigate = navigate

    def start(
        self,
        order_id: str,
        on_status_change: Optional[StatusCallback] = None,
        on_timeout: Optional[Callable[[str], Any]] = None,
    ) -> PollingSession:
        return PollingSession(self, order_id, on_status_change, on_timeout).start()


def poll_order_status(
    fetch_status: FetchStatus,
    order_id: str,
    on_status_change: Optional[StatusCallback] = None,
    on_timeout: Optional[Callable[[str], Any]] = None,
    **options,
) -> PollingSession:
    """Start a cancellable polling session. Must be called from a running event loop."""
    return OrderStatusPoller(fetch_status, **options).start(order_id, on_status_change, on_timeout)
