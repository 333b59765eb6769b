"""
HTTP client for the storefront API, as used by the checkout page.

Mirrors what the browser does: submit the payment, then read the order status
until it settles (see poller.py).
"""
from typing import Optional

import httpx
import structlog

from shared.config import settings

logger = structlog.get_logger(__name__)


class StatusUnavailable(Exception):
    """The status read failed. The poller logs it and tries again on the next tick."""


class StorefrontClient:
    def __init__(
        self,
        base_url: str | None = None,
        access_token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = (base_url or settings.STOREFRONT_API_URL).rstrip("/")
        self.access_token = access_token
        self._client = client
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            return await self._client.request(method, url, headers=self._headers(), **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, headers=self._headers(), **kwargs)

    async def submit_payment(self, payload: dict) -> dict:
        """
        POST the checkout payload. Returns {"orderId", "status", "message"}.
        A 4xx body is returned as-is so the form can show the offending field.
        """
        resp = await self._request("POST", "/payments/", json=payload)
        if resp.status_code >= 500:
            logger.warning("submit_payment_server_error", status_code=resp.status_code,
                           order_id=payload.get("orderId"))
            resp.raise_for_status()
        return resp.json()

    async def get_order_status(self, order_id: str) -> tuple[str, Optional[str]]:
        """Returns (payment_status, response_message)."""
        try:
            resp = await self._request("GET", f"/orders/{order_id}/status")
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise StatusUnavailable(f"Could not read status of order {order_id}: {exc}") from exc
        try:
            data = resp.json()
            return data["payment_status"], data.get("response_message")
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            # A proxy or maintenance page can answer 200 with HTML
            raise StatusUnavailable(f"Unreadable status for order {order_id}: {exc!r}") from exc

    async def link_order_to_user(self, order_id: str) -> dict:
        """Attach a guest order to the signed-in user (the token's subject)."""
        resp = await self._request("PATCH", f"/orders/{order_id}/user")
        resp.raise_for_status()
        return resp.json()
