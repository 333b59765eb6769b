"""
Outbound authorization requests to the card processor.

The processor speaks a flat `application/x-www-form-urlencoded` protocol. The
`Postback.*` / `PostbackID` fields are echoed back in the reply, which is how a
reply is correlated to the order that produced it.
"""
import ssl
import time
from dataclasses import dataclass

import httpx
import structlog

from shared.config import settings
from shared.observability import ecomm_gateway_latency_seconds, ecomm_gateway_requests_total

from .exceptions import GatewayMisconfigured, GatewayUnreachable
from .validation import CheckoutRequest

logger = structlog.get_logger(__name__)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "*/*",
}


@dataclass(frozen=True)
class GatewayReply:
    status_code: int
    body: str


def tls12_context() -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    return ctx


def build_form_fields(checkout: CheckoutRequest, account: str, restrict_key: str) -> dict:
    """Encode one Sale transaction. Billing address wins, shipping fills in."""
    billing = checkout.billing
    shipping = checkout.shipping
    total = f"{checkout.amount:.2f}"

    def pick(attr: str) -> str:
        return ((billing and getattr(billing, attr)) or getattr(shipping, attr) or "").strip()

    return {
        "ePNAccount": account,
        "RestrictKey": restrict_key,
        "RequestType": "transaction",
        "TranType": "Sale",
        "IndustryType": "E",
        "Total": total,
        "Address": pick("address"),
        "City": pick("city"),
        "State": pick("state"),
        "Zip": pick("zip_code"),
        "CardNo": "".join(checkout.card_number.split()),
        "ExpMonth": f"{checkout.expiry_month:02d}",
        "ExpYear": str(checkout.expiry_year)[-2:],
        "CVV2Type": "1",
        "CVV2": checkout.cvv,
        "Postback.OrderID": checkout.order_id,
        "Postback.Description": f"Order {checkout.order_id}",
        "Postback.Total": total,
        "Postback.RestrictKey": restrict_key,
        "PostbackID": checkout.order_id,
        "COMBINE_PB_RESPONSE": "1",
        "NOMAIL_CARDHOLDER": "1",
        "NOMAIL_MERCHANT": "1",
    }


class GatewayClient:
    """
    Sends exactly one POST per checkout attempt. There is no idempotency key on
    the processor side, so nothing here retries.
    """

    def __init__(
        self,
        account: str | None = None,
        restrict_key: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.account = settings.EPN_ACCOUNT if account is None else account
        self.restrict_key = settings.EPN_RESTRICT_KEY if restrict_key is None else restrict_key
        self.api_url = api_url or settings.EPN_API_URL
        self.timeout = settings.EPN_TIMEOUT_SECONDS if timeout is None else timeout
        self._client = client

    def ensure_configured(self) -> None:
        if not self.account or not self.restrict_key:
            raise GatewayMisconfigured("Missing card processor credentials (EPN_ACCOUNT_NUMBER / EPN_X_TRAN)")

    async def send(self, checkout: CheckoutRequest) -> GatewayReply:
        self.ensure_configured()
        fields = build_form_fields(checkout, self.account, self.restrict_key)
        log = logger.bind(order_id=checkout.order_id, amount=fields["Total"])
        log.info("gateway_request_sending")

        started = time.perf_counter()
        try:
            response = await self._post(fields)
        except httpx.HTTPError as exc:
            ecomm_gateway_requests_total.labels(result="unreachable").inc()
            log.warning("gateway_unreachable", error=str(exc))
            raise GatewayUnreachable(f"Card processor unreachable: {exc}", checkout.order_id) from exc
        finally:
            ecomm_gateway_latency_seconds.observe(time.perf_counter() - started)

        body = response.text
        if response.is_error and not body.strip():
            ecomm_gateway_requests_total.labels(result="unreachable").inc()
            log.warning("gateway_http_error", status_code=response.status_code)
            raise GatewayUnreachable(
                f"Card processor answered HTTP {response.status_code} with no body", checkout.order_id
            )

        ecomm_gateway_requests_total.labels(result="replied").inc()
        log.info("gateway_reply_received", status_code=response.status_code, raw_response=body)
        return GatewayReply(status_code=response.status_code, body=body)

    async def _post(self, fields: dict) -> httpx.Response:
        headers = {**FORM_HEADERS, "User-Agent": settings.EPN_USER_AGENT}
        if self._client is not None:
            return await self._client.post(self.api_url, data=fields, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(verify=tls12_context(), timeout=self.timeout) as client:
            return await client.post(self.api_url, data=fields, headers=headers)
