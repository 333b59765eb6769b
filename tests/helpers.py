from datetime import date
from urllib.parse import parse_qs

import httpx

from services.payment_service.gateway import GatewayClient
from services.payment_service.schemas import PaymentRequest

ORDER_ID = "3f1c2b9e-8d4a-4c1e-9f7a-2b6d5e4c3a21"
OTHER_ORDER_ID = "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d"
TODAY = date(2026, 10, 19)
GATEWAY_URL = "https://gateway.test/transact.pl"


def payment_payload(**overrides) -> dict:
    """The JSON body the checkout page posts."""
    payload = {
        "orderId": ORDER_ID,
        "cardNumber": "4111 1111 1111 1111",
        "expiryMonth": "9",
        "expiryYear": "2031",
        "cvv": "123",
        "nameOnCard": "Jordan Smith",
        "amount": "129.99",
        "shippingAddress": {"address": "12 Range Rd", "city": "Boise", "state": "ID", "zipCode": "83702"},
        "items": [{"id": "rifle-stock-7", "quantity": 1, "price": "129.99", "options": {"color": "walnut"}}],
        "email": "jordan@example.com",
        "phone": "208-555-0100",
    }
    payload.update(overrides)
    return payload


def payment_request(**overrides) -> PaymentRequest:
    return PaymentRequest.model_validate(payment_payload(**overrides))


class RecordingGateway:
    """Card processor stand-in: answers every POST with a canned body and records what it got."""

    def __init__(self, body: str = "", status_code: int = 200, error: Exception | None = None):
        self.body = body
        self.status_code = status_code
        self.error = error
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, text=self.body)

    def client(self) -> GatewayClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return GatewayClient(account="080880", restrict_key="test-restrict-key", api_url=GATEWAY_URL, client=http)

    def form(self, index: int = 0) -> dict:
        parsed = parse_qs(self.requests[index].content.decode(), keep_blank_values=True)
        return {key: values[0] for key, values in parsed.items()}
