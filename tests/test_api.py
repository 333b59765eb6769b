import json

import httpx
import pytest

from services.order_service.main import order_app
from services.payment_service.main import payment_app
from services.payment_service.service import CheckoutOrchestrator, get_orchestrator
from shared.config.database import get_db
from shared.security import create_access_token

from helpers import ORDER_ID, OTHER_ORDER_ID, RecordingGateway, payment_payload

INTERNAL_HEADERS = {"X-Internal-API-Key": "test-internal-key"}


@pytest.fixture
def gateway():
    return RecordingGateway(json.dumps({"Success": "Y", "Postback.OrderID": ORDER_ID}))


@pytest.fixture
def orchestrator(store, gateway, today):
    return CheckoutOrchestrator(store, gateway.client(), today=today)


@pytest.fixture
async def payments(orchestrator):
    payment_app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=payment_app), base_url="http://test") as client:
        yield client
    payment_app.dependency_overrides.clear()


@pytest.fixture
async def orders(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    order_app.dependency_overrides[get_db] = override_get_db
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=order_app), base_url="http://test") as client:
        yield client
    order_app.dependency_overrides.clear()


def _bearer(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


async def test_submit_answers_pending_then_status_turns_paid(payments, orders, orchestrator):
    resp = await payments.post("/", json=payment_payload())

    assert resp.status_code == 200
    assert resp.json() == {"orderId": ORDER_ID, "status": "pending", "message": "Payment processing initiated"}

    await orchestrator.queue.drain()
    status = await orders.get(f"/{ORDER_ID}/status")
    assert status.status_code == 200
    assert status.json() == {"order_id": ORDER_ID, "payment_status": "paid", "response_message": None}


async def test_invalid_payload_names_the_field(payments, gateway):
    resp = await payments.post("/", json=payment_payload(cardNumber="1234"))

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "detail": "Invalid card number", "field": "card_number"}
    assert gateway.requests == []


async def test_duplicate_submission_conflicts(payments, orchestrator):
    assert (await payments.post("/", json=payment_payload())).status_code == 200
    await orchestrator.queue.drain()

    resp = await payments.post("/", json=payment_payload())
    assert resp.status_code == 409
    assert resp.json()["success"] is False


async def test_signed_in_checkout_records_the_user(payments, orders, orchestrator):
    resp = await payments.post("/", json=payment_payload(), headers=_bearer("user-42"))
    assert resp.status_code == 200
    await orchestrator.queue.drain()

    order = await orders.get(f"/{ORDER_ID}", headers=INTERNAL_HEADERS)
    assert order.status_code == 200
    body = order.json()
    assert body["user_id"] == "user-42"
    assert body["payment_status"] == "paid"
    assert body["items"][0]["product_id"] == "rifle-stock-7"


async def test_status_of_unknown_order_is_404(orders):
    resp = await orders.get(f"/{OTHER_ORDER_ID}/status")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


async def test_full_order_requires_internal_key(payments, orders, orchestrator):
    await payments.post("/", json=payment_payload())
    await orchestrator.queue.drain()

    assert (await orders.get(f"/{ORDER_ID}")).status_code == 403
    assert (await orders.get(f"/{ORDER_ID}", headers={"X-Internal-API-Key": "wrong"})).status_code == 403


async def test_guest_order_is_linked_after_sign_in(payments, orders, orchestrator):
    await payments.post("/", json=payment_payload())
    await orchestrator.queue.drain()

    assert (await orders.patch(f"/{ORDER_ID}/user")).status_code == 401

    linked = await orders.patch(f"/{ORDER_ID}/user", headers=_bearer("user-42"))
    assert linked.status_code == 200
    assert linked.json() == {"order_id": ORDER_ID, "user_id": "user-42"}

    again = await orders.patch(f"/{ORDER_ID}/user", headers=_bearer("user-42"))
    assert again.status_code == 200

    conflict = await orders.patch(f"/{ORDER_ID}/user", headers=_bearer("user-99"))
    assert conflict.status_code == 409

    status = await orders.get(f"/{ORDER_ID}/status")
    assert status.json()["payment_status"] == "paid"


async def test_linked_guest_order_shows_in_order_history(payments, orders, orchestrator):
    await payments.post("/", json=payment_payload())
    await orchestrator.queue.drain()

    assert (await orders.get("/mine")).status_code == 401
    assert (await orders.get("/mine", headers=_bearer("user-42"))).json() == []

    await orders.patch(f"/{ORDER_ID}/user", headers=_bearer("user-42"))
    history = await orders.get("/mine", headers=_bearer("user-42"))

    assert history.status_code == 200
    assert [order["order_id"] for order in history.json()] == [ORDER_ID]
    assert history.json()[0]["payment_status"] == "paid"
    assert (await orders.get("/mine", headers=_bearer("user-99"))).json() == []


async def test_health_routes(payments, orders):
    assert (await payments.get("/health")).json() == {"service": "payment", "status": "running"}
    assert (await orders.get("/health")).json() == {"service": "order", "status": "running"}
