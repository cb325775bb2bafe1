from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

from guestpay.core.security import create_access_token
from guestpay.db.models import Charge as ChargeModel
from guestpay.infrastructure.gateway import GatewayDeclineError
from guestpay.interfaces.http.deps import get_db_session, get_gateway, get_notifier
from guestpay.main import create_app
from guestpay.modules.charges import ChargeStatus

from .fakes import VALID_SIGNATURE, event_payload


@pytest.fixture
def app(session_factory, gateway, notifier):
    app = create_app()

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token('op-1', 'frontdesk')}"}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_operator_routes_require_token(client, customer):
    response = await client.post(
        "/api/charges/link-session", json={"customer_id": customer.id, "amount": "50.00"}
    )

    assert response.status_code in {401, 403}


@pytest.mark.asyncio
async def test_link_session_then_guest_redirect(client, auth_headers, customer):
    response = await client.post(
        "/api/charges/link-session",
        json={"customer_id": customer.id, "amount": "50.00", "currency": "eur"},
        headers=auth_headers,
    )

    assert response.status_code == 201
    body = response.json()
    charge_id = body["charge_id"]
    assert body["gatekeeper_url"].endswith(f"/charge/{charge_id}")

    view = await client.get(f"/api/charges/{charge_id}")
    assert view.status_code == 200
    assert Decimal(view.json()["amount"]) == Decimal("50")
    assert view.json()["amount_cents"] == 5000
    assert view.json()["status"] == "PENDING"
    assert view.json()["is_expired"] is False

    redirect = await client.get(f"/api/charges/{charge_id}/redirect", follow_redirects=False)
    assert redirect.status_code == 302
    assert redirect.headers["location"] == body["payment_url"]


@pytest.mark.asyncio
async def test_zero_amount_rejected(client, auth_headers, customer):
    response = await client.post(
        "/api/charges/link-session",
        json={"customer_id": customer.id, "amount": "0"},
        headers=auth_headers,
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_card_charge(client, auth_headers, customer, gateway):
    response = await client.post(
        "/api/charges/card",
        json={"customer_id": customer.id, "payment_method_id": "pm_1", "amount": "25.99"},
        headers=auth_headers,
    )

    assert response.status_code == 202
    assert response.json()["status"] == "succeeded"
    assert gateway.called("charge_instrument")[0]["amount_cents"] == 2599


@pytest.mark.asyncio
async def test_new_card_decline_is_402(client, auth_headers, customer, gateway):
    gateway.attach_error = GatewayDeclineError("Your card was declined.", "card_declined")

    response = await client.post(
        "/api/charges/new-card",
        json={"customer_id": customer.id, "payment_method_id": "pm_bad", "amount": "10.00"},
        headers=auth_headers,
    )

    assert response.status_code == 402
    assert response.json()["detail"] == "Your card was declined."


@pytest.mark.asyncio
async def test_card_charge_without_billing_profile_is_404(client, auth_headers, walk_in_customer):
    response = await client.post(
        "/api/charges/card",
        json={"customer_id": walk_in_customer.id, "payment_method_id": "pm_1", "amount": "10.00"},
        headers=auth_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_manual_transaction_recorded_once(client, auth_headers, customer, gateway):
    gateway.add_transaction("pi_123", amount_cents=10000)
    payload = {"customer_id": customer.id, "transaction_id": "pi_123"}

    first = await client.post("/api/charges/manual-transaction", json=payload, headers=auth_headers)
    assert first.status_code == 201
    body = first.json()
    assert Decimal(body["amount"]) == Decimal("100.00")
    assert body["status"] == "SUCCEEDED"
    assert body["source"]["transaction_type"] == "Payment Intent"

    second = await client.post("/api/charges/manual-transaction", json=payload, headers=auth_headers)
    assert second.status_code == 400
    assert second.json()["detail"] == "This transaction is already recorded in our system."


@pytest.mark.asyncio
async def test_refund_flow(client, auth_headers, customer, gateway):
    gateway.payment_status = "requires_action"
    created = await client.post(
        "/api/charges/card",
        json={"customer_id": customer.id, "payment_method_id": "pm_1", "amount": "10.00"},
        headers=auth_headers,
    )
    charge_id = created.json()["charge_id"]

    pending = await client.post(f"/api/charges/{charge_id}/refund", headers=auth_headers)
    assert pending.status_code == 400
    assert gateway.called("refund") == []

    gateway.add_transaction("pi_settled", amount_cents=1000)
    recorded = await client.post(
        "/api/charges/manual-transaction",
        json={"customer_id": customer.id, "transaction_id": "pi_settled"},
        headers=auth_headers,
    )
    refunded = await client.post(f"/api/charges/{recorded.json()['charge_id']}/refund", headers=auth_headers)

    assert refunded.status_code == 200
    assert refunded.json()["status"] == ChargeStatus.REFUNDED.value


@pytest.mark.asyncio
async def test_unknown_charge_is_404(client):
    assert (await client.get("/api/charges/missing")).status_code == 404
    assert (await client.get("/api/charges/missing/redirect", follow_redirects=False)).status_code == 404


@pytest.mark.asyncio
async def test_expired_link_is_rejected(client, auth_headers, customer, session_factory):
    response = await client.post(
        "/api/charges/link-session",
        json={"customer_id": customer.id, "amount": "5.00"},
        headers=auth_headers,
    )
    charge_id = response.json()["charge_id"]

    async with session_factory() as session:
        await session.execute(
            update(ChargeModel)
            .where(ChargeModel.id == charge_id)
            .values(expired_at=datetime.now(timezone.utc) - timedelta(minutes=1))
        )
        await session.commit()

    redirect = await client.get(f"/api/charges/{charge_id}/redirect", follow_redirects=False)
    assert redirect.status_code == 400
    assert redirect.json()["detail"] == "Charge is expired"
    assert (await client.get(f"/api/charges/{charge_id}")).json()["is_expired"] is True


@pytest.mark.asyncio
async def test_webhook_settles_link_charge(client, auth_headers, customer):
    created = await client.post(
        "/api/charges/link-session",
        json={"customer_id": customer.id, "amount": "12.50"},
        headers=auth_headers,
    )
    charge_id = created.json()["charge_id"]
    payload = event_payload(
        "payment_intent.succeeded", {"id": "pi_guest", "metadata": {"chargeId": charge_id}}
    )

    response = await client.post(
        "/api/webhooks/gateway", content=payload, headers={"stripe-signature": VALID_SIGNATURE}
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "charge_id": charge_id}
    assert (await client.get(f"/api/charges/{charge_id}")).json()["status"] == "SUCCEEDED"

    redirect = await client.get(f"/api/charges/{charge_id}/redirect", follow_redirects=False)
    assert redirect.status_code == 400
    assert redirect.json()["detail"] == "Charge completed successfully"


@pytest.mark.asyncio
async def test_webhook_signature_checked(client):
    payload = event_payload("payment_intent.succeeded", {"id": "pi_1"})

    missing = await client.post("/api/webhooks/gateway", content=payload)
    forged = await client.post("/api/webhooks/gateway", content=payload, headers={"stripe-signature": "forged"})

    assert missing.status_code == 400
    assert forged.status_code == 400


@pytest.mark.asyncio
async def test_customer_charge_listing(client, auth_headers, customer):
    for amount in ("5.00", "7.50"):
        await client.post(
            "/api/charges/link-session",
            json={"customer_id": customer.id, "amount": amount},
            headers=auth_headers,
        )

    response = await client.get(f"/api/customers/{customer.id}/charges", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert {Decimal(item["amount"]) for item in body["charges"]} == {Decimal("5.00"), Decimal("7.50")}
    assert (await client.get("/api/customers/missing/charges", headers=auth_headers)).status_code == 404


@pytest.mark.asyncio
async def test_unexpected_errors_become_500(app, auth_headers, customer, gateway):
    gateway.charge_error = RuntimeError("unexpected")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post(
            "/api/charges/card",
            json={"customer_id": customer.id, "payment_method_id": "pm_1", "amount": "10.00"},
            headers=auth_headers,
        )

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
