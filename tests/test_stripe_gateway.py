import json
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
import stripe

from guestpay.infrastructure.gateway import (
    GatewayDeclineError,
    GatewayError,
    GatewayReferenceError,
    GatewaySignatureError,
    StripeGateway,
    TransactionKind,
)


@pytest.fixture
def gateway():
    return StripeGateway("sk_test_123", webhook_secret="whsec_123", api_version="2024-06-20")


def recorder(calls, result):
    def _call(*args, **kwargs):
        calls.append((args, kwargs))
        if isinstance(result, Exception):
            raise result
        return result

    return _call


@pytest.mark.asyncio
async def test_charge_instrument_confirms_off_session(gateway, monkeypatch):
    calls = []
    monkeypatch.setattr(
        stripe.PaymentIntent, "create", recorder(calls, SimpleNamespace(id="pi_1", status="succeeded"))
    )

    payment = await gateway.charge_instrument(
        billing_profile_id="cus_1",
        instrument_ref="pm_1",
        amount_cents=2599,
        currency="eur",
        description="Minibar",
        metadata={"chargeId": "c-1"},
        idempotency_key="charge-c-1",
    )

    assert payment.reference == "pi_1"
    assert payment.status == "succeeded"
    (_, kwargs), = calls
    assert kwargs["amount"] == 2599
    assert kwargs["customer"] == "cus_1"
    assert kwargs["off_session"] is True
    assert kwargs["confirm"] is True
    assert kwargs["metadata"] == {"chargeId": "c-1"}
    assert kwargs["api_key"] == "sk_test_123"
    assert kwargs["stripe_version"] == "2024-06-20"
    assert kwargs["idempotency_key"] == "charge-c-1"


@pytest.mark.asyncio
async def test_card_error_becomes_decline(gateway, monkeypatch):
    monkeypatch.setattr(
        stripe.PaymentIntent,
        "create",
        recorder([], stripe.CardError("Your card was declined.", None, "card_declined")),
    )

    with pytest.raises(GatewayDeclineError) as excinfo:
        await gateway.charge_instrument(
            billing_profile_id="cus_1",
            instrument_ref="pm_1",
            amount_cents=100,
            currency="eur",
            description="x",
            metadata={},
        )

    assert "Your card was declined." in excinfo.value.message
    assert excinfo.value.code == "card_declined"


@pytest.mark.asyncio
async def test_other_stripe_errors_are_indeterminate(gateway, monkeypatch):
    monkeypatch.setattr(stripe.PaymentIntent, "create", recorder([], stripe.APIConnectionError("timeout")))

    with pytest.raises(GatewayError) as excinfo:
        await gateway.charge_instrument(
            billing_profile_id="cus_1",
            instrument_ref="pm_1",
            amount_cents=100,
            currency="eur",
            description="x",
            metadata={},
        )

    assert not isinstance(excinfo.value, GatewayDeclineError)


@pytest.mark.asyncio
async def test_payment_link_creates_price_then_link(gateway, monkeypatch):
    price_calls, link_calls = [], []
    monkeypatch.setattr(stripe.Price, "create", recorder(price_calls, SimpleNamespace(id="price_1")))
    monkeypatch.setattr(
        stripe.PaymentLink,
        "create",
        recorder(link_calls, SimpleNamespace(id="plink_1", url="https://buy.stripe.com/plink_1")),
    )

    link = await gateway.create_payment_link(
        amount_cents=5000, currency="eur", description="QR Code Payment", metadata={"chargeId": "c-1"}
    )

    assert link.reference == "plink_1"
    assert link.url == "https://buy.stripe.com/plink_1"
    assert price_calls[0][1]["unit_amount"] == 5000
    assert price_calls[0][1]["product_data"] == {"name": "QR Code Payment"}
    link_kwargs = link_calls[0][1]
    assert link_kwargs["line_items"] == [{"price": "price_1", "quantity": 1}]
    assert link_kwargs["payment_intent_data"] == {"metadata": {"chargeId": "c-1"}}


@pytest.mark.asyncio
async def test_retrieve_payment_intent(gateway, monkeypatch):
    intent = SimpleNamespace(
        id="pi_1",
        status="succeeded",
        amount=2599,
        currency="eur",
        created=1760000000,
        description=None,
        latest_charge=SimpleNamespace(id="ch_1", receipt_url="https://pay.stripe.com/receipts/1"),
    )
    calls = []
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", recorder(calls, intent))

    upstream = await gateway.retrieve_transaction("pi_1", TransactionKind.PAYMENT_INTENT)

    assert calls[0][0] == ("pi_1",)
    assert calls[0][1]["expand"] == ["latest_charge"]
    assert upstream.succeeded
    assert upstream.amount_cents == 2599
    assert upstream.payment_intent == "pi_1"
    assert upstream.receipt_url == "https://pay.stripe.com/receipts/1"
    assert upstream.created_at == datetime.fromtimestamp(1760000000, tz=timezone.utc)


@pytest.mark.asyncio
async def test_retrieve_charge_resolves_payment_intent(gateway, monkeypatch):
    charge = SimpleNamespace(
        id="ch_1",
        status="succeeded",
        amount=1000,
        currency="usd",
        created=1760000000,
        description="Spa",
        payment_intent="pi_9",
        receipt_url=None,
    )
    monkeypatch.setattr(stripe.Charge, "retrieve", recorder([], charge))

    upstream = await gateway.retrieve_transaction("ch_1", TransactionKind.CHARGE)

    assert upstream.kind is TransactionKind.CHARGE
    assert upstream.payment_intent == "pi_9"


@pytest.mark.asyncio
async def test_retrieve_unknown_reference(gateway, monkeypatch):
    monkeypatch.setattr(
        stripe.PaymentIntent, "retrieve", recorder([], stripe.InvalidRequestError("No such payment_intent", "id"))
    )

    with pytest.raises(GatewayReferenceError):
        await gateway.retrieve_transaction("pi_missing", TransactionKind.PAYMENT_INTENT)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("reference", "field"),
    [("pi_1", "payment_intent"), ("ch_1", "charge")],
)
async def test_refund_targets_reference_kind(gateway, monkeypatch, reference, field):
    calls = []
    monkeypatch.setattr(stripe.Refund, "create", recorder(calls, SimpleNamespace(id="re_1", status="succeeded")))

    refund = await gateway.refund(reference, reason="requested_by_customer", idempotency_key="refund-c-1")

    assert refund.reference == "re_1"
    kwargs = calls[0][1]
    assert kwargs[field] == reference
    assert kwargs["reason"] == "requested_by_customer"
    assert kwargs["idempotency_key"] == "refund-c-1"


def test_construct_event_returns_plain_data(gateway, monkeypatch):
    payload = json.dumps(
        {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1", "metadata": {}}}}
    ).encode()
    monkeypatch.setattr(
        stripe.Webhook,
        "construct_event",
        lambda body, signature, secret: {"id": "evt_1", "type": "payment_intent.succeeded"},
    )

    event = gateway.construct_event(payload, "t=1,v1=abc")

    assert event.type == "payment_intent.succeeded"
    assert event.data == {"id": "pi_1", "metadata": {}}


def test_construct_event_rejects_bad_signature(gateway, monkeypatch):
    def reject(body, signature, secret):
        raise stripe.SignatureVerificationError("No signatures found", signature)

    monkeypatch.setattr(stripe.Webhook, "construct_event", reject)

    with pytest.raises(GatewaySignatureError):
        gateway.construct_event(b"{}", "bad")


def test_construct_event_requires_secret():
    with pytest.raises(GatewayError):
        StripeGateway("sk_test_123").construct_event(b"{}", "sig")
