"""Stripe implementation of the payment gateway contract."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

import stripe

from .base import (
    GatewayDeclineError,
    GatewayError,
    GatewayEvent,
    GatewayLink,
    GatewayPayment,
    GatewayReferenceError,
    GatewayRefund,
    GatewaySignatureError,
    TransactionKind,
    UpstreamTransaction,
)

logger = logging.getLogger(__name__)


def _from_timestamp(value: Optional[int]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _object_id(value: Any) -> Optional[str]:
    """Expandable fields come back either as an id or as the expanded object."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return getattr(value, "id", None)


class StripeGateway:
    """Talks to Stripe with a per-instance key; blocking SDK calls run in a worker thread."""

    def __init__(
        self,
        api_key: str,
        *,
        webhook_secret: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._api_version = api_version

    def _request_options(self, idempotency_key: Optional[str] = None) -> dict[str, Any]:
        options: dict[str, Any] = {"api_key": self._api_key}
        if self._api_version:
            options["stripe_version"] = self._api_version
        if idempotency_key:
            options["idempotency_key"] = idempotency_key
        return options

    async def _call(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(functools.partial(fn, *args, **kwargs))
        except stripe.CardError as exc:
            message = str(exc.user_message) if getattr(exc, "user_message", None) else str(exc)
            logger.info("Stripe declined %s: %s (code=%s)", operation, message, exc.code)
            raise GatewayDeclineError(message, code=exc.code) from exc
        except stripe.StripeError as exc:
            logger.error("Stripe %s failed: %s", operation, exc)
            raise GatewayError(f"Stripe {operation} failed: {exc}") from exc

    async def charge_instrument(
        self,
        *,
        billing_profile_id: str,
        instrument_ref: str,
        amount_cents: int,
        currency: str,
        description: str,
        metadata: Mapping[str, str],
        idempotency_key: Optional[str] = None,
    ) -> GatewayPayment:
        intent = await self._call(
            "payment_intent.create",
            stripe.PaymentIntent.create,
            amount=amount_cents,
            currency=currency,
            customer=billing_profile_id,
            payment_method=instrument_ref,
            off_session=True,
            confirm=True,
            description=description,
            metadata=dict(metadata),
            **self._request_options(idempotency_key),
        )
        return GatewayPayment(reference=intent.id, status=intent.status)

    async def attach_instrument(self, *, instrument_ref: str, billing_profile_id: str) -> None:
        await self._call(
            "payment_method.attach",
            stripe.PaymentMethod.attach,
            instrument_ref,
            customer=billing_profile_id,
            **self._request_options(),
        )

    async def create_payment_link(
        self,
        *,
        amount_cents: int,
        currency: str,
        description: str,
        metadata: Mapping[str, str],
    ) -> GatewayLink:
        price = await self._call(
            "price.create",
            stripe.Price.create,
            unit_amount=amount_cents,
            currency=currency,
            product_data={"name": description},
            **self._request_options(),
        )
        link = await self._call(
            "payment_link.create",
            stripe.PaymentLink.create,
            line_items=[{"price": price.id, "quantity": 1}],
            metadata=dict(metadata),
            payment_intent_data={"metadata": dict(metadata)},
            **self._request_options(),
        )
        return GatewayLink(reference=link.id, url=link.url)

    async def retrieve_transaction(self, reference: str, kind: TransactionKind) -> UpstreamTransaction:
        try:
            if kind is TransactionKind.PAYMENT_INTENT:
                obj = await asyncio.to_thread(
                    functools.partial(
                        stripe.PaymentIntent.retrieve,
                        reference,
                        expand=["latest_charge"],
                        **self._request_options(),
                    )
                )
            else:
                obj = await asyncio.to_thread(
                    functools.partial(stripe.Charge.retrieve, reference, **self._request_options())
                )
        except stripe.InvalidRequestError as exc:
            raise GatewayReferenceError(f"Invalid {kind.label} ID: {reference}") from exc
        except stripe.StripeError as exc:
            logger.error("Stripe %s.retrieve failed for %s: %s", kind.value, reference, exc)
            raise GatewayError(f"Stripe {kind.value} retrieve failed: {exc}") from exc

        if kind is TransactionKind.PAYMENT_INTENT:
            latest_charge = getattr(obj, "latest_charge", None)
            receipt_url = getattr(latest_charge, "receipt_url", None) if not isinstance(latest_charge, str) else None
            payment_intent = obj.id
        else:
            receipt_url = getattr(obj, "receipt_url", None)
            payment_intent = _object_id(getattr(obj, "payment_intent", None))

        return UpstreamTransaction(
            reference=obj.id,
            kind=kind,
            status=obj.status,
            amount_cents=int(obj.amount),
            currency=obj.currency,
            created_at=_from_timestamp(getattr(obj, "created", None)),
            description=getattr(obj, "description", None),
            payment_intent=payment_intent,
            receipt_url=receipt_url,
        )

    async def refund(self, reference: str, *, reason: str, idempotency_key: Optional[str] = None) -> GatewayRefund:
        target = {"charge": reference} if reference.startswith("ch_") else {"payment_intent": reference}
        refund = await self._call(
            "refund.create",
            stripe.Refund.create,
            **target,
            reason=reason,
            **self._request_options(idempotency_key),
        )
        return GatewayRefund(reference=refund.id, status=refund.status)

    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        if not self._webhook_secret:
            raise GatewayError("Webhook secret not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Invalid webhook signature")
            raise GatewaySignatureError("Invalid signature") from exc
        except ValueError as exc:
            raise GatewaySignatureError("Invalid payload") from exc
        # re-read the verified payload so handlers work on plain dicts
        body = json.loads(payload)
        return GatewayEvent(id=event["id"], type=event["type"], data=body["data"]["object"])
