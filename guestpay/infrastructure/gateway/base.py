"""Contract the charge services require from the payment gateway."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Protocol


class GatewayError(Exception):
    """Unexpected failure talking to the gateway."""


class GatewayDeclineError(GatewayError):
    """The gateway definitively declined the instrument."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class GatewayReferenceError(GatewayError):
    """The referenced upstream object does not exist or the id is invalid."""


class GatewaySignatureError(GatewayError):
    """A webhook payload failed signature verification."""


class TransactionKind(str, enum.Enum):
    PAYMENT_INTENT = "payment_intent"
    CHARGE = "charge"

    @property
    def label(self) -> str:
        return "Payment Intent" if self is TransactionKind.PAYMENT_INTENT else "Charge"


@dataclass(slots=True)
class GatewayPayment:
    reference: str
    status: str


@dataclass(slots=True)
class GatewayLink:
    reference: str
    url: str


@dataclass(slots=True)
class GatewayRefund:
    reference: str
    status: str


@dataclass(slots=True)
class UpstreamTransaction:
    reference: str
    kind: TransactionKind
    status: str
    amount_cents: int
    currency: str
    created_at: datetime
    description: Optional[str] = None
    payment_intent: Optional[str] = None
    receipt_url: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass(slots=True)
class GatewayEvent:
    id: str
    type: str
    data: Mapping[str, Any] = field(default_factory=dict)


class PaymentGateway(Protocol):
    """Async adapter over the payment processor. Amounts are minor units."""

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
        ...

    async def attach_instrument(self, *, instrument_ref: str, billing_profile_id: str) -> None:
        ...

    async def create_payment_link(
        self,
        *,
        amount_cents: int,
        currency: str,
        description: str,
        metadata: Mapping[str, str],
    ) -> GatewayLink:
        ...

    async def retrieve_transaction(self, reference: str, kind: TransactionKind) -> UpstreamTransaction:
        ...

    async def refund(self, reference: str, *, reason: str, idempotency_key: Optional[str] = None) -> GatewayRefund:
        ...

    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        ...
