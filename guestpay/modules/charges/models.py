"""Domain models for charges."""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from .money import to_major_units


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; every stored timestamp is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ChargeStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self is not ChargeStatus.PENDING


class PaymentMethod(str, enum.Enum):
    CARD = "CARD"
    QR_CODE = "QR_CODE"
    HOSTED_INVOICE = "HOSTED_INVOICE"
    MANUAL_TRANSACTION = "MANUAL_TRANSACTION"


@dataclass(slots=True)
class Charge:
    id: str
    customer_id: str
    amount_cents: int
    currency: str
    description: Optional[str]
    status: ChargeStatus
    payment_method: PaymentMethod
    created_by: str
    expired_at: datetime
    external_reference: Optional[str] = None
    payment_url: Optional[str] = None
    gatekeeper_url: Optional[str] = None
    refund_reference: Optional[str] = None
    idempotency_key: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None

    @property
    def amount(self) -> Decimal:
        return to_major_units(self.amount_cents)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expired_at

    def is_refundable(self) -> bool:
        return self.status is ChargeStatus.SUCCEEDED and bool(self.external_reference)


@dataclass(slots=True)
class ChargeCreateInput:
    customer_id: str
    amount_cents: int
    currency: str
    description: Optional[str]
    payment_method: PaymentMethod
    created_by: str
    expired_at: datetime
    status: ChargeStatus = ChargeStatus.PENDING
    external_reference: Optional[str] = None
    idempotency_key: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


# Sentinel used to differentiate between "not provided" and explicit None.
UNSET: Any = object()


@dataclass(slots=True)
class ChargePatch:
    """Partial update of a charge; only fields that are set are written."""

    status: ChargeStatus | object = UNSET
    external_reference: Optional[str] | object = UNSET
    payment_url: Optional[str] | object = UNSET
    gatekeeper_url: Optional[str] | object = UNSET
    refund_reference: Optional[str] | object = UNSET
    paid_at: Optional[datetime] | object = UNSET
    refunded_at: Optional[datetime] | object = UNSET

    def values(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is UNSET:
                continue
            if isinstance(value, enum.Enum):
                value = value.value
            values[item.name] = value
        return values

    def is_empty(self) -> bool:
        return not self.values()


@dataclass(slots=True)
class ChargeResult:
    charge_id: str
    status: str


@dataclass(slots=True)
class LinkSession:
    charge_id: str
    gatekeeper_url: str
    payment_url: str
    expires_at: datetime


@dataclass(slots=True)
class RefundResult:
    charge_id: str
    refund_id: str
    status: ChargeStatus


@dataclass(slots=True)
class ReconciledCharge:
    charge: Charge
    original_transaction_id: str
    payment_intent_id: str
    transaction_type: str
    receipt_url: Optional[str] = None


@dataclass(slots=True)
class GuestChargeView:
    """Guest-safe projection exposed behind payment links."""

    id: str
    amount_cents: int
    currency: str
    description: Optional[str]
    status: ChargeStatus
    expired_at: datetime
    gatekeeper_url: Optional[str]
    is_expired: bool = False

    @property
    def amount(self) -> Decimal:
        return to_major_units(self.amount_cents)
