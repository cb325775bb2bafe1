"""Pydantic schemas used across the project."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CardChargeRequest(BaseModel):
    customer_id: str = Field(..., min_length=1)
    payment_method_id: str = Field(..., min_length=1, description="Gateway id of the card to charge")
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Amount in major currency units")
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    description: Optional[str] = Field(default=None, max_length=500)
    idempotency_key: Optional[str] = Field(default=None, max_length=255)


class ChargeCreatedResponse(BaseModel):
    charge_id: str
    status: str


class LinkSessionRequest(BaseModel):
    customer_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    description: Optional[str] = Field(default=None, max_length=500)
    is_hosted_invoice: bool = False
    expires_at: Optional[datetime] = None
    idempotency_key: Optional[str] = Field(default=None, max_length=255)


class LinkSessionResponse(BaseModel):
    charge_id: str
    gatekeeper_url: str
    payment_url: str
    expires_at: datetime


class ManualTransactionRequest(BaseModel):
    customer_id: str = Field(..., min_length=1)
    transaction_id: str = Field(..., min_length=1, description="Upstream pi_... or ch_... id")
    description: Optional[str] = Field(default=None, max_length=500)


class TransactionSourceResponse(BaseModel):
    original_transaction_id: str
    payment_intent_id: str
    transaction_type: str
    receipt_url: Optional[str] = None


class ManualTransactionResponse(BaseModel):
    charge_id: str
    amount: Decimal
    amount_cents: int
    currency: str
    status: str
    source: TransactionSourceResponse


class RefundResponse(BaseModel):
    charge_id: str
    refund_id: str
    status: str


class GuestChargeResponse(BaseModel):
    id: str
    amount: Decimal
    amount_cents: int
    currency: str
    description: Optional[str] = None
    status: str
    expired_at: datetime
    gatekeeper_url: Optional[str] = None
    is_expired: bool

    model_config = ConfigDict(from_attributes=True)


class ChargeResponse(BaseModel):
    id: str
    customer_id: str
    amount: Decimal
    amount_cents: int
    currency: str
    description: Optional[str] = None
    status: str
    payment_method: str
    external_reference: Optional[str] = None
    payment_url: Optional[str] = None
    gatekeeper_url: Optional[str] = None
    refund_reference: Optional[str] = None
    created_by: str
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    expired_at: datetime
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChargeListResponse(BaseModel):
    total: int
    charges: list[ChargeResponse]


class WebhookAck(BaseModel):
    received: bool = True
    charge_id: Optional[str] = None
