"""SQLAlchemy ORM models."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from guestpay.infrastructure.database.base import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    billing_profile_id = Column(String(100), unique=True)
    first_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(255), index=True)
    phone = Column(String(50))
    nationality = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    charges = relationship("Charge", back_populates="customer")


class Charge(Base):
    __tablename__ = "charges"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(10), nullable=False, default="eur")
    description = Column(Text)
    status = Column(String(20), nullable=False, default="PENDING", index=True)  # PENDING, SUCCEEDED, FAILED, REFUNDED
    payment_method = Column(String(30), nullable=False)  # CARD, QR_CODE, HOSTED_INVOICE, MANUAL_TRANSACTION
    # unique at the store level; reconciliation relies on it for double-entry protection
    external_reference = Column(String(255), unique=True)
    payment_url = Column(Text)
    gatekeeper_url = Column(Text)
    refund_reference = Column(String(255))
    idempotency_key = Column(String(255), unique=True)
    created_by = Column(String(36), nullable=False)
    admin_notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    expired_at = Column(DateTime(timezone=True), nullable=False)
    paid_at = Column(DateTime(timezone=True))
    refunded_at = Column(DateTime(timezone=True))

    customer = relationship("Customer", back_populates="charges")
