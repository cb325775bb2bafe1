"""Import of payments that settled outside the charge flows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from guestpay.core.config import ChargeSettings, Settings, get_settings
from guestpay.core.principal import Operator
from guestpay.infrastructure.database.repositories import SqlChargeRepository, SqlCustomerRepository
from guestpay.infrastructure.gateway import (
    GatewayError,
    GatewayReferenceError,
    PaymentGateway,
    TransactionKind,
)
from guestpay.modules.customers import CustomerRepository

from .exceptions import (
    ChargeConflictError,
    ChargeProcessingError,
    ChargeValidationError,
    CustomerNotFoundError,
    DuplicateChargeError,
)
from .models import ChargeCreateInput, ChargeStatus, PaymentMethod, ReconciledCharge, utcnow
from .orchestrator import require_fields
from .repository import ChargeRepository

logger = logging.getLogger(__name__)

ALREADY_RECORDED = "This transaction is already recorded in our system."

_PREFIXES = {
    "pi_": TransactionKind.PAYMENT_INTENT,
    "ch_": TransactionKind.CHARGE,
}


def classify_transaction(reference: str) -> TransactionKind:
    """Map an upstream id to the record shape it names, by prefix."""
    for prefix, kind in _PREFIXES.items():
        if reference.startswith(prefix):
            return kind
    raise ChargeValidationError(
        "Invalid transaction ID format. Must start with 'pi_' (Payment Intent) or 'ch_' (Charge)."
    )


@dataclass(slots=True)
class ReconciliationImporter:
    charges: ChargeRepository
    customers: CustomerRepository
    gateway: PaymentGateway
    settings: ChargeSettings
    clock: Callable[[], datetime] = utcnow

    @classmethod
    def with_session(
        cls,
        session: AsyncSession,
        *,
        gateway: PaymentGateway,
        settings: Settings | None = None,
    ) -> "ReconciliationImporter":
        settings = settings or get_settings()
        return cls(
            charges=SqlChargeRepository(session),
            customers=SqlCustomerRepository(session),
            gateway=gateway,
            settings=settings.charges,
        )

    async def create_manual_transaction_charge(
        self,
        operator: Operator,
        *,
        customer_id: str,
        external_transaction_id: str,
        description: Optional[str] = None,
    ) -> ReconciledCharge:
        require_fields(customer_id=customer_id, external_transaction_id=external_transaction_id)
        external_transaction_id = external_transaction_id.strip()

        customer = await self.customers.get(customer_id)
        if customer is None:
            raise CustomerNotFoundError("Customer not found.")

        kind = classify_transaction(external_transaction_id)
        try:
            upstream = await self.gateway.retrieve_transaction(external_transaction_id, kind)
        except GatewayReferenceError as exc:
            raise ChargeValidationError(
                f"Invalid {kind.label} ID. Please check the ID and try again."
            ) from exc
        except GatewayError as exc:
            raise ChargeProcessingError("Failed to retrieve the transaction from the gateway") from exc

        if not upstream.succeeded:
            raise ChargeValidationError(f"Payment is not successful. Current status: {upstream.status}")

        canonical = upstream.payment_intent or external_transaction_id
        existing = await self.charges.find_first(canonical, external_transaction_id)
        if existing is not None:
            logger.warning(
                "Rejected duplicate reconciliation of %s (already charge %s)",
                external_transaction_id,
                existing.id,
            )
            raise ChargeConflictError(ALREADY_RECORDED)

        now = self.clock()
        try:
            charge = await self.charges.create(
                ChargeCreateInput(
                    customer_id=customer.id,
                    amount_cents=upstream.amount_cents,
                    currency=upstream.currency.lower(),
                    description=description
                    or upstream.description
                    or f"Manual transaction: {external_transaction_id}",
                    payment_method=PaymentMethod.MANUAL_TRANSACTION,
                    status=ChargeStatus.SUCCEEDED,
                    created_by=operator.id,
                    created_at=now,
                    expired_at=now + timedelta(hours=self.settings.manual_expiry_hours),
                    paid_at=upstream.created_at,
                    external_reference=canonical,
                    admin_notes=(
                        f"Manually recorded transaction ID: {external_transaction_id} ({kind.label}). "
                        "Stripe metadata stored for refund processing."
                    ),
                )
            )
        except DuplicateChargeError as exc:
            # lost a race with a concurrent import of the same payment
            raise ChargeConflictError(ALREADY_RECORDED) from exc
        await self.charges.commit()

        logger.info(
            "Reconciled %s %s as charge %s (%s %s)",
            kind.label,
            external_transaction_id,
            charge.id,
            charge.amount,
            charge.currency,
        )
        return ReconciledCharge(
            charge=charge,
            original_transaction_id=external_transaction_id,
            payment_intent_id=canonical,
            transaction_type=kind.label,
            receipt_url=upstream.receipt_url,
        )
