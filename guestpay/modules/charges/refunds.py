"""Refunds of settled charges."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from guestpay.core.config import ChargeSettings, Settings, get_settings
from guestpay.core.principal import Operator
from guestpay.infrastructure.database.repositories import SqlChargeRepository
from guestpay.infrastructure.gateway import GatewayError, PaymentGateway

from .exceptions import ChargeNotFoundError, ChargeProcessingError, ChargeValidationError
from .models import ChargePatch, ChargeStatus, RefundResult, utcnow
from .repository import ChargeRepository

logger = logging.getLogger(__name__)

# gateway refund states in which money is (or will be) returned
ACCEPTED_REFUND_STATUSES = {"succeeded", "pending"}


@dataclass(slots=True)
class RefundHandler:
    charges: ChargeRepository
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
    ) -> "RefundHandler":
        settings = settings or get_settings()
        return cls(SqlChargeRepository(session), gateway, settings.charges)

    async def refund_charge(self, operator: Operator, charge_id: str) -> RefundResult:
        # always re-read; callers never pass a status in
        charge = await self.charges.get(charge_id)
        if charge is None:
            raise ChargeNotFoundError("Charge not found.")
        if not charge.external_reference:
            raise ChargeValidationError(
                "Charge cannot be refunded as it has no successful payment associated."
            )
        if charge.status is not ChargeStatus.SUCCEEDED:
            raise ChargeValidationError("Only successful charges can be refunded.")

        try:
            refund = await self.gateway.refund(
                charge.external_reference,
                reason=self.settings.refund_reason,
                idempotency_key=f"refund-{charge.id}",
            )
        except GatewayError as exc:
            logger.error("Refund of charge %s failed at the gateway: %s", charge.id, exc)
            raise ChargeProcessingError("Failed to refund the charge") from exc

        if refund.status not in ACCEPTED_REFUND_STATUSES:
            logger.error(
                "Refund %s of charge %s not accepted by the gateway (status=%s)",
                refund.reference,
                charge.id,
                refund.status,
            )
            raise ChargeProcessingError(f"Refund was not accepted by the gateway (status: {refund.status})")

        updated = await self.charges.apply(
            charge.id,
            ChargePatch(
                status=ChargeStatus.REFUNDED,
                refund_reference=refund.reference,
                refunded_at=self.clock(),
            ),
            expected_statuses=[ChargeStatus.SUCCEEDED],
        )
        await self.charges.commit()
        if updated is None:
            updated = await self.charges.get(charge.id)
            logger.warning(
                "Charge %s changed state during refund %s; now %s",
                charge.id,
                refund.reference,
                updated.status.value if updated else "missing",
            )
        else:
            logger.info("Charge %s refunded by %s (refund=%s)", charge.id, operator.id, refund.reference)
        status = updated.status if updated is not None else charge.status
        return RefundResult(charge_id=charge.id, refund_id=refund.reference, status=status)
