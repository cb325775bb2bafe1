"""Asynchronous settlement of pending charges from gateway events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from guestpay.infrastructure.database.repositories import SqlChargeRepository
from guestpay.infrastructure.gateway import GatewayEvent

from .exceptions import DuplicateChargeError
from .models import Charge, ChargePatch, ChargeStatus, PaymentMethod, utcnow
from .repository import ChargeRepository

logger = logging.getLogger(__name__)

SUCCEEDED_EVENTS = {"payment_intent.succeeded"}
FAILED_EVENTS = {"payment_intent.payment_failed", "payment_intent.canceled"}
ATTEMPT_FAILED = "payment_intent.payment_failed"
CHECKOUT_COMPLETED = "checkout.session.completed"

# guests can retry a declined attempt on the same hosted page
RETRYABLE_METHODS = {PaymentMethod.QR_CODE, PaymentMethod.HOSTED_INVOICE}


@dataclass(slots=True)
class ConfirmationHandler:
    charges: ChargeRepository
    clock: Callable[[], datetime] = utcnow

    @classmethod
    def with_session(cls, session: AsyncSession) -> "ConfirmationHandler":
        return cls(SqlChargeRepository(session))

    async def handle_event(self, event: GatewayEvent) -> Charge | None:
        """Apply a verified gateway event; returns the charge it moved, if any."""
        obj = event.data
        if event.type in SUCCEEDED_EVENTS:
            return await self._transition(obj, ChargeStatus.SUCCEEDED, reference=obj.get("id"))
        if event.type in FAILED_EVENTS:
            return await self._transition(
                obj,
                ChargeStatus.FAILED,
                reference=obj.get("id"),
                retryable=event.type == ATTEMPT_FAILED,
            )
        if event.type == CHECKOUT_COMPLETED:
            if obj.get("payment_status") != "paid":
                logger.info("Checkout session %s completed unpaid; waiting", obj.get("id"))
                return None
            return await self._transition(obj, ChargeStatus.SUCCEEDED, reference=obj.get("payment_intent"))
        logger.info("Unhandled event type: %s", event.type)
        return None

    async def _transition(
        self,
        obj: Mapping[str, Any],
        target: ChargeStatus,
        *,
        reference: Optional[str],
        retryable: bool = False,
    ) -> Charge | None:
        charge = await self._locate(obj)
        if charge is None:
            logger.info("No charge matches gateway object %s", obj.get("id"))
            return None
        if retryable and charge.payment_method in RETRYABLE_METHODS:
            logger.info("Charge %s: payment attempt %s declined; link stays open", charge.id, obj.get("id"))
            return None
        if charge.status is not ChargeStatus.PENDING:
            logger.info("Charge %s already %s; ignoring %s", charge.id, charge.status.value, target.value)
            return None

        patch = ChargePatch(status=target)
        if target is ChargeStatus.SUCCEEDED:
            patch.paid_at = self.clock()
            if reference:
                # the settled payment intent is what refunds are issued against
                patch.external_reference = reference
        try:
            updated = await self.charges.apply(charge.id, patch, expected_statuses=[ChargeStatus.PENDING])
        except DuplicateChargeError:
            logger.error(
                "Payment %s for charge %s is already recorded on another charge; left PENDING",
                reference,
                charge.id,
            )
            return None
        await self.charges.commit()
        if updated is not None:
            logger.info("Charge %s confirmed %s", charge.id, target.value)
        return updated

    async def _locate(self, obj: Mapping[str, Any]) -> Charge | None:
        metadata = obj.get("metadata") or {}
        charge_id = metadata.get("chargeId")
        if charge_id:
            charge = await self.charges.get(charge_id)
            if charge is not None:
                return charge
        return await self.charges.find_first(
            *(value for value in (obj.get("id"), obj.get("payment_intent"), obj.get("payment_link")) if value)
        )
