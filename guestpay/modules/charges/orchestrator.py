"""Charge creation flows: saved card, new card and payment links.

Every flow persists (and commits) a PENDING charge before talking to the
gateway, so a lost round-trip still leaves an auditable record.

Failure policy, shared by all creation paths:

* a definitive decline from the gateway moves the charge to FAILED;
* an indeterminate card failure (network, 5xx) leaves it PENDING, because
  money may have moved and the confirmation webhook will settle it;
* a failure while minting a payment link moves the charge to FAILED, since no
  guest can have paid a link that was never handed out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from guestpay.core.config import ChargeSettings, Settings, get_settings
from guestpay.core.principal import Operator
from guestpay.infrastructure.database.repositories import SqlChargeRepository, SqlCustomerRepository
from guestpay.infrastructure.gateway import GatewayDeclineError, GatewayError, PaymentGateway
from guestpay.infrastructure.notifications import NotificationDispatcher
from guestpay.modules.customers import Customer, CustomerRepository

from .exceptions import (
    ChargeConflictError,
    ChargeDeclinedError,
    ChargeError,
    ChargeProcessingError,
    ChargeValidationError,
    CustomerNotFoundError,
    DuplicateChargeError,
)
from .models import (
    Charge,
    ChargeCreateInput,
    ChargePatch,
    ChargeResult,
    ChargeStatus,
    LinkSession,
    PaymentMethod,
    ensure_aware,
    utcnow,
)
from .money import normalize_currency, to_major_units
from .repository import ChargeRepository

logger = logging.getLogger(__name__)

CHARGE_CONFIRMATION_TEMPLATE = "charge_confirmation"


def require_fields(**values: Any) -> None:
    missing = [name for name, value in values.items() if value in (None, "")]
    if missing:
        raise ChargeValidationError(f"Missing required fields: {', '.join(missing)}")


def require_positive_amount(amount_cents: int) -> None:
    if amount_cents is None or amount_cents <= 0:
        raise ChargeValidationError("Amount must be greater than zero")


@dataclass(slots=True)
class ChargeOrchestrator:
    charges: ChargeRepository
    customers: CustomerRepository
    gateway: PaymentGateway
    notifier: NotificationDispatcher
    settings: ChargeSettings
    gatekeeper_base_url: str
    clock: Callable[[], datetime] = utcnow

    @classmethod
    def with_session(
        cls,
        session: AsyncSession,
        *,
        gateway: PaymentGateway,
        notifier: NotificationDispatcher,
        settings: Settings | None = None,
    ) -> "ChargeOrchestrator":
        settings = settings or get_settings()
        return cls(
            charges=SqlChargeRepository(session),
            customers=SqlCustomerRepository(session),
            gateway=gateway,
            notifier=notifier,
            settings=settings.charges,
            gatekeeper_base_url=settings.gatekeeper_base_url,
        )

    async def create_card_charge(
        self,
        operator: Operator,
        *,
        customer_id: str,
        instrument_ref: str,
        amount_cents: int,
        currency: Optional[str] = None,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ChargeResult:
        """Charge an instrument already saved on the customer's billing profile."""
        require_fields(customer_id=customer_id, instrument_ref=instrument_ref)
        require_positive_amount(amount_cents)

        replay = await self._replay(idempotency_key, customer_id, PaymentMethod.CARD)
        if replay is not None:
            return ChargeResult(charge_id=replay.id, status=replay.status.value.lower())

        customer = await self._billing_customer(customer_id)
        charge, created = await self._open_card_charge(
            operator, customer, amount_cents, currency, description, idempotency_key
        )
        if not created:
            return ChargeResult(charge_id=charge.id, status=charge.status.value.lower())
        return await self._charge_instrument(charge, customer, instrument_ref)

    async def attach_and_charge(
        self,
        operator: Operator,
        *,
        customer_id: str,
        instrument_ref: str,
        amount_cents: int,
        currency: Optional[str] = None,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ChargeResult:
        """Save a new instrument on the billing profile, then charge it."""
        require_fields(customer_id=customer_id, instrument_ref=instrument_ref)
        require_positive_amount(amount_cents)

        replay = await self._replay(idempotency_key, customer_id, PaymentMethod.CARD)
        if replay is not None:
            return ChargeResult(charge_id=replay.id, status=replay.status.value.lower())

        customer = await self._billing_customer(customer_id)
        try:
            await self.gateway.attach_instrument(
                instrument_ref=instrument_ref,
                billing_profile_id=customer.billing_profile_id,
            )
        except GatewayDeclineError as exc:
            raise ChargeDeclinedError(exc.message, exc.code) from exc
        except GatewayError as exc:
            raise ChargeProcessingError("Failed to attach the payment method") from exc

        charge, created = await self._open_card_charge(
            operator,
            customer,
            amount_cents,
            currency,
            description or "Ad-hoc charge (new card)",
            idempotency_key,
        )
        if not created:
            return ChargeResult(charge_id=charge.id, status=charge.status.value.lower())
        return await self._charge_instrument(charge, customer, instrument_ref)

    async def create_payment_link_session(
        self,
        operator: Operator,
        *,
        customer_id: str,
        amount_cents: int,
        currency: Optional[str] = None,
        description: Optional[str] = None,
        is_hosted_invoice: bool = False,
        expires_at: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
    ) -> LinkSession:
        """Mint a shareable payment link (QR code or hosted invoice) for a new charge."""
        require_fields(customer_id=customer_id)
        require_positive_amount(amount_cents)

        method = PaymentMethod.HOSTED_INVOICE if is_hosted_invoice else PaymentMethod.QR_CODE
        replay = await self._replay(idempotency_key, customer_id, method)
        if replay is not None:
            return self._to_link_session(replay)

        customer = await self.customers.get(customer_id)
        if customer is None:
            raise CustomerNotFoundError("Customer not found in our system.")

        now = self.clock()
        if is_hosted_invoice and expires_at is not None:
            expired_at = ensure_aware(expires_at)
            if expired_at <= now:
                raise ChargeValidationError("Expiry must be in the future")
        else:
            expired_at = now + timedelta(minutes=self.settings.link_expiry_minutes)

        description = description or ("Hosted Invoice Payment" if is_hosted_invoice else "QR Code Payment")
        currency = normalize_currency(currency, self.settings.default_currency)

        charge, created = await self._open_charge(
            ChargeCreateInput(
                customer_id=customer.id,
                amount_cents=amount_cents,
                currency=currency,
                description=description,
                payment_method=method,
                created_by=operator.id,
                expired_at=expired_at,
                idempotency_key=idempotency_key,
                created_at=now,
            )
        )
        if not created:
            return self._to_link_session(charge)

        try:
            link = await self.gateway.create_payment_link(
                amount_cents=amount_cents,
                currency=currency,
                description=description,
                metadata={"chargeId": charge.id},
            )
            updated = await self.charges.apply(
                charge.id,
                ChargePatch(
                    external_reference=link.reference,
                    payment_url=link.url,
                    gatekeeper_url=f"{self.gatekeeper_base_url}/charge/{charge.id}",
                ),
                expected_statuses=[ChargeStatus.PENDING],
            )
            if updated is None:
                raise ChargeProcessingError("Charge changed state while the payment link was created")
            await self.charges.commit()
        except Exception as exc:
            logger.error("Payment link creation failed for charge %s: %s", charge.id, exc)
            await self._mark_failed(charge.id)
            if isinstance(exc, ChargeError):
                raise
            raise ChargeProcessingError("Failed to create the payment link") from exc

        logger.info("Charge %s: %s link issued, expires %s", updated.id, method.value, expired_at.isoformat())
        if is_hosted_invoice and customer.email:
            await self._notify(
                CHARGE_CONFIRMATION_TEMPLATE,
                customer.email,
                {
                    "charge_id": updated.id,
                    "guest_first_name": customer.first_name,
                    "guest_last_name": customer.last_name,
                    "guest_phone": customer.phone,
                    "guest_nationality": customer.nationality,
                    "amount": str(updated.amount),
                    "amount_cents": updated.amount_cents,
                    "currency": updated.currency,
                    "description": updated.description,
                    "payment_url": updated.gatekeeper_url,
                    "expires_at": updated.expired_at.isoformat(),
                    "created_at": updated.created_at.isoformat() if updated.created_at else None,
                },
            )
        return self._to_link_session(updated)

    async def _replay(
        self, idempotency_key: Optional[str], customer_id: str, method: PaymentMethod
    ) -> Charge | None:
        if not idempotency_key:
            return None
        existing = await self.charges.find_by_idempotency_key(idempotency_key)
        if existing is None:
            return None
        existing = self._accept_replay(existing, customer_id, method)
        logger.info("Replaying charge %s for idempotency key %s", existing.id, idempotency_key)
        return existing

    @staticmethod
    def _accept_replay(existing: Charge, customer_id: str, method: PaymentMethod) -> Charge:
        if existing.customer_id != customer_id:
            raise ChargeValidationError("Idempotency key was already used for a different customer")
        if existing.payment_method is not method:
            raise ChargeConflictError("Idempotency key was already used for a different kind of charge")
        if existing.status is ChargeStatus.FAILED:
            raise ChargeConflictError("The charge for this idempotency key failed; retry with a new key")
        return existing

    async def _billing_customer(self, customer_id: str) -> Customer:
        customer = await self.customers.get(customer_id)
        if customer is None or not customer.billing_profile_id:
            raise CustomerNotFoundError("Billing profile not found for the given customer.")
        return customer

    async def _open_card_charge(
        self,
        operator: Operator,
        customer: Customer,
        amount_cents: int,
        currency: Optional[str],
        description: Optional[str],
        idempotency_key: Optional[str],
    ) -> tuple[Charge, bool]:
        now = self.clock()
        return await self._open_charge(
            ChargeCreateInput(
                customer_id=customer.id,
                amount_cents=amount_cents,
                currency=normalize_currency(currency, self.settings.default_currency),
                description=description or f"Charge for customer {customer.id}",
                payment_method=PaymentMethod.CARD,
                created_by=operator.id,
                expired_at=now + timedelta(minutes=self.settings.card_expiry_minutes),
                idempotency_key=idempotency_key,
                created_at=now,
            )
        )

    async def _open_charge(self, payload: ChargeCreateInput) -> tuple[Charge, bool]:
        """Persist a PENDING charge; returns the winner of a concurrent idempotent create."""
        try:
            charge = await self.charges.create(payload)
        except DuplicateChargeError:
            if payload.idempotency_key:
                existing = await self.charges.find_by_idempotency_key(payload.idempotency_key)
                if existing is not None:
                    replay = self._accept_replay(existing, payload.customer_id, payload.payment_method)
                    return replay, False
            raise
        await self.charges.commit()
        logger.info(
            "Charge %s created: %s %s %s by %s",
            charge.id,
            charge.payment_method.value,
            to_major_units(charge.amount_cents),
            charge.currency,
            charge.created_by,
        )
        return charge, True

    async def _charge_instrument(self, charge: Charge, customer: Customer, instrument_ref: str) -> ChargeResult:
        try:
            payment = await self.gateway.charge_instrument(
                billing_profile_id=customer.billing_profile_id,
                instrument_ref=instrument_ref,
                amount_cents=charge.amount_cents,
                currency=charge.currency,
                description=charge.description or f"Charge for customer {customer.id}",
                metadata={"chargeId": charge.id},
                idempotency_key=f"charge-{charge.id}",
            )
        except GatewayDeclineError as exc:
            await self._mark_failed(charge.id)
            raise ChargeDeclinedError(exc.message, exc.code) from exc
        except GatewayError as exc:
            logger.error("Charge %s outcome unknown, left PENDING: %s", charge.id, exc)
            raise ChargeProcessingError("Failed to process the card charge") from exc

        patch = ChargePatch(external_reference=payment.reference)
        if payment.status == "succeeded":
            patch.status = ChargeStatus.SUCCEEDED
            patch.paid_at = self.clock()
        updated = await self.charges.apply(charge.id, patch, expected_statuses=[ChargeStatus.PENDING])
        if updated is None:
            logger.info("Charge %s already settled by confirmation before the gateway answered", charge.id)
        await self.charges.commit()
        logger.info("Charge %s sent to gateway as %s (status=%s)", charge.id, payment.reference, payment.status)
        return ChargeResult(charge_id=charge.id, status=payment.status)

    async def _mark_failed(self, charge_id: str) -> None:
        try:
            updated = await self.charges.apply(
                charge_id,
                ChargePatch(status=ChargeStatus.FAILED),
                expected_statuses=[ChargeStatus.PENDING],
            )
            await self.charges.commit()
        except Exception:
            logger.exception("Could not mark charge %s as FAILED", charge_id)
            return
        if updated is not None:
            logger.info("Charge %s marked FAILED", charge_id)

    async def _notify(self, template_type: str, recipient: str, data: dict[str, Any]) -> None:
        try:
            await self.notifier.send(template_type, recipient, data)
        except Exception:
            logger.exception("Failed to send %s notification to %s", template_type, recipient)

    @staticmethod
    def _to_link_session(charge: Charge) -> LinkSession:
        return LinkSession(
            charge_id=charge.id,
            gatekeeper_url=charge.gatekeeper_url or "",
            payment_url=charge.payment_url or "",
            expires_at=charge.expired_at,
        )
