"""Guest-facing read path behind payment links."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from guestpay.infrastructure.database.repositories import SqlChargeRepository, SqlCustomerRepository
from guestpay.modules.customers import CustomerRepository

from .exceptions import (
    ChargeAlreadyCompletedError,
    ChargeExpiredError,
    ChargeNotFoundError,
    ChargeNotPayableError,
    CustomerNotFoundError,
)
from .models import Charge, ChargeStatus, GuestChargeView, utcnow
from .repository import ChargeRepository


@dataclass(slots=True)
class ChargeStatusGateway:
    charges: ChargeRepository
    customers: CustomerRepository
    clock: Callable[[], datetime] = utcnow

    @classmethod
    def with_session(cls, session: AsyncSession) -> "ChargeStatusGateway":
        return cls(SqlChargeRepository(session), SqlCustomerRepository(session))

    async def get_charge_view(self, charge_id: str) -> GuestChargeView:
        charge = await self._load(charge_id)
        return GuestChargeView(
            id=charge.id,
            amount_cents=charge.amount_cents,
            currency=charge.currency,
            description=charge.description,
            status=charge.status,
            expired_at=charge.expired_at,
            gatekeeper_url=charge.gatekeeper_url,
            is_expired=charge.is_expired(self.clock()),
        )

    async def resolve_redirect(self, charge_id: str) -> str:
        """Return the payment URL a guest may be sent to, or raise why not."""
        charge = await self._load(charge_id)
        # expiry wins over every status, including a late settlement
        if charge.is_expired(self.clock()):
            raise ChargeExpiredError("Charge is expired")
        if charge.status in {ChargeStatus.SUCCEEDED, ChargeStatus.REFUNDED}:
            raise ChargeAlreadyCompletedError("Charge completed successfully")
        if charge.status is ChargeStatus.FAILED or not charge.payment_url:
            raise ChargeNotPayableError("Charge is no longer payable")
        return charge.payment_url

    async def list_customer_charges(self, customer_id: str, limit: int = 50, offset: int = 0) -> Sequence[Charge]:
        customer = await self.customers.get(customer_id)
        if customer is None:
            raise CustomerNotFoundError("Customer not found")
        return await self.charges.list_for_customer(customer_id, limit, offset)

    async def _load(self, charge_id: str) -> Charge:
        charge = await self.charges.get(charge_id)
        if charge is None:
            raise ChargeNotFoundError("Charge not found")
        return charge
