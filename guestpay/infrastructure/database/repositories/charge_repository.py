"""SQLAlchemy implementation for the charge store"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from guestpay.db.models import Charge as ChargeModel
from guestpay.modules.charges.exceptions import DuplicateChargeError
from guestpay.modules.charges.models import (
    Charge,
    ChargeCreateInput,
    ChargePatch,
    ChargeStatus,
    PaymentMethod,
    ensure_aware,
)
from guestpay.modules.charges.repository import ChargeRepository

logger = logging.getLogger(__name__)


class SqlChargeRepository(ChargeRepository):
    """Charge repository backed by SQLAlchemy models."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, payload: ChargeCreateInput) -> Charge:
        model = ChargeModel(
            customer_id=payload.customer_id,
            amount_cents=payload.amount_cents,
            currency=payload.currency,
            description=payload.description,
            status=payload.status.value,
            payment_method=payload.payment_method.value,
            external_reference=payload.external_reference,
            idempotency_key=payload.idempotency_key,
            created_by=payload.created_by,
            admin_notes=payload.admin_notes,
            expired_at=payload.expired_at,
            paid_at=payload.paid_at,
        )
        if payload.created_at is not None:
            model.created_at = payload.created_at
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            logger.warning(
                "Duplicate charge rejected by store (reference=%s, idempotency_key=%s)",
                payload.external_reference,
                payload.idempotency_key,
            )
            raise DuplicateChargeError("This transaction is already recorded in our system.") from exc
        await self._session.refresh(model)
        return self._to_domain(model)

    async def get(self, charge_id: str) -> Charge | None:
        stmt = (
            select(ChargeModel)
            .where(ChargeModel.id == charge_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def find_first(self, *references: str) -> Charge | None:
        candidates = [reference for reference in references if reference]
        if not candidates:
            return None
        stmt = (
            select(ChargeModel)
            .where(ChargeModel.external_reference.in_(candidates))
            .order_by(ChargeModel.created_at)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def find_by_idempotency_key(self, key: str) -> Charge | None:
        stmt = select(ChargeModel).where(ChargeModel.idempotency_key == key)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list_for_customer(self, customer_id: str, limit: int, offset: int) -> Sequence[Charge]:
        stmt = (
            select(ChargeModel)
            .where(ChargeModel.customer_id == customer_id)
            .order_by(desc(ChargeModel.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def apply(
        self,
        charge_id: str,
        patch: ChargePatch,
        *,
        expected_statuses: Iterable[ChargeStatus] | None = None,
    ) -> Charge | None:
        values = patch.values()
        if not values:
            return await self.get(charge_id)

        stmt = update(ChargeModel).where(ChargeModel.id == charge_id)
        if expected_statuses is not None:
            stmt = stmt.where(ChargeModel.status.in_([status.value for status in expected_statuses]))
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        try:
            result = await self._session.execute(stmt)
        except IntegrityError as exc:
            await self._session.rollback()
            raise DuplicateChargeError("External reference already belongs to another charge.") from exc
        if result.rowcount == 0:
            return None
        return await self.get(charge_id)

    async def commit(self) -> None:
        await self._session.commit()

    @staticmethod
    def _to_domain(model: ChargeModel) -> Charge:
        return Charge(
            id=str(model.id),
            customer_id=model.customer_id,
            amount_cents=model.amount_cents,
            currency=model.currency,
            description=model.description,
            status=ChargeStatus(model.status),
            payment_method=PaymentMethod(model.payment_method),
            created_by=model.created_by,
            expired_at=ensure_aware(model.expired_at),
            external_reference=model.external_reference,
            payment_url=model.payment_url,
            gatekeeper_url=model.gatekeeper_url,
            refund_reference=model.refund_reference,
            idempotency_key=model.idempotency_key,
            admin_notes=model.admin_notes,
            created_at=ensure_aware(model.created_at),
            paid_at=ensure_aware(model.paid_at),
            refunded_at=ensure_aware(model.refunded_at),
        )
