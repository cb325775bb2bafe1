"""SQLAlchemy implementation of the customer repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from guestpay.db.models import Customer as CustomerModel
from guestpay.modules.charges.models import ensure_aware
from guestpay.modules.customers.models import Customer, CustomerCreateInput
from guestpay.modules.customers.repository import CustomerRepository


class SqlCustomerRepository(CustomerRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, customer_id: str) -> Customer | None:
        stmt = select(CustomerModel).where(CustomerModel.id == customer_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def create(self, payload: CustomerCreateInput) -> Customer:
        model = CustomerModel(
            billing_profile_id=payload.billing_profile_id,
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            phone=payload.phone,
            nationality=payload.nationality,
        )
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: CustomerModel) -> Customer:
        return Customer(
            id=str(model.id),
            billing_profile_id=model.billing_profile_id,
            first_name=model.first_name,
            last_name=model.last_name,
            email=model.email,
            phone=model.phone,
            nationality=model.nationality,
            created_at=ensure_aware(model.created_at),
        )
