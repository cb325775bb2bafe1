"""
Seed a demo customer and print an operator token
so the charge endpoints can be exercised locally.
"""
import asyncio
import sys

from guestpay.core.security import create_access_token
from guestpay.infrastructure.database.repositories import SqlCustomerRepository
from guestpay.infrastructure.database.session import get_session, init_db
from guestpay.modules.customers import CustomerCreateInput


async def seed_customer(billing_profile_id: str | None) -> None:
    await init_db()

    async for db in get_session():
        repository = SqlCustomerRepository(db)
        customer = await repository.create(
            CustomerCreateInput(
                billing_profile_id=billing_profile_id,
                first_name="Demo",
                last_name="Guest",
                email="guest@example.com",
            )
        )
        await db.commit()

        print("=" * 50)
        print(f"Customer id: {customer.id}")
        print(f"Billing profile: {customer.billing_profile_id or '-'}")
        print(f"Operator token: {create_access_token('local-operator', 'operator')}")
        print("=" * 50)


if __name__ == "__main__":
    asyncio.run(seed_customer(sys.argv[1] if len(sys.argv) > 1 else None))
