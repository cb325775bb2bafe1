from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from guestpay.core.config import ChargeSettings
from guestpay.core.principal import Operator
from guestpay.db import models  # noqa: F401
from guestpay.infrastructure.database.base import Base
from guestpay.infrastructure.database.repositories import SqlChargeRepository, SqlCustomerRepository
from guestpay.modules.charges import Charge, ChargeCreateInput, PaymentMethod
from guestpay.modules.charges.confirmations import ConfirmationHandler
from guestpay.modules.charges.orchestrator import ChargeOrchestrator
from guestpay.modules.charges.reconciliation import ReconciliationImporter
from guestpay.modules.charges.refunds import RefundHandler
from guestpay.modules.charges.status import ChargeStatusGateway
from guestpay.modules.customers import Customer, CustomerCreateInput

from .fakes import FakeGateway, FrozenClock, RecordingNotifier

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
GATEKEEPER_BASE = "https://guest.example.com"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def operator() -> Operator:
    return Operator(operator_id="op-1", username="frontdesk")


@pytest.fixture
def charge_repo(session) -> SqlChargeRepository:
    return SqlChargeRepository(session)


@pytest.fixture
def customer_repo(session) -> SqlCustomerRepository:
    return SqlCustomerRepository(session)


@pytest_asyncio.fixture
async def customer(customer_repo, session) -> Customer:
    customer = await customer_repo.create(
        CustomerCreateInput(
            billing_profile_id="cus_guest_1",
            first_name="Ada",
            last_name="Lovelace",
            email="ada@example.com",
            phone="+44 20 0000 0000",
            nationality="GB",
        )
    )
    await session.commit()
    return customer


@pytest_asyncio.fixture
async def walk_in_customer(customer_repo, session) -> Customer:
    customer = await customer_repo.create(CustomerCreateInput(first_name="Walk", last_name="In"))
    await session.commit()
    return customer


@pytest.fixture
def orchestrator(charge_repo, customer_repo, gateway, notifier, clock) -> ChargeOrchestrator:
    return ChargeOrchestrator(
        charges=charge_repo,
        customers=customer_repo,
        gateway=gateway,
        notifier=notifier,
        settings=ChargeSettings(),
        gatekeeper_base_url=GATEKEEPER_BASE,
        clock=clock,
    )


@pytest.fixture
def importer(charge_repo, customer_repo, gateway, clock) -> ReconciliationImporter:
    return ReconciliationImporter(
        charges=charge_repo,
        customers=customer_repo,
        gateway=gateway,
        settings=ChargeSettings(),
        clock=clock,
    )


@pytest.fixture
def refunds(charge_repo, gateway, clock) -> RefundHandler:
    return RefundHandler(charges=charge_repo, gateway=gateway, settings=ChargeSettings(), clock=clock)


@pytest.fixture
def status_gateway(charge_repo, customer_repo, clock) -> ChargeStatusGateway:
    return ChargeStatusGateway(charges=charge_repo, customers=customer_repo, clock=clock)


@pytest.fixture
def confirmations(charge_repo, clock) -> ConfirmationHandler:
    return ConfirmationHandler(charges=charge_repo, clock=clock)


@pytest.fixture
def make_charge(charge_repo, session, customer, operator):
    async def _make(**overrides: Any) -> Charge:
        values: dict[str, Any] = {
            "customer_id": customer.id,
            "amount_cents": 5000,
            "currency": "eur",
            "description": "Room 12 minibar",
            "payment_method": PaymentMethod.QR_CODE,
            "created_by": operator.id,
            "expired_at": NOW + timedelta(minutes=10),
            "created_at": NOW,
        }
        values.update(overrides)
        charge = await charge_repo.create(ChargeCreateInput(**values))
        await session.commit()
        return charge

    return _make

