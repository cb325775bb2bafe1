"""Charge service dependency providers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from guestpay.core.config import Settings, get_settings
from guestpay.core.container import get_container
from guestpay.infrastructure.gateway import PaymentGateway
from guestpay.infrastructure.notifications import NotificationDispatcher
from guestpay.modules.charges.confirmations import ConfirmationHandler
from guestpay.modules.charges.orchestrator import ChargeOrchestrator
from guestpay.modules.charges.reconciliation import ReconciliationImporter
from guestpay.modules.charges.refunds import RefundHandler
from guestpay.modules.charges.status import ChargeStatusGateway

from .database import get_db_session


def get_gateway() -> PaymentGateway:
    return get_container().gateway


def get_notifier() -> NotificationDispatcher:
    return get_container().notifier


def get_charge_orchestrator(
    db: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_gateway),
    notifier: NotificationDispatcher = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> ChargeOrchestrator:
    return ChargeOrchestrator.with_session(db, gateway=gateway, notifier=notifier, settings=settings)


def get_reconciliation_importer(
    db: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> ReconciliationImporter:
    return ReconciliationImporter.with_session(db, gateway=gateway, settings=settings)


def get_refund_handler(
    db: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> RefundHandler:
    return RefundHandler.with_session(db, gateway=gateway, settings=settings)


def get_status_gateway(db: AsyncSession = Depends(get_db_session)) -> ChargeStatusGateway:
    return ChargeStatusGateway.with_session(db)


def get_confirmation_handler(db: AsyncSession = Depends(get_db_session)) -> ConfirmationHandler:
    return ConfirmationHandler.with_session(db)


__all__ = [
    "get_charge_orchestrator",
    "get_confirmation_handler",
    "get_gateway",
    "get_notifier",
    "get_reconciliation_importer",
    "get_refund_handler",
    "get_status_gateway",
]
