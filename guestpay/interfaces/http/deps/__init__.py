"""Reusable FastAPI dependencies."""

from .database import get_db_session
from .services import (
    get_charge_orchestrator,
    get_confirmation_handler,
    get_gateway,
    get_notifier,
    get_reconciliation_importer,
    get_refund_handler,
    get_status_gateway,
)

__all__ = [
    "get_charge_orchestrator",
    "get_confirmation_handler",
    "get_db_session",
    "get_gateway",
    "get_notifier",
    "get_reconciliation_importer",
    "get_refund_handler",
    "get_status_gateway",
]
