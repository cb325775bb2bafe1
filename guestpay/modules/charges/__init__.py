"""Charge domain exports"""

from .exceptions import (
    ChargeAlreadyCompletedError,
    ChargeConflictError,
    ChargeDeclinedError,
    ChargeError,
    ChargeExpiredError,
    ChargeNotFoundError,
    ChargeNotPayableError,
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
    GuestChargeView,
    LinkSession,
    PaymentMethod,
    ReconciledCharge,
    RefundResult,
)

__all__ = [
    "Charge",
    "ChargeAlreadyCompletedError",
    "ChargeConflictError",
    "ChargeCreateInput",
    "ChargeDeclinedError",
    "ChargeError",
    "ChargeExpiredError",
    "ChargeNotFoundError",
    "ChargeNotPayableError",
    "ChargePatch",
    "ChargeProcessingError",
    "ChargeResult",
    "ChargeStatus",
    "ChargeValidationError",
    "CustomerNotFoundError",
    "DuplicateChargeError",
    "GuestChargeView",
    "LinkSession",
    "PaymentMethod",
    "ReconciledCharge",
    "RefundResult",
]
