"""Charge domain specific exceptions."""

from __future__ import annotations

from typing import Optional


class ChargeError(Exception):
    """Base class for charge domain errors."""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ChargeValidationError(ChargeError):
    """Raised when input is missing or malformed, or a guard rejects the request."""

    status_code = 400


class ChargeNotFoundError(ChargeError):
    """Raised when the requested charge cannot be found."""

    status_code = 404


class CustomerNotFoundError(ChargeError):
    """Raised when the customer or its billing profile is missing."""

    status_code = 404


class ChargeConflictError(ChargeError):
    """Raised when a transaction is already recorded."""

    status_code = 400


class DuplicateChargeError(ChargeConflictError):
    """Raised by the store when a unique reference is already taken."""


class ChargeExpiredError(ChargeValidationError):
    """Raised when a guest follows a link past its expiry."""


class ChargeAlreadyCompletedError(ChargeValidationError):
    """Raised when a guest tries to pay a settled charge again."""


class ChargeNotPayableError(ChargeValidationError):
    """Raised when a link points at a charge that can no longer be paid."""


class ChargeDeclinedError(ChargeError):
    """Raised when the gateway definitively declines the instrument."""

    status_code = 402

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class ChargeProcessingError(ChargeError):
    """Raised for unexpected gateway or infrastructure failures."""

    status_code = 500
