"""Translation of domain errors into HTTP errors."""

from fastapi import HTTPException

from guestpay.modules.charges.exceptions import ChargeError


def http_error(exc: ChargeError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message or exc.__class__.__name__)
