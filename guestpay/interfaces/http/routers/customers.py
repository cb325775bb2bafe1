"""Operator endpoints scoped to one customer."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from guestpay.core.principal import Operator
from guestpay.core.security import get_current_operator
from guestpay.interfaces.http.deps import get_status_gateway
from guestpay.interfaces.http.errors import http_error
from guestpay.modules.charges import ChargeError
from guestpay.modules.charges.status import ChargeStatusGateway
from guestpay.schemas import ChargeListResponse

from .charges import to_charge_response

router = APIRouter()


@router.get("/{customer_id}/charges", response_model=ChargeListResponse, summary="List a customer's charges")
async def list_customer_charges(
    customer_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _: Operator = Depends(get_current_operator),
    status_gateway: ChargeStatusGateway = Depends(get_status_gateway),
) -> ChargeListResponse:
    try:
        charges = await status_gateway.list_customer_charges(customer_id, limit, offset)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return ChargeListResponse(
        total=len(charges),
        charges=[to_charge_response(charge) for charge in charges],
    )
