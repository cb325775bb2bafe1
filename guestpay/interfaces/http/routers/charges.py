"""Charge endpoints: operator charge creation, refunds and the guest link read path."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from guestpay.core.principal import Operator
from guestpay.core.security import get_current_operator
from guestpay.interfaces.http.deps import (
    get_charge_orchestrator,
    get_reconciliation_importer,
    get_refund_handler,
    get_status_gateway,
)
from guestpay.interfaces.http.errors import http_error
from guestpay.modules.charges import Charge, ChargeError
from guestpay.modules.charges.money import to_minor_units
from guestpay.modules.charges.orchestrator import ChargeOrchestrator
from guestpay.modules.charges.reconciliation import ReconciliationImporter
from guestpay.modules.charges.refunds import RefundHandler
from guestpay.modules.charges.status import ChargeStatusGateway
from guestpay.schemas import (
    CardChargeRequest,
    ChargeCreatedResponse,
    ChargeResponse,
    GuestChargeResponse,
    LinkSessionRequest,
    LinkSessionResponse,
    ManualTransactionRequest,
    ManualTransactionResponse,
    RefundResponse,
    TransactionSourceResponse,
)

router = APIRouter()


def to_charge_response(charge: Charge) -> ChargeResponse:
    return ChargeResponse(
        id=charge.id,
        customer_id=charge.customer_id,
        amount=charge.amount,
        amount_cents=charge.amount_cents,
        currency=charge.currency,
        description=charge.description,
        status=charge.status.value,
        payment_method=charge.payment_method.value,
        external_reference=charge.external_reference,
        payment_url=charge.payment_url,
        gatekeeper_url=charge.gatekeeper_url,
        refund_reference=charge.refund_reference,
        created_by=charge.created_by,
        admin_notes=charge.admin_notes,
        created_at=charge.created_at,
        expired_at=charge.expired_at,
        paid_at=charge.paid_at,
        refunded_at=charge.refunded_at,
    )


@router.post(
    "/card",
    response_model=ChargeCreatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Charge a card saved on the customer's billing profile",
)
async def charge_saved_card(
    payload: CardChargeRequest,
    operator: Operator = Depends(get_current_operator),
    orchestrator: ChargeOrchestrator = Depends(get_charge_orchestrator),
) -> ChargeCreatedResponse:
    try:
        result = await orchestrator.create_card_charge(
            operator,
            customer_id=payload.customer_id,
            instrument_ref=payload.payment_method_id,
            amount_cents=to_minor_units(payload.amount),
            currency=payload.currency,
            description=payload.description,
            idempotency_key=payload.idempotency_key,
        )
    except ChargeError as exc:
        raise http_error(exc) from exc
    return ChargeCreatedResponse(charge_id=result.charge_id, status=result.status)


@router.post(
    "/new-card",
    response_model=ChargeCreatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Save a new card on the billing profile and charge it",
)
async def charge_new_card(
    payload: CardChargeRequest,
    operator: Operator = Depends(get_current_operator),
    orchestrator: ChargeOrchestrator = Depends(get_charge_orchestrator),
) -> ChargeCreatedResponse:
    try:
        result = await orchestrator.attach_and_charge(
            operator,
            customer_id=payload.customer_id,
            instrument_ref=payload.payment_method_id,
            amount_cents=to_minor_units(payload.amount),
            currency=payload.currency,
            description=payload.description,
            idempotency_key=payload.idempotency_key,
        )
    except ChargeError as exc:
        raise http_error(exc) from exc
    return ChargeCreatedResponse(charge_id=result.charge_id, status=result.status)


@router.post(
    "/link-session",
    response_model=LinkSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a QR code or hosted invoice payment link",
)
async def create_link_session(
    payload: LinkSessionRequest,
    operator: Operator = Depends(get_current_operator),
    orchestrator: ChargeOrchestrator = Depends(get_charge_orchestrator),
) -> LinkSessionResponse:
    try:
        session = await orchestrator.create_payment_link_session(
            operator,
            customer_id=payload.customer_id,
            amount_cents=to_minor_units(payload.amount),
            currency=payload.currency,
            description=payload.description,
            is_hosted_invoice=payload.is_hosted_invoice,
            expires_at=payload.expires_at,
            idempotency_key=payload.idempotency_key,
        )
    except ChargeError as exc:
        raise http_error(exc) from exc
    return LinkSessionResponse(
        charge_id=session.charge_id,
        gatekeeper_url=session.gatekeeper_url,
        payment_url=session.payment_url,
        expires_at=session.expires_at,
    )


@router.post(
    "/manual-transaction",
    response_model=ManualTransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a payment that settled outside the system",
)
async def record_manual_transaction(
    payload: ManualTransactionRequest,
    operator: Operator = Depends(get_current_operator),
    importer: ReconciliationImporter = Depends(get_reconciliation_importer),
) -> ManualTransactionResponse:
    try:
        reconciled = await importer.create_manual_transaction_charge(
            operator,
            customer_id=payload.customer_id,
            external_transaction_id=payload.transaction_id,
            description=payload.description,
        )
    except ChargeError as exc:
        raise http_error(exc) from exc
    charge = reconciled.charge
    return ManualTransactionResponse(
        charge_id=charge.id,
        amount=charge.amount,
        amount_cents=charge.amount_cents,
        currency=charge.currency,
        status=charge.status.value,
        source=TransactionSourceResponse(
            original_transaction_id=reconciled.original_transaction_id,
            payment_intent_id=reconciled.payment_intent_id,
            transaction_type=reconciled.transaction_type,
            receipt_url=reconciled.receipt_url,
        ),
    )


@router.get("/{charge_id}", response_model=GuestChargeResponse, summary="Guest view of a charge")
async def get_charge(
    charge_id: str,
    status_gateway: ChargeStatusGateway = Depends(get_status_gateway),
) -> GuestChargeResponse:
    try:
        view = await status_gateway.get_charge_view(charge_id)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return GuestChargeResponse(
        id=view.id,
        amount=view.amount,
        amount_cents=view.amount_cents,
        currency=view.currency,
        description=view.description,
        status=view.status.value,
        expired_at=view.expired_at,
        gatekeeper_url=view.gatekeeper_url,
        is_expired=view.is_expired,
    )


@router.get("/{charge_id}/redirect", summary="Send a guest on to the payment page")
async def redirect_to_payment(
    charge_id: str,
    status_gateway: ChargeStatusGateway = Depends(get_status_gateway),
) -> RedirectResponse:
    try:
        url = await status_gateway.resolve_redirect(charge_id)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.post("/{charge_id}/refund", response_model=RefundResponse, summary="Refund a settled charge")
async def refund_charge(
    charge_id: str,
    operator: Operator = Depends(get_current_operator),
    refunds: RefundHandler = Depends(get_refund_handler),
) -> RefundResponse:
    try:
        result = await refunds.refund_charge(operator, charge_id)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return RefundResponse(charge_id=result.charge_id, refund_id=result.refund_id, status=result.status.value)
