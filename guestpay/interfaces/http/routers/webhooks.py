"""Gateway confirmation webhook."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from guestpay.infrastructure.gateway import GatewayError, GatewaySignatureError, PaymentGateway
from guestpay.interfaces.http.deps import get_confirmation_handler, get_gateway
from guestpay.modules.charges.confirmations import ConfirmationHandler
from guestpay.schemas import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/gateway", response_model=WebhookAck, summary="Receive payment confirmations")
async def gateway_webhook(
    request: Request,
    gateway: PaymentGateway = Depends(get_gateway),
    handler: ConfirmationHandler = Depends(get_confirmation_handler),
) -> WebhookAck:
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        logger.warning("Webhook received without signature")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No signature")

    try:
        event = gateway.construct_event(payload, signature)
    except GatewaySignatureError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except GatewayError as exc:
        logger.error("Webhook configuration error: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook configuration error") from exc

    logger.info("Webhook %s received: %s", event.id, event.type)
    charge = await handler.handle_event(event)
    return WebhookAck(received=True, charge_id=charge.id if charge else None)
