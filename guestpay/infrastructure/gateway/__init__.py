"""Payment gateway adapters."""

from .base import (
    GatewayDeclineError,
    GatewayError,
    GatewayEvent,
    GatewayLink,
    GatewayPayment,
    GatewayReferenceError,
    GatewayRefund,
    GatewaySignatureError,
    PaymentGateway,
    TransactionKind,
    UpstreamTransaction,
)
from .stripe_gateway import StripeGateway

__all__ = [
    "GatewayDeclineError",
    "GatewayError",
    "GatewayEvent",
    "GatewayLink",
    "GatewayPayment",
    "GatewayReferenceError",
    "GatewayRefund",
    "GatewaySignatureError",
    "PaymentGateway",
    "StripeGateway",
    "TransactionKind",
    "UpstreamTransaction",
]
