from fastapi import APIRouter

from guestpay.interfaces.http.routers import charges, customers, webhooks


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(charges.router, prefix="/charges", tags=["charges"])
    router.include_router(customers.router, prefix="/customers", tags=["customers"])
    router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
    return router


__all__ = [
    "create_api_router",
]
