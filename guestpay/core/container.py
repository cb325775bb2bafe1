"""Simple dependency container for wiring core services."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache

from guestpay.core.config import Settings, get_settings
from guestpay.infrastructure.database.session import get_engine
from guestpay.infrastructure.gateway import PaymentGateway, StripeGateway
from guestpay.infrastructure.notifications import (
    HttpNotificationDispatcher,
    LoggingNotificationDispatcher,
    NotificationDispatcher,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    gateway: PaymentGateway | None = field(default=None)
    notifier: NotificationDispatcher | None = field(default=None)

    def init_infrastructure(self) -> None:
        """Ensure infrastructure singletons (database engine, gateway, notifier) are initialised."""
        get_engine()
        if self.gateway is None:
            self.gateway = self._build_gateway()
        if self.notifier is None:
            self.notifier = self._build_notifier()

    async def shutdown(self) -> None:
        if isinstance(self.notifier, HttpNotificationDispatcher):
            await self.notifier.aclose()

    def _build_gateway(self) -> PaymentGateway:
        gateway_settings = self.settings.gateway
        if gateway_settings.secret_key is None:
            logger.warning("Gateway secret key not configured; gateway calls will be rejected upstream")
        return StripeGateway(
            gateway_settings.secret_key.get_secret_value() if gateway_settings.secret_key else "",
            webhook_secret=(
                gateway_settings.webhook_secret.get_secret_value() if gateway_settings.webhook_secret else None
            ),
            api_version=gateway_settings.api_version,
        )

    def _build_notifier(self) -> NotificationDispatcher:
        notifications = self.settings.notifications
        if notifications.url:
            return HttpNotificationDispatcher(notifications.url, timeout=notifications.timeout)
        return LoggingNotificationDispatcher()


@lru_cache()
def get_container() -> ApplicationContainer:
    container = ApplicationContainer(settings=get_settings())
    container.init_infrastructure()
    return container


__all__ = ["ApplicationContainer", "get_container"]
