"""Guest notification dispatchers."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol, Sequence

import httpx

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when the notification service rejects or cannot take a message."""


class NotificationDispatcher(Protocol):
    async def send(
        self,
        template_type: str,
        recipient: str,
        data: Mapping[str, Any],
        attachments: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> None:
        ...


class LoggingNotificationDispatcher:
    """Used when no notification service is configured."""

    async def send(
        self,
        template_type: str,
        recipient: str,
        data: Mapping[str, Any],
        attachments: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> None:
        logger.info(
            "Notification %s for %s not delivered (no service configured); %d attachment(s)",
            template_type,
            recipient,
            len(attachments or ()),
        )


class HttpNotificationDispatcher:
    """Posts notifications to the template/notification service."""

    def __init__(self, url: str, *, timeout: float = 10.0, http: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self.http = http or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def aclose(self) -> None:
        await self.http.aclose()

    async def send(
        self,
        template_type: str,
        recipient: str,
        data: Mapping[str, Any],
        attachments: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> None:
        payload = {
            "template_type": template_type,
            "recipient": recipient,
            "data": dict(data),
            "attachments": [dict(item) for item in attachments or ()],
        }
        try:
            response = await self.http.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise NotificationError(f"notification_connection_failed: {exc}") from exc
        if response.status_code >= 400:
            raise NotificationError(f"notification_error_{response.status_code}")
        logger.info("Notification %s dispatched to %s", template_type, recipient)
