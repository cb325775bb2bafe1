import json

import httpx
import pytest

from guestpay.infrastructure.notifications import HttpNotificationDispatcher, NotificationError


@pytest.mark.asyncio
async def test_posts_template_payload():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(202)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    dispatcher = HttpNotificationDispatcher("https://notify.example.com/send", http=http)

    await dispatcher.send("charge_confirmation", "ada@example.com", {"amount": "50.00"})
    await dispatcher.aclose()

    body = json.loads(requests[0].content)
    assert body == {
        "template_type": "charge_confirmation",
        "recipient": "ada@example.com",
        "data": {"amount": "50.00"},
        "attachments": [],
    }


@pytest.mark.asyncio
async def test_rejected_notification_raises():
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    dispatcher = HttpNotificationDispatcher("https://notify.example.com/send", http=http)

    with pytest.raises(NotificationError):
        await dispatcher.send("charge_confirmation", "ada@example.com", {})
    await dispatcher.aclose()
