import json
from datetime import date

import httpx
import pytest
from tenacity import wait_none

from app.services.notification_service import NotificationService, dispatch_appointment_confirmation

@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(NotificationService._post.retry, "wait", wait_none())

def service_with(handler, api_key="test-key"):
    return NotificationService(
        api_key=api_key,
        api_url="https://mail.test/v3/mail/send",
        sender="no-reply@test",
        transport=httpx.MockTransport(handler),
    )

@pytest.mark.asyncio
async def test_template_payload():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(202)

    sent = await service_with(handler).send_template(
        "patient@example.com", "Appointment update", "d-123", {"username": "Jane"}
    )
    assert sent is True

    request = requests[0]
    assert request.headers["Authorization"] == "Bearer test-key"
    body = json.loads(request.content)
    assert body["from"] == {"email": "no-reply@test"}
    assert body["template_id"] == "d-123"
    assert body["personalizations"][0]["dynamic_template_data"] == {"username": "Jane"}

@pytest.mark.asyncio
async def test_retries_until_accepted():
    responses = iter([httpx.Response(500), httpx.Response(429), httpx.Response(202)])

    def handler(request):
        return next(responses)

    assert await service_with(handler).send_template("a@b.c", "s", "d-1", {}) is True

@pytest.mark.asyncio
async def test_disabled_without_api_key():
    def handler(request):
        raise AssertionError("no request expected")

    service = service_with(handler, api_key=None)
    assert service.enabled is False
    assert await service.send_template("a@b.c", "s", "d-1", {}) is False

@pytest.mark.asyncio
async def test_dispatch_swallows_failures():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("unreachable", request=request)

    sent = await dispatch_appointment_confirmation(
        service_with(handler), "a@b.c", "Jane", "Dr Amina", date(2025, 6, 2), "10:00"
    )
    assert sent is False
    assert len(calls) == 3

@pytest.mark.asyncio
async def test_dispatch_without_email():
    def handler(request):
        raise AssertionError("no request expected")

    assert await dispatch_appointment_confirmation(
        service_with(handler), None, "Jane", "Dr Amina", date(2025, 6, 2), "10:00"
    ) is False
