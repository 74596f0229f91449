from uuid import uuid4

import pytest
from fastapi import HTTPException
from sqlmodel import select

from app.db.models import Chat
from app.services.chat_service import ChatService

API = "/api/v1"

@pytest.mark.asyncio
async def test_send_read_send_flow(client, make_user, make_specialist, auth_headers):
    # 1. A patient writes to a specialist
    patient = await make_user()
    specialist = await make_specialist()
    patient_headers = auth_headers(patient.id)
    specialist_headers = auth_headers(specialist.id, role="doctor")

    response = await client.post(
        f"{API}/chat/send-text-message",
        json={"receiver_id": str(specialist.id), "text": "Hello doctor"},
        headers=patient_headers,
    )
    assert response.status_code == 201
    chat = response.json()
    assert chat["unread_counts"] == {str(patient.id): 0, str(specialist.id): 1}
    assert [m["text"] for m in chat["messages"]] == ["Hello doctor"]

    # 2. The specialist reads it, twice
    for _ in range(2):
        read = await client.patch(f"{API}/chat/{chat['id']}/read", headers=specialist_headers)
        assert read.status_code == 200
        assert read.json()["unread_counts"][str(specialist.id)] == 0

    # 3. Reply goes into the same chat
    reply = await client.post(
        f"{API}/chat/send-text-message",
        json={"receiver_id": str(patient.id), "text": "Hello, how can I help?"},
        headers=specialist_headers,
    )
    body = reply.json()
    assert body["id"] == chat["id"]
    assert body["unread_counts"] == {str(patient.id): 1, str(specialist.id): 0}
    assert [m["text"] for m in body["messages"]] == ["Hello doctor", "Hello, how can I help?"]

    # 4. Both sides see one chat with enriched participants
    listing = (await client.get(f"{API}/chat/", headers=patient_headers)).json()
    assert listing["results"] == 1
    participants = {p["id"]: p for p in listing["chats"][0]["participants"]}
    assert participants[str(patient.id)]["type"] == "user"
    assert participants[str(specialist.id)] == {
        "id": str(specialist.id),
        "name": "Amina Njoya",
        "avatar": None,
        "type": "specialist",
    }

@pytest.mark.asyncio
async def test_chat_access_rules(client, make_user, auth_headers):
    patient = await make_user()
    stranger = uuid4()
    receiver = uuid4()

    created = (await client.post(
        f"{API}/chat/send-text-message",
        json={"receiver_id": str(receiver), "text": "Hi"},
        headers=auth_headers(patient.id),
    )).json()

    detail = await client.get(f"{API}/chat/{created['id']}", headers=auth_headers(patient.id))
    assert detail.status_code == 200
    unknown = [p for p in detail.json()["participants"] if p["id"] == str(receiver)][0]
    assert unknown == {"id": str(receiver), "name": "Unknown", "avatar": None, "type": None}

    assert (await client.get(f"{API}/chat/{created['id']}", headers=auth_headers(stranger))).status_code == 403
    assert (await client.patch(f"{API}/chat/{created['id']}/read", headers=auth_headers(stranger))).status_code == 403
    assert (await client.get(f"{API}/chat/{uuid4()}", headers=auth_headers(patient.id))).status_code == 404

@pytest.mark.asyncio
async def test_cannot_message_yourself_or_send_empty(client, make_user, auth_headers):
    patient = await make_user()
    headers = auth_headers(patient.id)

    response = await client.post(
        f"{API}/chat/send-text-message", json={"receiver_id": str(patient.id), "text": "Note to self"}, headers=headers
    )
    assert response.status_code == 400
    assert response.json()["message"] == "You cannot send a message to yourself"

    response = await client.post(
        f"{API}/chat/send-text-message", json={"receiver_id": str(uuid4()), "text": ""}, headers=headers
    )
    assert response.status_code == 400

@pytest.mark.asyncio
async def test_send_document(client, make_user, auth_headers, s3):
    patient = await make_user()
    receiver = uuid4()

    response = await client.post(
        f"{API}/chat/send-document",
        data={"receiver_id": str(receiver), "text": "My results"},
        files={"document": ("lab results.pdf", b"%PDF-1.4 test", "application/pdf")},
        headers=auth_headers(patient.id),
    )
    assert response.status_code == 201
    body = response.json()
    message = body["messages"][0]
    assert message["text"] == "My results"
    assert message["document"].startswith("https://test-bucket.s3.test/chat/")
    assert message["document"].endswith("-lab_results.pdf?expires=3600")
    assert body["unread_counts"][str(receiver)] == 1

    (key, stored), = s3.objects.items()
    assert stored["body"] == b"%PDF-1.4 test"
    assert stored["content_type"] == "application/pdf"

    empty = await client.post(
        f"{API}/chat/send-document",
        data={"receiver_id": str(receiver)},
        files={"document": ("empty.txt", b"", "text/plain")},
        headers=auth_headers(patient.id),
    )
    assert empty.status_code == 400

@pytest.mark.asyncio
async def test_one_chat_per_pair(session):
    first, second = uuid4(), uuid4()
    service = ChatService(session)

    chat, _ = await service.send_message(first, second, text="one")
    again, _ = await service.send_message(second, first, text="two")
    assert again.id == chat.id
    assert [m.text for m in await service.get_messages(chat.id)] == ["one", "two"]
    assert await service.get_unread_counts(chat.id) == {str(first): 1, str(second): 1}

@pytest.mark.asyncio
async def test_concurrent_create_reuses_existing_chat(session_factory, monkeypatch):
    first, second = uuid4(), uuid4()
    async with session_factory() as session:
        existing = await ChatService(session).get_or_create_chat(first, second)

    async with session_factory() as session:
        service = ChatService(session)
        real_find = service.find_chat
        calls = []

        # The first lookup misses, as if the other writer had not committed yet
        async def racing_find(a, b):
            calls.append((a, b))
            if len(calls) == 1:
                return None
            return await real_find(a, b)

        monkeypatch.setattr(service, "find_chat", racing_find)
        chat = await service.get_or_create_chat(second, first)

        assert chat.id == existing.id
        assert len(calls) == 2

    async with session_factory() as session:
        result = await session.execute(select(Chat))
        assert len(result.scalars().all()) == 1

@pytest.mark.asyncio
async def test_document_requires_storage(session):
    service = ChatService(session)
    with pytest.raises(RuntimeError):
        await service.send_document(uuid4(), uuid4(), "a.txt", b"x", "text/plain")

@pytest.mark.asyncio
async def test_mark_read_unknown_chat(session):
    with pytest.raises(HTTPException) as exc_info:
        await ChatService(session).mark_read(uuid4(), uuid4())
    assert exc_info.value.status_code == 404
