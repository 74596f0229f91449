"""
Real-time hub for chat, presence and call signaling.

Each process keeps its own sockets keyed by connection id; where a user is
connected is answered by the PresenceRegistry, so targeted events reach a
user on another instance through the registry's relay.

Frames in both directions are JSON objects ``{"event": ..., "data": {...}}``.
Only presence changes are broadcast; chat and call events go to the
resolved receiver connection.
"""
import asyncio
import base64
import binascii
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from fastapi import HTTPException, WebSocket

from app.core.config import settings
from app.core.logger import get_logger
from app.core.presence import PresenceLocation, PresenceRegistry, build_presence_registry
from app.db.session import async_session
from app.services.chat_service import ChatService
from app.services.storage_service import StorageService

logger = get_logger("signaling")

class SocketEvent(str, Enum):
    REGISTER = "register"
    SEND_TEXT_MESSAGE = "send-text-message"
    SEND_DOCUMENT_MESSAGE = "send-document-message"
    DISCONNECT = "disconnect"
    READ_MESSAGES = "read-messages"
    MESSAGES_READ = "messages-read"
    TEXT_MESSAGE_RECEIVED = "text-message-received"
    DOCUMENT_MESSAGE_RECEIVED = "document-message-received"
    USER_STATUS = "user-status"
    CHAT_TYPING = "chat-typing"
    VIDEO_CALL_OFFER = "video-call-offer"
    VIDEO_CALL_ANSWER = "video-call-answer"
    ICE_CANDIDATE = "ice-candidate"
    CALL_ENDED = "call-ended"
    ERROR = "error"

class SignalingError(Exception):
    """Reported back to the sending socket as an ``error`` frame."""

def frame(event: SocketEvent, data: dict) -> dict:
    return {"event": event.value, "data": data}

def _require(data: dict, *keys: str) -> list:
    missing = [key for key in keys if data.get(key) in (None, "")]
    if missing:
        raise SignalingError(f"Missing field(s): {', '.join(missing)}")
    return [data[key] for key in keys]

def _as_uuid(value: Any, field: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise SignalingError(f"Invalid {field}: {value}") from None

def _as_text(value: Any, field: str) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise SignalingError(f"{field} must be a string")
    return value

def message_payload(chat_id: UUID, message) -> dict:
    return {
        "chatId": str(chat_id),
        "messageId": message.id,
        "senderId": str(message.sender_id),
        "receiverId": str(message.receiver_id),
        "text": message.text,
        "document": message.document,
        "sentAt": message.sent_at.isoformat(),
    }

class SignalingHub:
    def __init__(
        self,
        registry: Optional[PresenceRegistry] = None,
        session_factory: Optional[Callable] = None,
        storage: Optional[StorageService] = None,
        instance_id: Optional[str] = None,
    ):
        self.registry = registry or build_presence_registry()
        self.session_factory = session_factory or async_session
        self.storage = storage
        self.instance_id = instance_id or settings.INSTANCE_ID or uuid.uuid4().hex
        # connection_id -> websocket / authenticated user id
        self.connections: Dict[str, WebSocket] = {}
        self.connection_users: Dict[str, str] = {}
        self._relay_task: Optional[asyncio.Task] = None
        self._handlers = {
            SocketEvent.REGISTER: self.handle_register,
            SocketEvent.SEND_TEXT_MESSAGE: self.handle_text_message,
            SocketEvent.SEND_DOCUMENT_MESSAGE: self.handle_document_message,
            SocketEvent.READ_MESSAGES: self.handle_read_messages,
            SocketEvent.CHAT_TYPING: self.handle_typing,
            SocketEvent.VIDEO_CALL_OFFER: self.handle_call_offer,
            SocketEvent.VIDEO_CALL_ANSWER: self.handle_call_answer,
            SocketEvent.ICE_CANDIDATE: self.handle_ice_candidate,
            SocketEvent.CALL_ENDED: self.handle_call_end,
        }

    def get_storage(self) -> StorageService:
        if self.storage is None:
            self.storage = StorageService()
        return self.storage

    # Connection lifecycle

    async def connect(self, websocket: WebSocket, user_id: UUID) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        self.connection_users[connection_id] = str(user_id)
        logger.info(f"Socket {connection_id} connected for {user_id}")
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        self.connections.pop(connection_id, None)
        user_id = self.connection_users.pop(connection_id, None)
        if user_id is None:
            return

        location = PresenceLocation(self.instance_id, connection_id)
        if await self.registry.unregister(user_id, location):
            logger.info(f"User {user_id} is offline")
            await self.broadcast(frame(SocketEvent.USER_STATUS, {"userId": user_id, "status": "offline"}))
        else:
            logger.info(f"Socket {connection_id} closed for {user_id}")

    async def dispatch(self, connection_id: str, message: Any) -> None:
        """Route one inbound frame; failures are reported to the sender only."""
        try:
            if not isinstance(message, dict) or not isinstance(message.get("data", {}), dict):
                raise SignalingError("Frames must look like {\"event\": ..., \"data\": {...}}")
            try:
                event = SocketEvent(message.get("event"))
            except ValueError:
                raise SignalingError(f"Unknown event: {message.get('event')}") from None
            handler = self._handlers.get(event)
            if handler is None:
                raise SignalingError(f"Event {event.value} cannot be sent by clients")
            await handler(connection_id, message.get("data") or {})
        except SignalingError as exc:
            await self.send_local(connection_id, frame(SocketEvent.ERROR, {"message": str(exc)}))
        except HTTPException as exc:
            await self.send_local(connection_id, frame(SocketEvent.ERROR, {"message": exc.detail}))

    # Delivery

    async def send_local(self, connection_id: str, payload: dict) -> bool:
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json(payload)
            return True
        except Exception as exc:
            logger.error(f"Failed to send to socket {connection_id}: {exc}")
            return False

    async def deliver(self, user_id: str, payload: dict) -> bool:
        """Send to the user's registered connection, wherever it lives."""
        location = await self.registry.lookup(str(user_id))
        if location is None:
            return False
        if location.instance_id == self.instance_id:
            return await self.send_local(location.connection_id, payload)
        return await self.registry.publish(
            location.instance_id, {"connection_id": location.connection_id, "payload": payload}
        )

    async def broadcast(self, payload: dict, exclude: Optional[str] = None) -> None:
        for connection_id in list(self.connections):
            if connection_id != exclude:
                await self.send_local(connection_id, payload)

    async def handle_relay(self, envelope: dict) -> None:
        connection_id = envelope.get("connection_id")
        payload = envelope.get("payload")
        if connection_id and payload:
            await self.send_local(connection_id, payload)

    async def start_relay(self) -> None:
        if self._relay_task is None:
            self._relay_task = asyncio.create_task(self.registry.listen(self.instance_id, self.handle_relay))

    async def stop_relay(self) -> None:
        if self._relay_task is not None:
            self._relay_task.cancel()
            try:
                await self._relay_task
            except asyncio.CancelledError:
                pass
            self._relay_task = None

    # Event handlers

    def _user_of(self, connection_id: str) -> str:
        return self.connection_users[connection_id]

    def _check_sender(self, connection_id: str, data: dict) -> str:
        user_id = self._user_of(connection_id)
        claimed = data.get("senderId")
        if claimed is not None and str(claimed) != user_id:
            raise SignalingError("senderId does not match the authenticated user")
        return user_id

    async def handle_register(self, connection_id: str, data: dict) -> None:
        user_id = self._user_of(connection_id)
        claimed = data.get("userId")
        if claimed is not None and str(claimed) != user_id:
            raise SignalingError("userId does not match the authenticated user")

        await self.registry.register(user_id, PresenceLocation(self.instance_id, connection_id))
        logger.info(f"User {user_id} is online")
        await self.broadcast(
            frame(SocketEvent.USER_STATUS, {"userId": user_id, "status": "online"}),
            exclude=connection_id,
        )

    async def _relay_message(self, connection_id: str, event: SocketEvent, chat, message) -> None:
        # Persisted first; live delivery goes to the receiver and back to the sender
        payload = frame(event, message_payload(chat.id, message))
        await self.deliver(str(message.receiver_id), payload)
        await self.send_local(connection_id, payload)

    async def handle_text_message(self, connection_id: str, data: dict) -> None:
        sender_id = self._check_sender(connection_id, data)
        receiver_id, text = _require(data, "receiverId", "text")
        text = _as_text(text, "text")

        async with self.session_factory() as session:
            chat, message = await ChatService(session).send_message(
                _as_uuid(sender_id, "senderId"), _as_uuid(receiver_id, "receiverId"), text=text
            )
        await self._relay_message(connection_id, SocketEvent.TEXT_MESSAGE_RECEIVED, chat, message)

    async def handle_document_message(self, connection_id: str, data: dict) -> None:
        sender_id = self._check_sender(connection_id, data)
        receiver_id, document = _require(data, "receiverId", "document")
        if not isinstance(document, dict):
            raise SignalingError("document must be an object with content, filename and contentType")
        (content,) = _require(document, "content")
        filename = _as_text(document.get("filename"), "document.filename")
        content_type = _as_text(document.get("contentType"), "document.contentType")
        text = _as_text(data.get("text"), "text")
        try:
            body = base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise SignalingError("document content must be base64 encoded") from None

        async with self.session_factory() as session:
            chat, message = await ChatService(session, self.get_storage()).send_document(
                _as_uuid(sender_id, "senderId"),
                _as_uuid(receiver_id, "receiverId"),
                filename=filename or "file",
                content=body,
                content_type=content_type,
                text=text,
            )
        await self._relay_message(connection_id, SocketEvent.DOCUMENT_MESSAGE_RECEIVED, chat, message)

    async def handle_read_messages(self, connection_id: str, data: dict) -> None:
        user_id = self._user_of(connection_id)
        (chat_id,) = _require(data, "chatId")

        async with self.session_factory() as session:
            chat = await ChatService(session).mark_read(_as_uuid(chat_id, "chatId"), UUID(user_id))
        other = chat.other_participant(UUID(user_id))
        await self.deliver(
            str(other), frame(SocketEvent.MESSAGES_READ, {"chatId": str(chat.id), "userId": user_id})
        )

    async def handle_typing(self, connection_id: str, data: dict) -> None:
        user_id = self._user_of(connection_id)
        (receiver_id,) = _require(data, "receiverId")
        await self.deliver(
            str(receiver_id),
            frame(SocketEvent.CHAT_TYPING, {"senderId": user_id, "isTyping": bool(data.get("isTyping", True))}),
        )

    async def handle_call_offer(self, connection_id: str, data: dict) -> None:
        sender_id = self._check_sender(connection_id, data)
        receiver_id, offer = _require(data, "receiverId", "offer")
        logger.info(f"Video call offer from {sender_id} to {receiver_id}")

        delivered = await self.deliver(
            str(receiver_id), frame(SocketEvent.VIDEO_CALL_OFFER, {"senderId": sender_id, "offer": offer})
        )
        if not delivered:
            logger.info(f"User {receiver_id} is not online")
            await self.send_local(
                connection_id,
                frame(SocketEvent.CALL_ENDED, {"receiverId": str(receiver_id), "message": "Receiver is not online."}),
            )

    async def handle_call_answer(self, connection_id: str, data: dict) -> None:
        # The answering user is the call's receiver; senderId names the caller
        receiver_id = self._user_of(connection_id)
        (caller_id,) = _require(data, "senderId")
        accepted = bool(data.get("accepted"))
        logger.info(f"Video call answer from {receiver_id} to {caller_id} - Accepted: {accepted}")

        if accepted:
            payload = frame(SocketEvent.VIDEO_CALL_ANSWER, {"receiverId": receiver_id, "answer": data.get("answer")})
        else:
            payload = frame(SocketEvent.CALL_ENDED, {"receiverId": receiver_id, "message": "Call was declined."})
        await self.deliver(str(caller_id), payload)

    async def handle_ice_candidate(self, connection_id: str, data: dict) -> None:
        sender_id = self._check_sender(connection_id, data)
        receiver_id, candidate = _require(data, "receiverId", "candidate")
        await self.deliver(
            str(receiver_id), frame(SocketEvent.ICE_CANDIDATE, {"senderId": sender_id, "candidate": candidate})
        )

    async def handle_call_end(self, connection_id: str, data: dict) -> None:
        sender_id = self._check_sender(connection_id, data)
        (receiver_id,) = _require(data, "receiverId")
        logger.info(f"Call ended between {sender_id} and {receiver_id}")

        await self.send_local(connection_id, frame(SocketEvent.CALL_ENDED, {"receiverId": str(receiver_id)}))
        await self.deliver(str(receiver_id), frame(SocketEvent.CALL_ENDED, {"senderId": sender_id}))

hub = SignalingHub()
