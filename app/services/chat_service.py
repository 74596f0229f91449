from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.logger import get_logger
from app.core.utils import utcnow
from app.db.models import Chat, ChatMessage, ChatUnread
from app.db.models.chat import participant_key
from app.schemas.chat import ChatDetailResponse, ChatResponse, MessageResponse
from app.services.directory_service import DirectoryService
from app.services.storage_service import StorageService

logger = get_logger("chat")

class ChatService:
    def __init__(self, session: AsyncSession, storage: Optional[StorageService] = None):
        self.session = session
        self.storage = storage
        self.directory = DirectoryService(session)

    async def find_chat(self, first: UUID, second: UUID) -> Optional[Chat]:
        stmt = select(Chat).where(Chat.participant_key == participant_key(first, second))
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_or_create_chat(self, first: UUID, second: UUID) -> Chat:
        """
        Chat for the unordered pair, created on first use. The unique
        participant key turns a concurrent double-create into an
        IntegrityError for the loser, which then reads the winner's row.
        """
        chat = await self.find_chat(first, second)
        if chat:
            return chat

        low, high = sorted((first, second), key=str)
        chat = Chat(participant_key=participant_key(first, second), participant_a=low, participant_b=high)
        try:
            self.session.add(chat)
            await self.session.flush()
            self.session.add(ChatUnread(chat_id=chat.id, user_id=low, count=0))
            self.session.add(ChatUnread(chat_id=chat.id, user_id=high, count=0))
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info(f"Chat for {chat.participant_key} created concurrently; reusing it")
            chat = await self.find_chat(first, second)
            if chat is None:
                raise
            return chat

        logger.info(f"Chat {chat.id} created for {chat.participant_key}")
        return chat

    async def get_chat(self, chat_id: UUID) -> Chat:
        chat = await self.session.get(Chat, chat_id)
        if not chat:
            raise HTTPException(status_code=404, detail="Chat not found")
        return chat

    def ensure_participant(self, chat: Chat, user_id: UUID) -> None:
        if user_id not in chat.participants:
            raise HTTPException(status_code=403, detail="You are not a participant of this chat")

    async def send_message(
        self,
        sender_id: UUID,
        receiver_id: UUID,
        text: Optional[str] = None,
        document: Optional[str] = None,
    ) -> tuple[Chat, ChatMessage]:
        if sender_id == receiver_id:
            raise HTTPException(status_code=400, detail="You cannot send a message to yourself")
        if not text and not document:
            raise HTTPException(status_code=400, detail="A message needs text or a document")

        chat = await self.get_or_create_chat(sender_id, receiver_id)

        message = ChatMessage(
            chat_id=chat.id, sender_id=sender_id, receiver_id=receiver_id, text=text, document=document
        )
        self.session.add(message)
        await self.session.execute(
            update(ChatUnread)
            .where(ChatUnread.chat_id == chat.id, ChatUnread.user_id == receiver_id)
            .values(count=ChatUnread.count + 1)
        )
        chat.updated_at = utcnow()
        self.session.add(chat)
        await self.session.commit()
        await self.session.refresh(message)
        return chat, message

    async def send_document(
        self,
        sender_id: UUID,
        receiver_id: UUID,
        filename: str,
        content: bytes,
        content_type: Optional[str],
        text: Optional[str] = None,
    ) -> tuple[Chat, ChatMessage]:
        if self.storage is None:
            raise RuntimeError("ChatService needs a StorageService to send documents")
        if sender_id == receiver_id:
            raise HTTPException(status_code=400, detail="You cannot send a message to yourself")
        url = await self.storage.store_document(filename, content, content_type)
        return await self.send_message(sender_id, receiver_id, text=text or None, document=url)

    async def mark_read(self, chat_id: UUID, user_id: UUID) -> Chat:
        chat = await self.get_chat(chat_id)
        self.ensure_participant(chat, user_id)
        await self.session.execute(
            update(ChatUnread)
            .where(ChatUnread.chat_id == chat.id, ChatUnread.user_id == user_id)
            .values(count=0)
        )
        await self.session.commit()
        return chat

    async def get_messages(self, chat_id: UUID) -> List[ChatMessage]:
        stmt = select(ChatMessage).where(ChatMessage.chat_id == chat_id).order_by(ChatMessage.id)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_unread_counts(self, chat_id: UUID) -> dict[str, int]:
        stmt = select(ChatUnread).where(ChatUnread.chat_id == chat_id).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return {str(row.user_id): row.count for row in result.scalars().all()}

    async def list_chats(self, user_id: UUID) -> List[Chat]:
        stmt = (
            select(Chat)
            .where(or_(Chat.participant_a == user_id, Chat.participant_b == user_id))
            .order_by(Chat.updated_at.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def to_response(self, chat: Chat) -> ChatResponse:
        messages = await self.get_messages(chat.id)
        return ChatResponse(
            id=chat.id,
            participants=chat.participants,
            messages=[MessageResponse.model_validate(m) for m in messages],
            unread_counts=await self.get_unread_counts(chat.id),
            created_at=chat.created_at,
            updated_at=chat.updated_at,
        )

    async def to_detail(self, chat: Chat) -> ChatDetailResponse:
        plain = await self.to_response(chat)
        return ChatDetailResponse(
            **plain.model_dump(exclude={"participants"}),
            participants=await self.directory.describe_participants(chat.participants),
        )
