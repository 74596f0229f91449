from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4

from app.core.utils import utcnow

def participant_key(first: UUID, second: UUID) -> str:
    """Order-independent key for a pair of participants."""
    low, high = sorted((str(first), str(second)))
    return f"{low}:{high}"

class Chat(SQLModel, table=True):
    __tablename__ = "chats"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    participant_key: str = Field(unique=True, index=True)
    participant_a: UUID = Field(index=True)
    participant_b: UUID = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    @property
    def participants(self) -> list[UUID]:
        return [self.participant_a, self.participant_b]

    def other_participant(self, user_id: UUID) -> UUID:
        return self.participant_b if self.participant_a == user_id else self.participant_a

class ChatMessage(SQLModel, table=True):
    __tablename__ = "chat_messages"
    # Autoincrement id gives insertion order
    id: Optional[int] = Field(default=None, primary_key=True)
    chat_id: UUID = Field(foreign_key="chats.id", index=True)
    sender_id: UUID
    receiver_id: UUID
    text: Optional[str] = None
    document: Optional[str] = None
    sent_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

class ChatUnread(SQLModel, table=True):
    __tablename__ = "chat_unread"
    chat_id: UUID = Field(foreign_key="chats.id", primary_key=True)
    user_id: UUID = Field(primary_key=True)
    count: int = Field(default=0)
