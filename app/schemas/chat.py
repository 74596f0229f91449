from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Optional
from uuid import UUID
from datetime import datetime

class TextMessageCreate(BaseModel):
    receiver_id: UUID
    text: str = Field(min_length=1)

class MessageResponse(BaseModel):
    id: int
    sender_id: UUID
    receiver_id: UUID
    text: Optional[str] = None
    document: Optional[str] = None
    sent_at: datetime

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def has_content(self):
        if not self.text and not self.document:
            raise ValueError("A message needs text or a document")
        return self

class ParticipantSummary(BaseModel):
    id: UUID
    name: str = "Unknown"
    avatar: Optional[str] = None
    type: Optional[str] = None # user, specialist

class ChatResponse(BaseModel):
    id: UUID
    participants: List[UUID]
    messages: List[MessageResponse]
    unread_counts: Dict[str, int]
    created_at: datetime
    updated_at: datetime

class ChatDetailResponse(BaseModel):
    id: UUID
    participants: List[ParticipantSummary]
    messages: List[MessageResponse]
    unread_counts: Dict[str, int]
    created_at: datetime
    updated_at: datetime

class ChatListResponse(BaseModel):
    results: int
    chats: List[ChatDetailResponse]
