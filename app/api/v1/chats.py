from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from app.api.deps import get_chat_service, get_current_identity
from app.core.security import CurrentIdentity
from app.schemas.chat import ChatDetailResponse, ChatListResponse, ChatResponse, TextMessageCreate
from app.services.chat_service import ChatService

router = APIRouter()

@router.post("/send-text-message", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def send_text_message(
    request: TextMessageCreate,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
):
    chat, _ = await service.send_message(identity.id, request.receiver_id, text=request.text)
    return await service.to_response(chat)

@router.post("/send-document", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def send_document(
    receiver_id: UUID = Form(...),
    text: Optional[str] = Form(None),
    document: UploadFile = File(...),
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
):
    content = await document.read()
    chat, _ = await service.send_document(
        identity.id,
        receiver_id,
        filename=document.filename,
        content=content,
        content_type=document.content_type,
        text=text,
    )
    return await service.to_response(chat)

@router.get("/", response_model=ChatListResponse)
async def read_my_chats(
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
):
    chats = [await service.to_detail(chat) for chat in await service.list_chats(identity.id)]
    return ChatListResponse(results=len(chats), chats=chats)

@router.get("/{chat_id}", response_model=ChatDetailResponse)
async def read_chat(
    chat_id: UUID,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
):
    chat = await service.get_chat(chat_id)
    service.ensure_participant(chat, identity.id)
    return await service.to_detail(chat)

@router.patch("/{chat_id}/read", response_model=ChatResponse)
async def mark_chat_read(
    chat_id: UUID,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ChatService = Depends(get_chat_service),
):
    chat = await service.mark_read(chat_id, identity.id)
    return await service.to_response(chat)
