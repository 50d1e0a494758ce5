# backend/mindfulness/api/endpoints/chat.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_current_principal, get_gateway
from mindfulness.crud import chat as chat_crud
from mindfulness.db.mongo import get_database
from mindfulness.realtime.gateway import SessionGateway
from mindfulness.schemas.social import ChatMessageCreate, ChatMessageRead, ChatParticipant

router = APIRouter(prefix="/api/chat", tags=["Chat"])


@router.get("/sessions/{session_id}/messages", response_model=List[ChatMessageRead])
async def get_messages(
    session_id: str,
    limit: int = Query(50, ge=1, le=200),
    before: Optional[datetime] = None,
    _: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await chat_crud.get_messages(db, session_id, limit, before)


@router.post(
    "/sessions/{session_id}/messages",
    response_model=ChatMessageRead,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    session_id: str,
    data: ChatMessageCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
    gateway: SessionGateway = Depends(get_gateway),
):
    """
    [Request] POST /api/chat/sessions/{id}/messages
    Persisted, then pushed to the room as `new_message`.
    """
    message = await chat_crud.add_message(db, session_id, principal.user_id, data.content)
    await gateway.broadcast_message(message, principal.username)
    return message


@router.get("/sessions/{session_id}/participants", response_model=List[ChatParticipant])
async def get_participants(
    session_id: str,
    _: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await chat_crud.get_participants(db, session_id)
