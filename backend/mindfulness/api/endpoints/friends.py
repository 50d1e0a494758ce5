# backend/mindfulness/api/endpoints/friends.py
from typing import List

from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_current_principal
from mindfulness.crud import friends as friend_crud
from mindfulness.db.mongo import get_database
from mindfulness.schemas.base import MessageResponse
from mindfulness.schemas.social import FriendRead, FriendRequestCreate, FriendRequestRead

router = APIRouter(prefix="/api/friends", tags=["Friends"])


# ---------- REQUESTS ----------
@router.post("/requests", response_model=FriendRequestRead, status_code=status.HTTP_201_CREATED)
async def send_request(
    data: FriendRequestCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await friend_crud.send_request(db, principal.user_id, data.recipient_id)


@router.get("/requests", response_model=List[FriendRequestRead])
async def list_requests(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await friend_crud.list_pending_requests(db, principal.user_id)


@router.put("/requests/{request_id}/accept", response_model=FriendRequestRead)
async def accept_request(
    request_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await friend_crud.accept_request(db, request_id, principal.user_id)


@router.put("/requests/{request_id}/reject", response_model=FriendRequestRead)
async def reject_request(
    request_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await friend_crud.reject_request(db, request_id, principal.user_id)


# ---------- FRIENDS ----------
@router.get("/list", response_model=List[FriendRead])
async def list_friends(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return await friend_crud.list_friends(db, principal.user_id)


@router.delete("/{friend_id}", response_model=MessageResponse)
async def remove_friend(
    friend_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await friend_crud.remove_friend(db, principal.user_id, friend_id)
    return MessageResponse(message="Friend removed")


# ---------- BLOCKING ----------
@router.post("/block/{user_id}", response_model=MessageResponse)
async def block_user(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await friend_crud.block_user(db, principal.user_id, user_id)
    return MessageResponse(message="User blocked")


@router.delete("/block/{user_id}", response_model=MessageResponse)
async def unblock_user(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await friend_crud.unblock_user(db, principal.user_id, user_id)
    return MessageResponse(message="User unblocked")
