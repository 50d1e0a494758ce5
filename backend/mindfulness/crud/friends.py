# backend/mindfulness/crud/friends.py
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from mindfulness.crud.common import safe_object_id, utcnow
from mindfulness.crud.users import get_users_collection, require_user
from mindfulness.models.social import FriendRequestInDB, FriendRequestStatus
from mindfulness.schemas.social import FriendRead, FriendRequestRead


def get_friend_requests_collection(db: AsyncIOMotorDatabase):
    return db["friend_requests"]


def serialize_friend_request(doc) -> FriendRequestRead:
    r = FriendRequestInDB(**doc)
    return FriendRequestRead(**r.model_dump())


def _between(a: str, b: str) -> dict:
    return {
        "$or": [
            {"requester_id": a, "recipient_id": b},
            {"requester_id": b, "recipient_id": a},
        ]
    }


# ---------- REQUESTS ----------
async def send_request(db: AsyncIOMotorDatabase, requester_id: str, recipient_id: str) -> FriendRequestRead:
    if requester_id == recipient_id:
        raise ValidationError("Cannot send friend request to yourself")

    requester = await require_user(db, requester_id)
    recipient = await require_user(db, recipient_id)

    if recipient_id in requester.blocked_user_ids or requester_id in recipient.blocked_user_ids:
        raise ValidationError("Cannot send friend request to this user")
    if recipient_id in requester.friend_ids:
        raise ValidationError("Users are already friends")

    col = get_friend_requests_collection(db)
    existing = await col.find_one(
        {**_between(requester_id, recipient_id), "status": FriendRequestStatus.PENDING.value}
    )
    if existing:
        raise ConflictError("Friend request already exists")

    request = FriendRequestInDB(requester_id=requester_id, recipient_id=recipient_id, created_at=utcnow())
    result = await col.insert_one(request.to_document())
    return serialize_friend_request(await col.find_one({"_id": result.inserted_id}))


async def list_pending_requests(db: AsyncIOMotorDatabase, user_id: str) -> List[FriendRequestRead]:
    cursor = get_friend_requests_collection(db).find(
        {"recipient_id": user_id, "status": FriendRequestStatus.PENDING.value}
    ).sort("created_at", -1)
    return [serialize_friend_request(d) for d in await cursor.to_list(length=None)]


async def _respond(
    db: AsyncIOMotorDatabase, request_id: str, user_id: str, status: FriendRequestStatus
) -> FriendRequestRead:
    col = get_friend_requests_collection(db)
    oid = safe_object_id(request_id, "request id")
    doc = await col.find_one({"_id": oid})
    if not doc:
        raise NotFoundError("Friend request not found")
    if doc["recipient_id"] != user_id:
        raise ForbiddenError("Not authorized to respond to this request")

    result = await col.update_one(
        {"_id": oid, "status": FriendRequestStatus.PENDING.value},
        {"$set": {"status": status.value, "updated_at": utcnow()}},
    )
    if result.matched_count == 0:
        raise ValidationError("Friend request is no longer pending")
    return serialize_friend_request(await col.find_one({"_id": oid}))


async def accept_request(db: AsyncIOMotorDatabase, request_id: str, user_id: str) -> FriendRequestRead:
    request = await _respond(db, request_id, user_id, FriendRequestStatus.ACCEPTED)
    users = get_users_collection(db)
    await users.update_one(
        {"_id": safe_object_id(request.requester_id)}, {"$addToSet": {"friend_ids": request.recipient_id}}
    )
    await users.update_one(
        {"_id": safe_object_id(request.recipient_id)}, {"$addToSet": {"friend_ids": request.requester_id}}
    )
    return request


async def reject_request(db: AsyncIOMotorDatabase, request_id: str, user_id: str) -> FriendRequestRead:
    return await _respond(db, request_id, user_id, FriendRequestStatus.REJECTED)


# ---------- FRIENDS ----------
async def list_friends(db: AsyncIOMotorDatabase, user_id: str) -> List[FriendRead]:
    user = await require_user(db, user_id)
    oids = [safe_object_id(f) for f in user.friend_ids]
    if not oids:
        return []
    docs = await get_users_collection(db).find(
        {"_id": {"$in": oids}}, {"username": 1, "display_name": 1}
    ).to_list(length=len(oids))
    return [
        FriendRead(id=str(d["_id"]), username=d["username"], display_name=d.get("display_name"))
        for d in docs
    ]


async def are_friends(db: AsyncIOMotorDatabase, user_id: str, other_id: str) -> bool:
    doc = await get_users_collection(db).find_one(
        {"_id": safe_object_id(user_id), "friend_ids": other_id}, {"_id": 1}
    )
    return doc is not None


async def remove_friend(db: AsyncIOMotorDatabase, user_id: str, friend_id: str) -> None:
    await require_user(db, friend_id)
    if not await are_friends(db, user_id, friend_id):
        raise ValidationError("Users are not friends")
    users = get_users_collection(db)
    await users.update_one({"_id": safe_object_id(user_id)}, {"$pull": {"friend_ids": friend_id}})
    await users.update_one({"_id": safe_object_id(friend_id)}, {"$pull": {"friend_ids": user_id}})


async def block_user(db: AsyncIOMotorDatabase, user_id: str, target_id: str) -> None:
    if user_id == target_id:
        raise ValidationError("Cannot block yourself")
    await require_user(db, target_id)

    users = get_users_collection(db)
    await users.update_one(
        {"_id": safe_object_id(user_id)},
        {"$addToSet": {"blocked_user_ids": target_id}, "$pull": {"friend_ids": target_id}},
    )
    await users.update_one({"_id": safe_object_id(target_id)}, {"$pull": {"friend_ids": user_id}})
    await get_friend_requests_collection(db).delete_many(
        {**_between(user_id, target_id), "status": FriendRequestStatus.PENDING.value}
    )


async def unblock_user(db: AsyncIOMotorDatabase, user_id: str, target_id: str) -> None:
    await require_user(db, target_id)
    await get_users_collection(db).update_one(
        {"_id": safe_object_id(user_id)}, {"$pull": {"blocked_user_ids": target_id}}
    )
