# backend/mindfulness/crud/users.py
from typing import List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.errors import ConflictError, NotFoundError, UnauthorizedError
from mindfulness.core.security import hash_password, verify_password
from mindfulness.crud.common import is_object_id, safe_object_id, utcnow
from mindfulness.models.user import UserInDB
from mindfulness.schemas.user import PasswordChange, ProfileUpdate, UserRead, UserRegister


def get_users_collection(db: AsyncIOMotorDatabase):
    return db["users"]


def serialize_user(user: UserInDB) -> UserRead:
    """
    UserInDB -> UserRead (password hash and social lists stay behind)
    """
    return UserRead(
        id=user.id,
        username=user.username,
        email=user.email,
        is_admin=user.is_admin,
        display_name=user.display_name,
        bio=user.bio,
        preferences=user.preferences,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


# ---------- READ ----------
async def get_user_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[UserInDB]:
    doc = await get_users_collection(db).find_one({"email": email.strip().lower()})
    return UserInDB(**doc) if doc else None


async def get_user_by_id(db: AsyncIOMotorDatabase, user_id: str) -> Optional[UserInDB]:
    if not is_object_id(user_id):
        return None
    doc = await get_users_collection(db).find_one({"_id": safe_object_id(user_id)})
    return UserInDB(**doc) if doc else None


async def require_user(db: AsyncIOMotorDatabase, user_id: str) -> UserInDB:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def get_usernames(db: AsyncIOMotorDatabase, user_ids: List[str]) -> dict:
    """{user_id: username} for the ids that exist."""
    oids = [safe_object_id(u) for u in user_ids if is_object_id(u)]
    if not oids:
        return {}
    cursor = get_users_collection(db).find({"_id": {"$in": oids}}, {"username": 1})
    docs = await cursor.to_list(length=len(oids))
    return {str(d["_id"]): d.get("username") for d in docs}


async def list_users(db: AsyncIOMotorDatabase, page: int = 1, limit: int = 20) -> Tuple[List[UserInDB], int]:
    col = get_users_collection(db)
    total = await col.count_documents({})
    cursor = col.find({}).sort("created_at", -1).skip((page - 1) * limit).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [UserInDB(**d) for d in docs], total


# ---------- CREATE ----------
async def create_user(db: AsyncIOMotorDatabase, data: UserRegister) -> UserInDB:
    col = get_users_collection(db)

    if await col.find_one({"email": data.email}):
        raise ConflictError("Email already registered", {"field": "email"})
    if await col.find_one({"username": data.username}):
        raise ConflictError("Username already taken", {"field": "username"})

    user = UserInDB(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
    )
    # a racing duplicate still ends up as DuplicateKeyError -> 409
    result = await col.insert_one(user.to_document())
    user.id = str(result.inserted_id)
    return user


async def authenticate(db: AsyncIOMotorDatabase, email: str, password: str) -> UserInDB:
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")

    now = utcnow()
    await get_users_collection(db).update_one(
        {"_id": safe_object_id(user.id)}, {"$set": {"last_login_at": now}}
    )
    user.last_login_at = now
    return user


# ---------- UPDATE ----------
async def update_profile(db: AsyncIOMotorDatabase, user_id: str, data: ProfileUpdate) -> UserInDB:
    update_doc = data.model_dump(exclude_unset=True, exclude_none=True)
    if update_doc:
        await get_users_collection(db).update_one(
            {"_id": safe_object_id(user_id)}, {"$set": update_doc}
        )
    return await require_user(db, user_id)


async def change_password(db: AsyncIOMotorDatabase, user_id: str, data: PasswordChange) -> None:
    user = await require_user(db, user_id)
    if not verify_password(data.current_password, user.password_hash):
        raise UnauthorizedError("Current password is incorrect")
    await get_users_collection(db).update_one(
        {"_id": safe_object_id(user_id)},
        {"$set": {"password_hash": hash_password(data.new_password)}},
    )


# ---------- DELETE ----------
async def delete_user(db: AsyncIOMotorDatabase, user_id: str) -> bool:
    result = await get_users_collection(db).delete_one({"_id": safe_object_id(user_id)})
    return result.deleted_count == 1


async def resolve_user_owner(db: AsyncIOMotorDatabase, user_id: str) -> Optional[str]:
    """A user account is owned by itself."""
    user = await get_user_by_id(db, user_id)
    return user.id if user else None
