from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import structlog
from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.core.config import Settings
from mindfulness.core.errors import (
    AppError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from mindfulness.core.security import decode_access_token
from mindfulness.db.mongo import get_database

logger = structlog.get_logger(__name__)

OwnerResolver = Callable[[AsyncIOMotorDatabase, str], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class Principal:
    """The authenticated identity of a request or socket connection."""
    user_id: str
    username: str
    is_admin: bool = False


def principal_from_token(token: str, settings: Optional[Settings] = None) -> Principal:
    """
    Verify a raw JWT and build the Principal.
    Expired tokens are reported separately from every other failure.
    """
    try:
        payload = decode_access_token(token, settings)
    except ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except JWTError:
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token")

    return Principal(
        user_id=str(user_id),
        username=payload.get("username") or "",
        is_admin=bool(payload.get("is_admin", False)),
    )


async def get_current_principal(request: Request) -> Principal:
    """
    Authorization: Bearer <token>
    """
    header = request.headers.get("Authorization")
    if not header:
        raise UnauthorizedError("No token provided")

    parts = header.split(" ", 1)
    if len(parts) != 2 or not parts[1].strip():
        raise UnauthorizedError("Invalid token format")

    return principal_from_token(parts[1].strip(), request.app.state.settings)


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Admin access required")
    return principal


def require_owner_or_admin(resolve_owner: OwnerResolver, id_param: str = "id"):
    """
    Build a dependency that lets admins through and otherwise compares the owner
    of the resource named by path parameter `id_param` with the principal.
    """

    async def dependency(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        db: AsyncIOMotorDatabase = Depends(get_database),
    ) -> Principal:
        if principal.is_admin:
            return principal

        resource_id = request.path_params.get(id_param)
        try:
            owner_id: Any = await resolve_owner(db, resource_id)
        except AppError:
            raise
        except Exception:
            logger.exception("Ownership check failed", resource_id=resource_id, path=request.url.path)
            raise InternalError("Error checking resource ownership")

        if owner_id is None:
            raise NotFoundError("Resource not found")
        if str(owner_id) != principal.user_id:
            raise ForbiddenError("You do not have permission to access this resource")
        return principal

    return dependency


def get_cache(request: Request):
    """The CatalogCache built in create_app()."""
    return request.app.state.cache


def get_gateway(request: Request):
    return request.app.state.gateway
