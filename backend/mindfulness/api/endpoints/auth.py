# backend/mindfulness/api/endpoints/auth.py
import structlog
from fastapi import APIRouter, Depends, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from mindfulness.api.deps import Principal, get_current_principal
from mindfulness.core.errors import NotFoundError
from mindfulness.core.security import create_access_token
from mindfulness.crud import achievements as achievement_crud
from mindfulness.crud import users as user_crud
from mindfulness.db.mongo import get_database
from mindfulness.schemas.user import AuthResponse, UserLogin, UserRead, UserRegister

router = APIRouter(prefix="/api/auth", tags=["Auth"])
logger = structlog.get_logger(__name__)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: Request, data: UserRegister, db: AsyncIOMotorDatabase = Depends(get_database)):
    """
    [Request] POST /api/auth/register
    Creates the account, seeds its achievement catalog and returns a token.
    """
    user = await user_crud.create_user(db, data)
    await achievement_crud.seed_user_achievements(db, user.id)
    logger.info("User registered", user_id=user.id)

    token = create_access_token(user.id, user.username, user.is_admin, settings=request.app.state.settings)
    return AuthResponse(token=token, user=user_crud.serialize_user(user))


@router.post("/login", response_model=AuthResponse)
async def login(request: Request, data: UserLogin, db: AsyncIOMotorDatabase = Depends(get_database)):
    user = await user_crud.authenticate(db, data.email, data.password)
    token = create_access_token(user.id, user.username, user.is_admin, settings=request.app.state.settings)
    return AuthResponse(token=token, user=user_crud.serialize_user(user))


@router.get("/me", response_model=UserRead)
async def me(
    principal: Principal = Depends(get_current_principal),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    user = await user_crud.get_user_by_id(db, principal.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user_crud.serialize_user(user)
