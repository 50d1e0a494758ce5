# backend/mindfulness/schemas/user.py
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, EmailStr, Field, field_validator

from mindfulness.schemas.base import CamelModel, strip_and_reject_blank

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,30}$")


def _strip(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


def _check_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", v):
        raise ValueError("Password must contain at least one number")
    return v


# --- Requests ---

class UserRegister(CamelModel):
    """
    [Request] POST /api/auth/register
    """
    # passwords are taken byte for byte
    model_config = ConfigDict(str_strip_whitespace=False)

    username: str
    email: EmailStr
    password: str

    @field_validator("username", "email", mode="before")
    @classmethod
    def _strip_identity(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("username")
    @classmethod
    def _username_rules(cls, v: str) -> str:
        if not _USERNAME_RE.match(v):
            raise ValueError("Username must be 3-30 characters of letters, numbers or underscores")
        return v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def _password_rules(cls, v: str) -> str:
        return _check_password(v)


class UserLogin(CamelModel):
    """
    [Request] POST /api/auth/login
    """
    model_config = ConfigDict(str_strip_whitespace=False)

    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, v: Any) -> Any:
        return _strip(v)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class ProfileUpdate(CamelModel):
    """
    [Request] PUT /api/users/profile
    """
    display_name: Optional[str] = Field(default=None, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=500)
    preferences: Optional[Dict[str, Any]] = None

    @field_validator("display_name")
    @classmethod
    def _display_name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return strip_and_reject_blank(v, "displayName")


class PasswordChange(CamelModel):
    """
    [Request] PUT /api/users/password
    """
    model_config = ConfigDict(str_strip_whitespace=False)

    current_password: str = Field(min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _password_rules(cls, v: str) -> str:
        return _check_password(v)


# --- Responses ---

class UserRead(CamelModel):
    id: str
    username: str
    email: EmailStr
    is_admin: bool = False
    display_name: Optional[str] = None
    bio: Optional[str] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    last_login_at: Optional[datetime] = None


class AuthResponse(CamelModel):
    token: str
    user: UserRead


class UserList(CamelModel):
    users: List[UserRead]
    total: int
    page: int
    total_pages: int


class UserStats(CamelModel):
    total_sessions: int
    total_minutes: int
    current_streak: int
    achievement_points: int
    completed_achievements: int
