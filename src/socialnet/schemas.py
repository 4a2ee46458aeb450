"""Request and response schemas for the user, follow and publication routes."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr, field_validator

from .auth import MAX_PASSWORD_BYTES

RequiredStr = constr(strip_whitespace=True, min_length=1)


def _check_password_length(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


# ---------- Users ----------
class UserCreate(BaseModel):
    """Request body for registering a new user."""

    name: RequiredStr
    last_name: RequiredStr
    email: EmailStr
    password: constr(min_length=1)
    nick: RequiredStr

    check_password_length = field_validator("password")(_check_password_length)


class UserLogin(BaseModel):
    """Request body for user login."""

    email: RequiredStr
    password: constr(min_length=1)


class UserUpdate(BaseModel):
    """Fields a user may change on their own record; anything else is ignored."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[RequiredStr] = None
    last_name: Optional[RequiredStr] = None
    email: Optional[EmailStr] = None
    nick: Optional[RequiredStr] = None
    bio: Optional[str] = None
    password: Optional[str] = None

    check_password_length = field_validator("password")(_check_password_length)


class UserPublic(BaseModel):
    """User projection safe to show to other users."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    last_name: str
    nick: str
    bio: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime


class UserAccount(UserPublic):
    """User projection returned to the owner of the account."""

    email: str
    role: str


class LoginUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    last_name: str
    email: str
    nick: str
    image: Optional[str] = None
    created_at: datetime


class FollowInfo(BaseModel):
    following: bool = Field(..., description="Viewer follows the target")
    follower: bool = Field(..., description="Target follows the viewer")


# ---------- Follows ----------
class FollowCreate(BaseModel):
    followed_user: RequiredStr


class FollowRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    following_user: str
    followed_user: str
    created_at: datetime


class FollowEntry(BaseModel):
    """A follow edge seen from one side, carrying the user on the other side."""

    id: str
    created_at: datetime
    user: UserPublic


# ---------- Publications ----------
class PublicationCreate(BaseModel):
    text: RequiredStr


class PublicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    text: str
    file: Optional[str] = None
    created_at: datetime
    user: Optional[UserPublic] = None
