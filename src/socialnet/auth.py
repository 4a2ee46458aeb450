"""Password hashing, token issuance and the bearer-token dependency."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from .config import settings
from .models.user import User

security = HTTPBearer(auto_error=False)

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class Identity(BaseModel):
    """Claims decoded from a valid bearer token."""

    user_id: str
    role: str
    name: Optional[str] = None
    nick: Optional[str] = None
    iat: int
    exp: int


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash ``password`` with a fresh random salt."""
    salt = bcrypt.gensalt(rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def create_token(user: User, expires: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expires = expires or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": user.id,
        "role": user.role,
        "name": user.name,
        "nick": user.nick,
        "iat": now,
        "exp": now + expires,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Identity:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    return Identity(
        user_id=payload["sub"],
        role=payload.get("role", "role_user"),
        name=payload.get("name"),
        nick=payload.get("nick"),
        iat=payload.get("iat", 0),
        exp=payload["exp"],
    )


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Identity:
    """Reject the request with 401 unless it carries a valid bearer token."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return decode_token(credentials.credentials)
