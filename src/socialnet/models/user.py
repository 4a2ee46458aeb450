import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from ..database import Base


def new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """SQLAlchemy model for application users.

    ``email`` and ``nick`` are stored lower-cased so uniqueness is
    case-insensitive.
    """

    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    nick = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    bio = Column(Text, nullable=True)
    password = Column(String(60), nullable=False)
    role = Column(String(20), default="role_user", nullable=False)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
