from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base
from .user import new_id


class Follow(Base):
    """Directed edge: ``following_user`` follows ``followed_user``."""

    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("following_user", "followed_user", name="uq_follow"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    following_user = Column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    followed_user = Column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    follower = relationship("User", foreign_keys=[following_user])
    followed = relationship("User", foreign_keys=[followed_user])
