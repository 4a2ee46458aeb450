"""Service layer for follow relations and per-user counters."""

import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from .models import Follow, Publication

logger = logging.getLogger(__name__)


def follow_this_user(db: Session, viewer_id: str, target_id: str) -> Dict[str, bool]:
    """Report the follow relation between two users.

    Parameters
    ----------
    db: Session
        Active database session.
    viewer_id: str
        The authenticated user looking at the profile.
    target_id: str
        The user whose profile is displayed.

    Returns
    -------
    dict
        ``following`` is true when the viewer follows the target and
        ``follower`` is true when the target follows the viewer.
    """
    following = (
        db.query(Follow.id)
        .filter(Follow.following_user == viewer_id, Follow.followed_user == target_id)
        .first()
    )
    follower = (
        db.query(Follow.id)
        .filter(Follow.following_user == target_id, Follow.followed_user == viewer_id)
        .first()
    )
    return {"following": following is not None, "follower": follower is not None}


def following_user_ids(db: Session, user_id: str) -> List[str]:
    """Return the ids of the users ``user_id`` follows."""
    rows = db.query(Follow.followed_user).filter(Follow.following_user == user_id).all()
    return [row[0] for row in rows]


def follower_user_ids(db: Session, user_id: str) -> List[str]:
    """Return the ids of the users following ``user_id``."""
    rows = db.query(Follow.following_user).filter(Follow.followed_user == user_id).all()
    return [row[0] for row in rows]


def count_relations(db: Session, user_id: str) -> Dict[str, int]:
    """Count follow edges on both sides and publications for a user."""
    following_count = db.query(Follow).filter(Follow.following_user == user_id).count()
    followed_count = db.query(Follow).filter(Follow.followed_user == user_id).count()
    publications_count = (
        db.query(Publication).filter(Publication.user_id == user_id).count()
    )
    logger.debug(
        "counters user=%s following=%s followed=%s publications=%s",
        user_id,
        following_count,
        followed_count,
        publications_count,
    )
    return {
        "following_count": following_count,
        "followed_count": followed_count,
        "publications_count": publications_count,
    }
