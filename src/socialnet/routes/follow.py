"""Follow controller: create and remove edges, list both sides of a user."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from prometheus_client import Counter
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import Identity, get_current_identity
from ..database import MAX_PAGE_SIZE, check_paging, get_db, paginate
from ..errors import service_errors
from ..models import Follow, User
from ..schemas import FollowCreate, FollowEntry, FollowRead, UserPublic
from ..services import follower_user_ids, following_user_ids

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/follow", tags=["Follows"])

FOLLOW_COUNTER = Counter("follows_created_total", "Total follow edges created")


@router.post("/save", status_code=status.HTTP_201_CREATED)
def save_follow(
    payload: FollowCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    followed_id = payload.followed_user
    if followed_id == identity.user_id:
        raise HTTPException(status_code=400, detail="You cannot follow yourself")

    with service_errors(db, "Error following user"):
        target = db.get(User, followed_id)
        if target is None:
            raise HTTPException(
                status_code=404, detail="The user to follow does not exist"
            )

        existing = (
            db.query(Follow.id)
            .filter(
                Follow.following_user == identity.user_id,
                Follow.followed_user == followed_id,
            )
            .first()
        )
        if existing:
            raise HTTPException(status_code=409, detail="You already follow this user")

        follow = Follow(following_user=identity.user_id, followed_user=followed_id)
        db.add(follow)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=409, detail="You already follow this user")
        db.refresh(follow)

    FOLLOW_COUNTER.inc()
    logger.info("user %s now follows %s", identity.user_id, followed_id)
    return {
        "status": "success",
        "message": f"You are now following {target.nick}",
        "follow": FollowRead.model_validate(follow),
    }


@router.delete("/unfollow/{followed_id}")
def unfollow(
    followed_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    with service_errors(db, "Error unfollowing user"):
        deleted = (
            db.query(Follow)
            .filter(
                Follow.following_user == identity.user_id,
                Follow.followed_user == followed_id,
            )
            .delete(synchronize_session=False)
        )
        db.commit()

    if not deleted:
        raise HTTPException(status_code=404, detail="You do not follow this user")

    logger.info("user %s unfollowed %s", identity.user_id, followed_id)
    return {"status": "success", "message": "Follow removed successfully"}


def _list_edges(
    db: Session,
    identity: Identity,
    user_id: Optional[str],
    page: int,
    limit: int,
    followers: bool,
):
    """Page through the edges on one side of a user.

    With ``followers`` false the listed users are the ones ``user_id``
    follows; otherwise the ones following ``user_id``.
    """
    check_paging(page, limit)
    target = user_id or identity.user_id

    with service_errors(db, "Error listing follows"):
        if db.get(User, target) is None:
            raise HTTPException(status_code=404, detail="User not found")

        column = Follow.followed_user if followers else Follow.following_user
        query = db.query(Follow).filter(column == target).order_by(
            Follow.created_at.desc(), Follow.id
        )
        result = paginate(query, page, limit)
        entries = [
            FollowEntry(
                id=follow.id,
                created_at=follow.created_at,
                user=UserPublic.model_validate(
                    follow.follower if followers else follow.followed
                ),
            )
            for follow in result.items
        ]
        user_following = following_user_ids(db, identity.user_id)
        user_follow_me = follower_user_ids(db, identity.user_id)

    return {
        "status": "success",
        "follows": entries,
        "total_docs": result.total,
        "total_pages": result.pages,
        "current_page": result.page,
        "user_following": user_following,
        "user_follow_me": user_follow_me,
    }


@router.get("/following")
@router.get("/following/{user_id}")
@router.get("/following/{user_id}/{page}")
def following(
    user_id: Optional[str] = None,
    page: int = 1,
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Users that ``user_id`` (default: the caller) follows."""
    return _list_edges(db, identity, user_id, page, limit, followers=False)


@router.get("/followers")
@router.get("/followers/{user_id}")
@router.get("/followers/{user_id}/{page}")
def followers(
    user_id: Optional[str] = None,
    page: int = 1,
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Users following ``user_id`` (default: the caller)."""
    return _list_edges(db, identity, user_id, page, limit, followers=True)
