"""User controller: registration, login, profiles, avatars and counters."""

import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from prometheus_client import Counter
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import (
    Identity,
    create_token,
    get_current_identity,
    hash_password,
    verify_password,
)
from ..database import MAX_PAGE_SIZE, check_paging, get_db, paginate
from ..errors import service_errors
from ..limits import SENSITIVE_RATE_LIMIT, limiter
from ..models import User
from ..schemas import (
    FollowInfo,
    LoginUser,
    UserAccount,
    UserCreate,
    UserLogin,
    UserPublic,
    UserUpdate,
)
from ..services import count_relations, follow_this_user
from ..storage import AVATARS, delete_file, save_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["Users"])

REGISTER_COUNTER = Counter("users_registered_total", "Total users registered")

# Fields that may not be cleared through an update
NON_NULLABLE_FIELDS = {"name", "last_name", "email", "nick"}


@router.get("/test-user")
def test_user(identity: Identity = Depends(get_current_identity)):
    return {
        "status": "success",
        "message": "Message sent from the user controller",
        "user": identity,
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(SENSITIVE_RATE_LIMIT)
def register(request: Request, payload: UserCreate, db: Session = Depends(get_db)):
    """Create a user with a case-folded email and nick and a bcrypt password."""
    email = payload.email.lower()
    nick = payload.nick.lower()

    with service_errors(db, "Error registering user"):
        existing = (
            db.query(User.id).filter(or_(User.email == email, User.nick == nick)).first()
        )
        if existing:
            raise HTTPException(status_code=409, detail="User already exists")

        user = User(
            name=payload.name,
            last_name=payload.last_name,
            email=email,
            nick=nick,
            password=hash_password(payload.password),
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=409, detail="User already exists")
        db.refresh(user)

    REGISTER_COUNTER.inc()
    logger.info("registered user id=%s nick=%s", user.id, user.nick)
    return {
        "status": "created",
        "message": "User registered successfully",
        "user": UserAccount.model_validate(user),
    }


@router.post("/login")
@limiter.limit(SENSITIVE_RATE_LIMIT)
def login(request: Request, payload: UserLogin, db: Session = Depends(get_db)):
    with service_errors(db, "Error authenticating user"):
        user = db.query(User).filter(User.email == payload.email.lower()).first()
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        if not verify_password(payload.password, user.password):
            raise HTTPException(status_code=401, detail="Incorrect password")
        token = create_token(user)

    logger.info("user id=%s logged in", user.id)
    return {
        "status": "success",
        "message": "Login successful",
        "token": token,
        "user": LoginUser.model_validate(user),
    }


@router.get("/profile/{user_id}")
def profile(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Return a public profile plus the follow relation with the viewer."""
    with service_errors(db, "Error fetching user profile"):
        user = db.get(User, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        follow_info = follow_this_user(db, identity.user_id, user_id)

    return {
        "status": "success",
        "user": UserPublic.model_validate(user),
        "follow_info": FollowInfo(**follow_info),
    }


@router.get("/list")
@router.get("/list/{page}")
def list_users(
    page: int = 1,
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    check_paging(page, limit)

    with service_errors(db, "Error listing users"):
        result = paginate(db.query(User).order_by(User.created_at, User.id), page, limit)

    if not result.items:
        raise HTTPException(status_code=404, detail="No users available")

    return {
        "status": "success",
        "users": [UserPublic.model_validate(user) for user in result.items],
        "total_docs": result.total,
        "total_pages": result.pages,
        "current_page": result.page,
    }


@router.put("/update")
def update_user(
    payload: UserUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Update the caller's own record from the allow-listed fields."""
    changes = payload.model_dump(exclude_unset=True)
    changes = {
        key: value
        for key, value in changes.items()
        if value is not None or key not in NON_NULLABLE_FIELDS
    }
    for key in ("email", "nick"):
        if key in changes:
            changes[key] = changes[key].lower()

    password = changes.pop("password", None)
    if password:
        changes["password"] = hash_password(password)

    with service_errors(db, "Error updating user"):
        filters = [
            column == changes[key]
            for key, column in (("email", User.email), ("nick", User.nick))
            if key in changes
        ]
        if filters:
            clash = (
                db.query(User.id)
                .filter(or_(*filters), User.id != identity.user_id)
                .first()
            )
            if clash:
                raise HTTPException(
                    status_code=409, detail="Email or nick already in use by another user"
                )

        user = db.get(User, identity.user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")

        for key, value in changes.items():
            setattr(user, key, value)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=409, detail="Email or nick already in use by another user"
            )
        db.refresh(user)

    logger.info("user id=%s updated fields %s", user.id, sorted(changes))
    return {
        "status": "success",
        "message": "User updated successfully",
        "user": UserAccount.model_validate(user),
    }


@router.post("/upload-avatar")
def upload_avatar(
    file0: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    if file0 is None:
        raise HTTPException(
            status_code=400, detail="The request does not include the image"
        )

    url = save_image(file0, AVATARS)

    try:
        with service_errors(db, "Error uploading avatar"):
            user = db.get(User, identity.user_id)
            if user is None:
                raise HTTPException(status_code=500, detail="Error uploading avatar")
            previous = user.image
            user.image = url
            db.commit()
            db.refresh(user)
    except Exception:
        # The record never pointed at the new file
        delete_file(url)
        raise

    if previous and previous != url:
        delete_file(previous)

    return {"status": "success", "user": UserAccount.model_validate(user), "file": url}


@router.get("/avatar/{user_id}")
def avatar(user_id: str, db: Session = Depends(get_db)):
    with service_errors(db, "Error fetching avatar"):
        image = db.query(User.image).filter(User.id == user_id).scalar()

    if not image:
        raise HTTPException(
            status_code=404, detail="The image or the user does not exist"
        )

    return {"status": "success", "image_url": image}


@router.get("/counters")
@router.get("/counters/{user_id}")
def counters(
    user_id: Optional[str] = None,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Follow and publication counts; a path id wins over the caller's id."""
    target = user_id or identity.user_id

    with service_errors(db, "Error computing counters"):
        user = db.query(User.name, User.last_name).filter(User.id == target).first()
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        counts = count_relations(db, target)

    return {
        "status": "success",
        "user_id": target,
        "name": user.name,
        "last_name": user.last_name,
        **counts,
    }
