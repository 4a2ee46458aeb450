"""Publication controller: publish, show, delete, list and feed."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from prometheus_client import Counter
from sqlalchemy.orm import Session, joinedload

from ..auth import Identity, get_current_identity
from ..database import MAX_PAGE_SIZE, check_paging, get_db, paginate
from ..errors import service_errors
from ..models import Publication, User
from ..schemas import PublicationCreate, PublicationRead
from ..services import following_user_ids
from ..storage import PUBLICATIONS, delete_file, save_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/publication", tags=["Publications"])

PUBLICATION_COUNTER = Counter("publications_created_total", "Total publications created")


def _page_response(result):
    return {
        "status": "success",
        "publications": [PublicationRead.model_validate(p) for p in result.items],
        "total_docs": result.total,
        "total_pages": result.pages,
        "current_page": result.page,
    }


def _owned_publication(db: Session, publication_id: str, user_id: str) -> Publication:
    publication = (
        db.query(Publication)
        .filter(Publication.id == publication_id, Publication.user_id == user_id)
        .first()
    )
    if publication is None:
        raise HTTPException(status_code=404, detail="Publication not found")
    return publication


@router.post("/publish", status_code=status.HTTP_201_CREATED)
def publish(
    payload: PublicationCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    with service_errors(db, "Error saving publication"):
        publication = Publication(user_id=identity.user_id, text=payload.text)
        db.add(publication)
        db.commit()
        db.refresh(publication)
        body = PublicationRead.model_validate(publication)

    PUBLICATION_COUNTER.inc()
    logger.info("user %s published %s", identity.user_id, publication.id)
    return {
        "status": "success",
        "message": "Publication created successfully",
        "publication": body,
    }


@router.get("/show/{publication_id}")
def show_publication(
    publication_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    with service_errors(db, "Error fetching publication"):
        publication = (
            db.query(Publication)
            .options(joinedload(Publication.user))
            .filter(Publication.id == publication_id)
            .first()
        )
        if publication is None:
            raise HTTPException(status_code=404, detail="Publication not found")
        body = PublicationRead.model_validate(publication)

    return {"status": "success", "publication": body}


@router.delete("/delete/{publication_id}")
def delete_publication(
    publication_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Delete a publication; only its owner may do it."""
    with service_errors(db, "Error deleting publication"):
        publication = _owned_publication(db, publication_id, identity.user_id)
        media = publication.file
        db.delete(publication)
        db.commit()

    delete_file(media)
    logger.info("user %s deleted publication %s", identity.user_id, publication_id)
    return {
        "status": "success",
        "message": "Publication deleted successfully",
        "publication_id": publication_id,
    }


@router.get("/user/{user_id}")
@router.get("/user/{user_id}/{page}")
def user_publications(
    user_id: str,
    page: int = 1,
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Publications of one user, newest first."""
    check_paging(page, limit)

    with service_errors(db, "Error listing publications"):
        if db.get(User, user_id) is None:
            raise HTTPException(status_code=404, detail="User not found")
        query = (
            db.query(Publication)
            .options(joinedload(Publication.user))
            .filter(Publication.user_id == user_id)
            .order_by(Publication.created_at.desc(), Publication.id)
        )
        return _page_response(paginate(query, page, limit))


@router.get("/feed")
@router.get("/feed/{page}")
def feed(
    page: int = 1,
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Publications of the users the caller follows, newest first."""
    check_paging(page, limit)

    with service_errors(db, "Error loading feed"):
        followed = following_user_ids(db, identity.user_id)
        query = (
            db.query(Publication)
            .options(joinedload(Publication.user))
            .filter(Publication.user_id.in_(followed))
            .order_by(Publication.created_at.desc(), Publication.id)
        )
        response = _page_response(paginate(query, page, limit))

    response["following"] = followed
    return response


@router.post("/upload-media/{publication_id}")
def upload_media(
    publication_id: str,
    file0: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Attach an image to one of the caller's publications."""
    if file0 is None:
        raise HTTPException(
            status_code=400, detail="The request does not include the image"
        )

    with service_errors(db, "Error uploading publication media"):
        publication = _owned_publication(db, publication_id, identity.user_id)
        previous = publication.file

    url = save_image(file0, PUBLICATIONS)

    try:
        with service_errors(db, "Error uploading publication media"):
            publication.file = url
            db.commit()
            db.refresh(publication)
            body = PublicationRead.model_validate(publication)
    except Exception:
        delete_file(url)
        raise

    if previous and previous != url:
        delete_file(previous)

    return {"status": "success", "publication": body, "file": url}
