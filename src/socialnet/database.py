"""Database setup and pagination helpers for users, follows and publications."""

import logging
import math
from dataclasses import dataclass
from typing import Generator, Generic, List, TypeVar

from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import Query, Session, declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_PAGE_SIZE = 100
# Keeps OFFSET within the range SQL backends accept
MAX_PAGE = 1_000_000


def make_engine(url: str):
    """Create an engine; SQLite connections are shared with the worker threads."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, connect_args=connect_args)


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Provide a session scoped to a single request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create database tables if they do not exist.

    Any connection error propagates so the process fails at startup.
    """
    # Register the models on Base.metadata before creating tables
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("connected to database %s", engine.url.render_as_string(hide_password=True))


@dataclass
class Page(Generic[T]):
    """One page of query results plus the totals needed by clients."""

    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)


def check_paging(page: int, limit: int) -> None:
    """Reject page numbers and sizes outside the supported range with a 400."""
    if not 1 <= page <= MAX_PAGE or not 1 <= limit <= MAX_PAGE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"page must be between 1 and {MAX_PAGE}"
            f" and limit between 1 and {MAX_PAGE_SIZE}",
        )


def paginate(query: Query, page: int = 1, limit: int = 10) -> Page:
    """Run ``query`` for the requested 1-based page.

    Parameters
    ----------
    query: Query
        An ordered SQLAlchemy query.
    page: int
        Page number, starting at 1.
    limit: int
        Items per page.
    """
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, total=total, page=page, limit=limit)
