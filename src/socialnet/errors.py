"""Error envelope shared by every controller: ``{"status": "error", "message": ...}``."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, NoReturn

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def error_body(message: str, **extra: Any) -> Dict[str, Any]:
    return {"status": "error", "message": message, **extra}


def handle_service_error(session: Session, exc: Exception, message: str) -> NoReturn:
    """Rollback the transaction, log the failure and raise a generic 500."""
    session.rollback()
    logger.exception("%s", message, exc_info=exc)
    raise HTTPException(status_code=500, detail=message) from exc


@contextmanager
def service_errors(session: Session, message: str) -> Iterator[None]:
    """Let HTTPException through; turn anything else into a logged generic 500."""
    try:
        yield
    except HTTPException:
        raise
    except Exception as exc:
        handle_service_error(session, exc, message)


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.info(
            "%s %s rejected with %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.detail,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("rate limit hit on %s %s: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=429, content=error_body(f"Rate limit exceeded: {exc.detail}")
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.info("invalid request %s %s: %s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content=error_body("Missing or invalid data", errors=jsonable_encoder(errors)),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
