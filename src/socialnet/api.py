"""FastAPI application exposing the user, follow and publication endpoints."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from prometheus_client import Counter, make_asgi_app

from .config import settings
from .database import init_db
from .errors import register_error_handlers
from .limits import limiter
from .logger import setup_api_logger
from .routes import follow, publication, user
from .storage import AVATARS, PUBLICATIONS, ensure_upload_dirs, upload_root

setup_api_logger()
logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"]

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to the database before serving; a failure aborts startup."""
    init_db()
    ensure_upload_dirs()
    logger.info("API ready on port %s", settings.port)
    yield


app = FastAPI(title=settings.api_title, lifespan=lifespan)
app.state.limiter = limiter
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=CORS_METHODS,
    allow_headers=["*"],
)


def _endpoint_label(request: Request) -> str:
    # Unmatched paths share one label to keep the metric bounded
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    logger.info("request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=_endpoint_label(request),
            status=str(response.status_code),
        ).inc()
        logger.info(
            "response %s %s status %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response
    except Exception:
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=_endpoint_label(request),
            status="500",
        ).inc()
        logger.exception("error handling %s %s", request.method, request.url.path)
        raise


app.mount(
    "/uploads/avatars",
    StaticFiles(directory=upload_root() / AVATARS, check_dir=False),
    name="avatars",
)
app.mount(
    "/uploads/publications",
    StaticFiles(directory=upload_root() / PUBLICATIONS, check_dir=False),
    name="publications",
)
app.mount("/metrics", make_asgi_app())

app.include_router(user.router)
app.include_router(publication.router)
app.include_router(follow.router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
