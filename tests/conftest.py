import os
import tempfile

# Settings are read at import time, so configure them before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="socialnet-uploads-")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from socialnet.api import app  # noqa: E402
from socialnet.database import Base, get_db  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture
def session_local():
    """Provide an isolated in-memory database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(
        bind=engine, autoflush=False, autocommit=False, future=True
    )
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def client(session_local):
    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user and return the created record."""

    def _register(nick: str, email: str | None = None, password: str = PASSWORD):
        resp = client.post(
            "/api/user/register",
            json={
                "name": nick.capitalize(),
                "last_name": "Tester",
                "nick": nick,
                "email": email or f"{nick}@mail.com",
                "password": password,
            },
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["user"]

    return _register


@pytest.fixture
def login(client):
    """Log in and return ``Authorization`` headers."""

    def _login(email: str, password: str = PASSWORD):
        resp = client.post("/api/user/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login


@pytest.fixture
def make_user(register, login):
    """Register and log in a user; return ``(user, headers)``."""

    def _make_user(nick: str):
        user = register(nick)
        return user, login(user["email"])

    return _make_user
