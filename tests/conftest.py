import os
import tempfile
from datetime import timedelta

# Configure the process before any blogauth import builds settings or the engine.
_test_tmp_dir = tempfile.mkdtemp(prefix="blogauth_test_")
os.environ.setdefault("BLOG_DATABASE_URL", f"sqlite:///{_test_tmp_dir}/test.db")
os.environ.setdefault("BLOG_JWT_SECRET_KEY", "test-secret-key-for-testing-only-do-not-use-in-production")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from blogauth.db import SessionLocal, engine  # noqa: E402
from blogauth.main import create_app  # noqa: E402
from blogauth.models.base import Base  # noqa: E402
from blogauth.models.user import Role, User  # noqa: E402
from blogauth.services.auth import AuthService  # noqa: E402
from blogauth.services.login_attempts import LoginAttemptLimiter  # noqa: E402
from blogauth.services.security import hash_password  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 10_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return LoginAttemptLimiter(max_attempts=5, lockout=timedelta(minutes=10), clock=clock)


@pytest.fixture
def auth_service(limiter):
    return AuthService(limiter)


@pytest.fixture
def client(limiter):
    return TestClient(create_app(limiter))


@pytest.fixture
def make_user(db):
    def _make(
        username: str = "alice",
        password: str = "correct",
        email: str | None = None,
        role: Role = Role.USER,
        mfa_secret: str | None = None,
        active: bool = True,
    ) -> User:
        user = User(
            username=username,
            email=email or f"{username}@blog.io",
            password_hash=hash_password(password),
            role=role,
            mfa_enabled=mfa_secret is not None,
            mfa_secret=mfa_secret,
            is_active=active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def signin(client):
    def _signin(username: str = "alice", password: str = "correct") -> str:
        resp = client.post("/auth/signin", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()["token"]

    return _signin


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
