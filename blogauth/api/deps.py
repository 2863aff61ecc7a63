import logging
from dataclasses import dataclass
from typing import Generator

from fastapi import BackgroundTasks, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from blogauth import db
from blogauth.models.user import Role, User
from blogauth.services import token_store
from blogauth.services.auth import AuthService
from blogauth.services.errors import StoreUnavailable
from blogauth.services.token_store import ClientMeta

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentSession:
    user: User
    token: str


def get_db() -> Generator[Session, None, None]:
    with db.get_session() as session:
        yield session


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def extract_bearer(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def client_meta(request: Request, user_agent: str | None = Header(default=None)) -> ClientMeta:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",", 1)[0].strip()
    else:
        ip = request.client.host if request.client else None
    return ClientMeta(ip_address=ip, user_agent=user_agent)


def touch_token_usage(token: str) -> None:
    with db.get_session() as session:
        try:
            token_store.touch_last_used(session, token)
        except StoreUnavailable:
            logger.warning("Could not update last-used time for a session token")


def get_current_session(
    background_tasks: BackgroundTasks,
    authorization: str | None = Header(default=None),
    session: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> CurrentSession:
    token = extract_bearer(authorization)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing access token")
    check = auth.validate_token(session, token)
    if not check.ok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=check.message)
    background_tasks.add_task(touch_token_usage, token)
    return CurrentSession(user=check.user, token=token)


def get_current_user(current: CurrentSession = Depends(get_current_session)) -> User:
    return current.user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return user
