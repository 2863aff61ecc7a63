import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import JWTError, jwt
from passlib.context import CryptContext

from blogauth.config import settings
from blogauth.services.errors import InvalidTokenError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> None:
    """Burn a hash round so unknown usernames cost as much as wrong passwords."""
    pwd_context.dummy_verify()


def _create_token(data: Dict[str, Any], expires_delta: timedelta) -> IssuedToken:
    # exp is carried in whole seconds; keep the returned timestamp identical to the claim.
    now = datetime.now(timezone.utc).replace(microsecond=0)
    expire = now + expires_delta
    to_encode = data.copy()
    to_encode.update({"iat": now, "exp": expire, "jti": uuid.uuid4().hex})
    token = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return IssuedToken(token=token, expires_at=expire)


def issue_session_token(user) -> IssuedToken:
    return _create_token({"sub": user.username}, settings.session_token_ttl())


def issue_pending_mfa_token(username: str) -> IssuedToken:
    return _create_token({"sub": username}, settings.pending_mfa_token_ttl())


def issue_token_from_pending_token(pending_token: str) -> IssuedToken:
    username = parse_username(pending_token)
    return _create_token({"sub": username}, settings.session_token_ttl())


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry; raise InvalidTokenError on any failure."""
    if not token:
        raise InvalidTokenError("Empty token")
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc
    if not claims.get("sub") or "exp" not in claims:
        raise InvalidTokenError("Token is missing required claims")
    return claims


def parse_username(token: str) -> str:
    return decode_token(token)["sub"]


def parse_expiry(token: str) -> datetime:
    return datetime.fromtimestamp(decode_token(token)["exp"], tz=timezone.utc)


def token_preview(token: str) -> str:
    return token[:10] + "..."
