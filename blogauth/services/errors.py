import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Token is malformed, expired, or carries a bad signature."""


class StoreUnavailable(Exception):
    """The persistent store failed while serving an operation."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Store unavailable during {operation}")
        self.operation = operation


class AuthError(str, Enum):
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    INVALID_MFA_CODE = "INVALID_MFA_CODE"
    INVALID_OR_EXPIRED_TOKEN = "INVALID_OR_EXPIRED_TOKEN"
    TOKEN_REVOKED = "TOKEN_REVOKED"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"


# Revoked and disabled tokens look exactly like expired ones to the caller.
MESSAGES: dict[AuthError, str] = {
    AuthError.INVALID_CREDENTIALS: "Invalid username or password",
    AuthError.ACCOUNT_LOCKED: "Account is locked",
    AuthError.INVALID_MFA_CODE: "Invalid verification code",
    AuthError.INVALID_OR_EXPIRED_TOKEN: "Invalid or expired token",
    AuthError.TOKEN_REVOKED: "Invalid or expired token",
    AuthError.ACCOUNT_DISABLED: "Invalid or expired token",
}

HTTP_STATUS: dict[AuthError, int] = {
    AuthError.INVALID_CREDENTIALS: status.HTTP_400_BAD_REQUEST,
    AuthError.ACCOUNT_LOCKED: status.HTTP_400_BAD_REQUEST,
    AuthError.INVALID_MFA_CODE: status.HTTP_400_BAD_REQUEST,
    AuthError.INVALID_OR_EXPIRED_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthError.TOKEN_REVOKED: status.HTTP_401_UNAUTHORIZED,
    AuthError.ACCOUNT_DISABLED: status.HTTP_401_UNAUTHORIZED,
}


@contextmanager
def store_errors(db: Session, operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Store operation %s failed", operation)
        raise StoreUnavailable(operation) from exc
