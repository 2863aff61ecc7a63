"""Revocation registry.

Entries are keyed by the token string itself, taken from signature-verified
token content, so a token can be revoked even when its ``user_tokens`` row is
missing.
"""
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blogauth.models.base import utcnow
from blogauth.models.revocation import RevocationEntry
from blogauth.services.errors import store_errors
from blogauth.services.security import token_preview

logger = logging.getLogger(__name__)


def _find(db: Session, token_value: str) -> RevocationEntry | None:
    with store_errors(db, "revocation lookup"):
        return db.query(RevocationEntry).filter(RevocationEntry.token == token_value).first()


def add(
    db: Session,
    token_value: str,
    expires_at: datetime,
    user_id: int | None = None,
    reason: str | None = None,
) -> RevocationEntry:
    existing = _find(db, token_value)
    if existing is not None:
        return existing

    entry = RevocationEntry(
        token=token_value,
        user_id=user_id,
        reason=reason,
        blacklisted_at=utcnow(),
        expires_at=expires_at,
    )
    with store_errors(db, "revocation add"):
        try:
            db.add(entry)
            db.commit()
        except IntegrityError:
            # A concurrent request revoked the same token first.
            db.rollback()
            return db.query(RevocationEntry).filter(RevocationEntry.token == token_value).one()
        db.refresh(entry)
    logger.info("Revoked token %s (user_id=%s, reason=%s)", token_preview(token_value), user_id, reason)
    return entry


def contains(db: Session, token_value: str) -> bool:
    with store_errors(db, "revocation lookup"):
        return db.query(RevocationEntry.id).filter(RevocationEntry.token == token_value).first() is not None


def entries_for_user(db: Session, user_id: int) -> list[RevocationEntry]:
    with store_errors(db, "revocation list"):
        return (
            db.query(RevocationEntry)
            .filter(RevocationEntry.user_id == user_id)
            .order_by(RevocationEntry.blacklisted_at.desc())
            .all()
        )


def purge_expired(db: Session, now: datetime | None = None) -> int:
    now = now or utcnow()
    with store_errors(db, "revocation purge"):
        deleted = (
            db.query(RevocationEntry)
            .filter(RevocationEntry.expires_at <= now)
            .delete(synchronize_session=False)
        )
        db.commit()
    if deleted:
        logger.info("Cleaned up %d expired tokens from blacklist", deleted)
    return deleted
