import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from blogauth.models.base import ensure_aware, utcnow
from blogauth.models.session_token import SessionToken
from blogauth.services.errors import store_errors
from blogauth.services.security import token_preview

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientMeta:
    ip_address: str | None = None
    user_agent: str | None = None


def create(
    db: Session,
    user_id: int,
    username: str,
    token_value: str,
    ttl: timedelta,
    client: ClientMeta | None = None,
) -> SessionToken:
    now = utcnow()
    row = SessionToken(
        user_id=user_id,
        username=username,
        token=token_value,
        blacklisted=False,
        created_at=now,
        expires_at=now + ttl,
        last_used_at=now,
    )
    if client is not None:
        row.ip_address = client.ip_address
        row.user_agent = client.user_agent
    with store_errors(db, "token create"):
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def find(db: Session, token_value: str) -> SessionToken | None:
    with store_errors(db, "token lookup"):
        return db.query(SessionToken).filter(SessionToken.token == token_value).first()


def is_valid(db: Session, token_value: str, now: datetime | None = None) -> bool:
    row = find(db, token_value)
    if row is None or row.blacklisted:
        return False
    return ensure_aware(row.expires_at) > (now or utcnow())


def active_for_user(db: Session, username: str, now: datetime | None = None) -> list[SessionToken]:
    now = now or utcnow()
    with store_errors(db, "token list"):
        return (
            db.query(SessionToken)
            .filter(SessionToken.username == username)
            .filter(SessionToken.blacklisted.is_(False))
            .filter(SessionToken.expires_at > now)
            .order_by(SessionToken.created_at.desc())
            .all()
        )


def all_active(db: Session, now: datetime | None = None) -> list[SessionToken]:
    now = now or utcnow()
    with store_errors(db, "token list"):
        return (
            db.query(SessionToken)
            .filter(SessionToken.blacklisted.is_(False))
            .filter(SessionToken.expires_at > now)
            .order_by(SessionToken.username, SessionToken.created_at.desc())
            .all()
        )


def blacklist_all_for_user(db: Session, username: str) -> int:
    with store_errors(db, "token blacklist"):
        updated = (
            db.query(SessionToken)
            .filter(SessionToken.username == username)
            .filter(SessionToken.blacklisted.is_(False))
            .update({SessionToken.blacklisted: True}, synchronize_session=False)
        )
        db.commit()
    if updated:
        logger.info("Blacklisted %d tokens for user %s", updated, username)
    return updated


def blacklist_one(db: Session, token_value: str) -> bool:
    with store_errors(db, "token blacklist"):
        updated = (
            db.query(SessionToken)
            .filter(SessionToken.token == token_value)
            .update({SessionToken.blacklisted: True}, synchronize_session=False)
        )
        db.commit()
    logger.info("Blacklisting token: %s", token_preview(token_value))
    return bool(updated)


def touch_last_used(db: Session, token_value: str) -> None:
    with store_errors(db, "token touch"):
        db.query(SessionToken).filter(SessionToken.token == token_value).update(
            {SessionToken.last_used_at: utcnow()}, synchronize_session=False
        )
        db.commit()


def purge_expired(db: Session, before: datetime) -> int:
    with store_errors(db, "token purge"):
        deleted = (
            db.query(SessionToken)
            .filter(SessionToken.expires_at <= before)
            .delete(synchronize_session=False)
        )
        db.commit()
    return deleted
