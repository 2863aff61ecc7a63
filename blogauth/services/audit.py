import logging

from sqlalchemy.orm import Session

from blogauth.models.audit import AuditLog
from blogauth.services.errors import StoreUnavailable, store_errors

logger = logging.getLogger(__name__)


def audit(session: Session, action: str, user_id: int | None = None, token_id: int | None = None, detail: str | None = None) -> None:
    entry = AuditLog(action=action, user_id=user_id, token_id=token_id, detail=detail)
    try:
        with store_errors(session, "audit write"):
            session.add(entry)
            session.commit()
    except StoreUnavailable:
        # The audited action already happened; a lost audit row must not undo it.
        logger.warning("Audit entry %s for user_id=%s was not persisted", action, user_id)


def recent(session: Session, user_id: int | None = None, limit: int = 200) -> list[AuditLog]:
    with store_errors(session, "audit list"):
        query = session.query(AuditLog)
        if user_id is not None:
            query = query.filter(AuditLog.user_id == user_id)
        return query.order_by(AuditLog.occurred_at.desc(), AuditLog.id.desc()).limit(limit).all()
