from sqlalchemy import Column, DateTime, Integer, String

from blogauth.models.base import Base, utcnow


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    occurred_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    user_id = Column(Integer, nullable=True, index=True)
    token_id = Column(Integer, nullable=True, index=True)
    action = Column(String, nullable=False)
    detail = Column(String, nullable=True)
