from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String

from blogauth.models.base import Base, utcnow


class SessionToken(Base):
    __tablename__ = "user_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # No foreign key: tokens outlive deactivated users and must still be rejected.
    user_id = Column(Integer, nullable=False, index=True)
    username = Column(String(50), nullable=False, index=True)
    token = Column(String(2000), nullable=False, unique=True)
    blacklisted = Column(Boolean, default=False, nullable=False)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_user_tokens_username_blacklisted", "username", "blacklisted"),
    )
