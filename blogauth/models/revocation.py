from sqlalchemy import Column, DateTime, Integer, String

from blogauth.models.base import Base, utcnow


class RevocationEntry(Base):
    __tablename__ = "jwt_blacklist"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(2000), nullable=False, unique=True)
    user_id = Column(Integer, nullable=True, index=True)
    reason = Column(String(100), nullable=True)
    blacklisted_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
