from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SAEnum, Integer, String

from blogauth.models.base import Base, utcnow


class Role(str, Enum):
    USER = "ROLE_USER"
    MODERATOR = "ROLE_MODERATOR"
    ADMIN = "ROLE_ADMIN"

    @classmethod
    def from_name(cls, name: str) -> "Role":
        """Accept both ``"admin"`` and ``"ROLE_ADMIN"`` spellings."""
        key = name.strip().upper()
        if not key.startswith("ROLE_"):
            key = "ROLE_" + key
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown role: {name}") from None


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(120), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(SAEnum(Role), default=Role.USER, nullable=False)

    # mfa_secret is set exactly when mfa_enabled is true
    mfa_enabled = Column(Boolean, default=False, nullable=False)
    mfa_secret = Column(String, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
