from .user import Role, User
from .session_token import SessionToken
from .revocation import RevocationEntry
from .audit import AuditLog

__all__ = ["Role", "User", "SessionToken", "RevocationEntry", "AuditLog"]
