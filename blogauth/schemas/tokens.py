from datetime import datetime

from blogauth.schemas.common import CamelModel

REDACTED = "[REDACTED]"


class SessionView(CamelModel):
    id: int
    username: str
    token: str = REDACTED
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
    expires_at: datetime
    last_used_at: datetime | None = None
    current: bool = False


class InvalidatedResponse(CamelModel):
    message: str
    invalidated: int


class CleanupResponse(CamelModel):
    message: str
    tokens_removed: int
    revocations_removed: int
