from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from blogauth.api.deps import CurrentSession, get_auth_service, get_current_session, get_db, require_admin
from blogauth.models.session_token import SessionToken
from blogauth.models.user import User
from blogauth.schemas.tokens import CleanupResponse, InvalidatedResponse, SessionView
from blogauth.services import token_store
from blogauth.services.audit import audit
from blogauth.services.auth import AuthService
from blogauth.services.sweeper import sweep_expired

router = APIRouter(prefix="/tokens")


def _session_view(row: SessionToken, current_token: str | None = None) -> SessionView:
    # The raw token value never leaves the server.
    return SessionView(
        id=row.id,
        username=row.username,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        created_at=row.created_at,
        expires_at=row.expires_at,
        last_used_at=row.last_used_at,
        current=current_token is not None and row.token == current_token,
    )


@router.get("/my-sessions", response_model=list[SessionView])
def my_sessions(
    current: CurrentSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> list[SessionView]:
    rows = token_store.active_for_user(db, current.user.username)
    return [_session_view(row, current.token) for row in rows]


@router.post("/invalidate-other-sessions", response_model=InvalidatedResponse)
def invalidate_other_sessions(
    current: CurrentSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> InvalidatedResponse:
    count = auth.invalidate_other_sessions(db, current.user, current.token)
    return InvalidatedResponse(message="All other sessions have been invalidated", invalidated=count)


@router.get("/all", response_model=list[SessionView])
def all_sessions(_: User = Depends(require_admin), db: Session = Depends(get_db)) -> list[SessionView]:
    return [_session_view(row) for row in token_store.all_active(db)]


@router.post("/invalidate/{username}", response_model=InvalidatedResponse)
def invalidate_user_sessions(
    username: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> InvalidatedResponse:
    count = auth.invalidate_user_sessions(db, username, actor=admin)
    return InvalidatedResponse(message=f"All sessions for user {username} have been invalidated", invalidated=count)


@router.post("/cleanup", response_model=CleanupResponse)
def run_token_cleanup(admin: User = Depends(require_admin), db: Session = Depends(get_db)) -> CleanupResponse:
    result = sweep_expired(db)
    audit(db, action="token_cleanup", user_id=admin.id, detail=f"{result.tokens_removed}/{result.revocations_removed}")
    return CleanupResponse(
        message="Token cleanup completed",
        tokens_removed=result.tokens_removed,
        revocations_removed=result.revocations_removed,
    )
