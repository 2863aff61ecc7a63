from fastapi import APIRouter, Depends, HTTPException, Query, status as http_status
from sqlalchemy.orm import Session

from blogauth.api.deps import get_auth_service, get_db, require_admin
from blogauth.models.user import User
from blogauth.schemas.admin import AuditEntry, UserUpdateRequest, UserView
from blogauth.services import audit as audit_log, users
from blogauth.services.auth import AuthService

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.get("/users", response_model=list[UserView])
def list_users(db: Session = Depends(get_db)) -> list[UserView]:
    return [UserView.model_validate(u) for u in users.list_users(db)]


@router.patch("/users/{username}", response_model=UserView)
def update_user(
    username: str,
    payload: UserUpdateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> UserView:
    user = users.get_by_username(db, username)
    if not user:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail="User not found")

    changes = []
    if payload.role is not None and payload.role != user.role:
        user.role = payload.role
        changes.append(f"role={payload.role.value}")
    deactivated = payload.active is False and user.is_active
    if payload.active is not None and payload.active != user.is_active:
        user.is_active = payload.active
        changes.append(f"active={payload.active}")
    users.save(db, user)

    # Users are never deleted; a deactivated user just loses every session.
    if deactivated:
        auth.invalidate_user_sessions(db, user.username, actor=admin)
    if changes:
        audit_log.audit(db, action="admin_update_user", user_id=admin.id, detail=f"{username}: {', '.join(changes)}")
    return UserView.model_validate(user)


@router.get("/audit", response_model=list[AuditEntry])
def audit_list(user_id: int | None = Query(default=None), db: Session = Depends(get_db)) -> list[AuditEntry]:
    return [AuditEntry.model_validate(log) for log in audit_log.recent(db, user_id=user_id)]
