from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from blogauth.api.deps import get_current_user, get_db
from blogauth.models.user import User
from blogauth.schemas.common import MessageResponse
from blogauth.schemas.mfa import ConfirmMfaRequest, EnableMfaResponse, MfaStatusResponse
from blogauth.services import mfa, users
from blogauth.services.audit import audit

router = APIRouter(prefix="/user")


@router.get("/2fa-status", response_model=MfaStatusResponse)
def mfa_status(user: User = Depends(get_current_user)) -> MfaStatusResponse:
    return MfaStatusResponse(mfa_enabled=user.mfa_enabled)


@router.post("/generate-2fa-secret", response_model=EnableMfaResponse)
def generate_mfa_secret(user: User = Depends(get_current_user)) -> EnableMfaResponse:
    # Nothing is stored until the user proves possession with /verify-2fa.
    secret = mfa.generate_secret()
    return EnableMfaResponse(
        secret=secret,
        otpauth_uri=mfa.provisioning_uri(secret, user.email),
        qr_code_image=mfa.qr_code_data_uri(secret, user.email),
    )


@router.post("/verify-2fa", response_model=MessageResponse)
def enable_mfa(
    payload: ConfirmMfaRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    if not mfa.verify_code(payload.secret, payload.code):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid verification code")
    users.enable_mfa(db, user, payload.secret)
    audit(db, action="mfa_enabled", user_id=user.id)
    return MessageResponse(message="2FA enabled successfully")


@router.post("/disable-2fa", response_model=MessageResponse)
def disable_mfa(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> MessageResponse:
    users.disable_mfa(db, user)
    audit(db, action="mfa_disabled", user_id=user.id)
    return MessageResponse(message="2FA disabled successfully")
