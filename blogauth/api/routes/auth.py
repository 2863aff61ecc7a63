import logging

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from blogauth.api.deps import client_meta, extract_bearer, get_auth_service, get_db
from blogauth.models.user import User
from blogauth.schemas.auth import (
    JwtResponse,
    PendingMfaResponse,
    ResetPasswordMfaRequest,
    SignInRequest,
    SignUpRequest,
    VerifyMfaRequest,
)
from blogauth.schemas.common import MessageResponse
from blogauth.services import users
from blogauth.services.audit import audit
from blogauth.services.auth import AuthOutcome, AuthService, AuthState
from blogauth.services.errors import HTTP_STATUS
from blogauth.services.token_store import ClientMeta

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


def _raise_rejection(outcome: AuthOutcome) -> None:
    raise HTTPException(status_code=HTTP_STATUS[outcome.error], detail=outcome.message)


def _jwt_response(outcome: AuthOutcome) -> JwtResponse:
    user: User = outcome.user
    return JwtResponse(
        token=outcome.token,
        id=user.id,
        username=user.username,
        email=user.email,
        roles=[user.role.value],
        expires_at=outcome.expires_at,
    )


@router.post("/signin", response_model=JwtResponse | PendingMfaResponse)
def signin(
    payload: SignInRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    client: ClientMeta = Depends(client_meta),
) -> JwtResponse | PendingMfaResponse:
    outcome = auth.sign_in(db, payload.username, payload.password, client)
    if outcome.state == AuthState.REJECTED:
        _raise_rejection(outcome)
    if outcome.state == AuthState.MFA_REQUIRED:
        return PendingMfaResponse(pending_token=outcome.pending_token, expires_at=outcome.expires_at)
    return _jwt_response(outcome)


@router.post("/verify-mfa", response_model=JwtResponse)
def verify_mfa(
    payload: VerifyMfaRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    client: ClientMeta = Depends(client_meta),
) -> JwtResponse:
    outcome = auth.verify_mfa(db, payload.pending_token, payload.code, client)
    if not outcome.ok:
        _raise_rejection(outcome)
    return _jwt_response(outcome)


@router.post("/logout", response_model=MessageResponse)
def logout(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    token = extract_bearer(authorization)
    if token is None:
        logger.warning("Logout attempt without a valid authorization header")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid authentication token found")
    error = auth.logout(db, token)
    if error is not None:
        raise HTTPException(status_code=HTTP_STATUS[error], detail="Invalid or expired token")
    return MessageResponse(message="You have been successfully logged out")


@router.post("/signup", response_model=MessageResponse)
def signup(payload: SignUpRequest, db: Session = Depends(get_db)) -> MessageResponse:
    taken = users.username_or_email_taken(db, payload.username, payload.email)
    if taken == "username":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username is already taken")
    if taken == "email":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already in use")

    user = users.create_user(db, payload.username, payload.email, payload.password)
    audit(db, action="signup", user_id=user.id)
    logger.info("User registered successfully: %s", user.username)
    return MessageResponse(message="User registered successfully")


@router.post("/reset-password-mfa", response_model=MessageResponse)
def reset_password_mfa(
    payload: ResetPasswordMfaRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    outcome = auth.reset_password_with_mfa(db, payload.username, payload.mfa_code, payload.new_password)
    if not outcome.ok:
        _raise_rejection(outcome)
    return MessageResponse(message="Password has been reset successfully")
