"""Authentication orchestrator.

Sign-in is a small state machine::

    AwaitingCredentials --password ok, no MFA--> Authenticated
    AwaitingCredentials --password ok, MFA on---> AwaitingMfaCode
    AwaitingMfaCode     --code ok---------------> Authenticated
    any state           --failure---------------> Rejected

Each step returns an ``AuthOutcome`` instead of raising, so callers see every
transition explicitly. Only store faults (``StoreUnavailable``) propagate.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.orm import Session

from blogauth.config import settings
from blogauth.models.user import User
from blogauth.services import mfa, revocation, security, token_store, users
from blogauth.services.audit import audit
from blogauth.services.errors import MESSAGES, AuthError, InvalidTokenError, StoreUnavailable
from blogauth.services.login_attempts import LoginAttemptLimiter
from blogauth.services.token_store import ClientMeta

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    AUTHENTICATED = "AUTHENTICATED"
    MFA_REQUIRED = "MFA_REQUIRED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class AuthOutcome:
    state: AuthState
    user: User | None = None
    token: str | None = None
    expires_at: datetime | None = None
    pending_token: str | None = None
    error: AuthError | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.state != AuthState.REJECTED

    @classmethod
    def rejected(cls, error: AuthError, message: str | None = None) -> "AuthOutcome":
        return cls(state=AuthState.REJECTED, error=error, message=message or MESSAGES[error])


@dataclass(frozen=True)
class TokenCheck:
    ok: bool
    user: User | None = None
    error: AuthError | None = None

    @property
    def message(self) -> str | None:
        return MESSAGES[self.error] if self.error else None


def _locked_message(minutes: int) -> str:
    return f"Account is locked. Try again in {minutes} minutes."


class AuthService:
    def __init__(self, limiter: LoginAttemptLimiter) -> None:
        self.limiter = limiter

    # -- sign-in ---------------------------------------------------------

    def sign_in(self, db: Session, username: str, password: str, client: ClientMeta | None = None) -> AuthOutcome:
        lock = self.limiter.before_attempt(username)
        if lock.locked:
            logger.info("Rejected sign-in for locked user %s", username)
            return AuthOutcome.rejected(AuthError.ACCOUNT_LOCKED, _locked_message(lock.minutes_remaining))

        logger.info("Authentication attempt for user: %s", username)
        user = users.get_by_username(db, username)
        if user is None:
            security.dummy_verify()
            return self._credential_failure(db, username, None)
        if not security.verify_password(password, user.password_hash) or not user.is_active:
            return self._credential_failure(db, username, user)

        self.limiter.record_success(username)
        users.reset_failed_logins(db, user)

        if user.mfa_enabled:
            pending = security.issue_pending_mfa_token(user.username)
            audit(db, action="signin_mfa_pending", user_id=user.id, detail="Pending MFA token issued")
            return AuthOutcome(
                state=AuthState.MFA_REQUIRED,
                user=user,
                pending_token=pending.token,
                expires_at=pending.expires_at,
            )

        issued = self._issue_session(db, user, security.issue_session_token, user, client)
        logger.info("Authentication successful for user: %s", username)
        return AuthOutcome(state=AuthState.AUTHENTICATED, user=user, token=issued.token, expires_at=issued.expires_at)

    def _credential_failure(self, db: Session, username: str, user: User | None) -> AuthOutcome:
        if user is not None:
            users.record_failed_login(db, user)
        status = self.limiter.record_failure(username)
        if status.locked:
            audit(db, action="signin_locked", user_id=user.id if user else None, detail=username)
            return AuthOutcome.rejected(
                AuthError.ACCOUNT_LOCKED,
                f"Account is locked due to too many failed attempts. Try again in {status.minutes_remaining} minutes.",
            )
        logger.warning("Authentication failed for user: %s (%d failed attempts)", username, self.limiter.attempts(username))
        return AuthOutcome.rejected(AuthError.INVALID_CREDENTIALS)

    def verify_mfa(self, db: Session, pending_token: str, code: str | None, client: ClientMeta | None = None) -> AuthOutcome:
        try:
            username = security.parse_username(pending_token)
        except InvalidTokenError as exc:
            logger.info("Rejected pending MFA token: %s", exc)
            return AuthOutcome.rejected(AuthError.INVALID_OR_EXPIRED_TOKEN)

        user = users.get_by_username(db, username)
        if user is None or not user.is_active:
            return AuthOutcome.rejected(AuthError.INVALID_OR_EXPIRED_TOKEN)

        # A wrong code leaves the pending token usable until it expires.
        if not user.mfa_enabled or not mfa.verify_code(user.mfa_secret, code):
            logger.warning("Invalid MFA code for user: %s", username)
            audit(db, action="mfa_failed", user_id=user.id)
            return AuthOutcome.rejected(AuthError.INVALID_MFA_CODE)

        try:
            issued = self._issue_session(db, user, security.issue_token_from_pending_token, pending_token, client)
        except InvalidTokenError:
            # Pending token expired between parse and exchange.
            return AuthOutcome.rejected(AuthError.INVALID_OR_EXPIRED_TOKEN)
        logger.info("MFA validation passed for user: %s", username)
        return AuthOutcome(state=AuthState.AUTHENTICATED, user=user, token=issued.token, expires_at=issued.expires_at)

    def _issue_session(self, db: Session, user: User, issue, source, client: ClientMeta | None) -> security.IssuedToken:
        # Blacklist before issuing: a stale "logout all" can never hit the new token.
        token_store.blacklist_all_for_user(db, user.username)
        issued = issue(source)
        token_id = None
        try:
            row = token_store.create(db, user.id, user.username, issued.token, settings.session_token_ttl(), client)
            token_id = row.id
        except StoreUnavailable:
            logger.error("Error storing token for user %s; returning it unstored", user.username)
        audit(db, action="session_issued", user_id=user.id, token_id=token_id)
        return issued

    # -- request-time validation ----------------------------------------

    def validate_token(self, db: Session, token: str) -> TokenCheck:
        if revocation.contains(db, token):
            logger.warning("Token %s is revoked and cannot be used anymore", security.token_preview(token))
            return TokenCheck(ok=False, error=AuthError.TOKEN_REVOKED)

        if not token_store.is_valid(db, token):
            logger.warning("Token %s is not an active session token", security.token_preview(token))
            return TokenCheck(ok=False, error=AuthError.INVALID_OR_EXPIRED_TOKEN)

        try:
            username = security.parse_username(token)
        except InvalidTokenError as exc:
            logger.warning("Invalid JWT token: %s", exc)
            return TokenCheck(ok=False, error=AuthError.INVALID_OR_EXPIRED_TOKEN)

        user = users.get_by_username(db, username)
        if user is None or not user.is_active:
            logger.warning("Token presented for missing or inactive user %s", username)
            return TokenCheck(ok=False, error=AuthError.ACCOUNT_DISABLED)
        return TokenCheck(ok=True, user=user)

    # -- revocation -------------------------------------------------------

    def logout(self, db: Session, token: str, reason: str = "user logout") -> AuthError | None:
        if revocation.contains(db, token):
            logger.info("Token %s already revoked", security.token_preview(token))
            return AuthError.TOKEN_REVOKED
        try:
            username = security.parse_username(token)
            expires_at = security.parse_expiry(token)
        except InvalidTokenError as exc:
            logger.error("Cannot blacklist invalid token: %s", exc)
            return AuthError.INVALID_OR_EXPIRED_TOKEN

        user = users.get_by_username(db, username)
        user_id = user.id if user else None
        revocation.add(db, token, expires_at, user_id=user_id, reason=reason)
        try:
            token_store.blacklist_one(db, token)
        except StoreUnavailable:
            logger.warning("Error blacklisting token in token store for user %s", username)
        audit(db, action="logout", user_id=user_id, detail=reason)
        logger.info("Token for user %s has been blacklisted. Reason: %s", username, reason)
        return None

    def invalidate_other_sessions(self, db: Session, user: User, current_token: str) -> int:
        count = 0
        for row in token_store.active_for_user(db, user.username):
            if row.token != current_token:
                token_store.blacklist_one(db, row.token)
                count += 1
        audit(db, action="invalidate_other_sessions", user_id=user.id, detail=f"{count} sessions")
        return count

    def invalidate_user_sessions(self, db: Session, username: str, actor: User | None = None) -> int:
        count = token_store.blacklist_all_for_user(db, username)
        audit(
            db,
            action="invalidate_user_sessions",
            user_id=actor.id if actor else None,
            detail=f"{username}: {count} sessions",
        )
        return count

    # -- password reset ---------------------------------------------------

    def reset_password_with_mfa(self, db: Session, username: str, code: str, new_password: str) -> AuthOutcome:
        lock = self.limiter.before_attempt(username)
        if lock.locked:
            return AuthOutcome.rejected(AuthError.ACCOUNT_LOCKED, _locked_message(lock.minutes_remaining))

        user = users.get_by_username(db, username)
        if user is None or not user.is_active or not user.mfa_enabled or not mfa.verify_code(user.mfa_secret, code):
            status = self.limiter.record_failure(username)
            if status.locked:
                return AuthOutcome.rejected(AuthError.ACCOUNT_LOCKED, _locked_message(status.minutes_remaining))
            return AuthOutcome.rejected(AuthError.INVALID_MFA_CODE, "Invalid MFA code")

        self.limiter.record_success(username)
        users.update_password(db, user, new_password)
        token_store.blacklist_all_for_user(db, user.username)
        audit(db, action="password_reset_mfa", user_id=user.id)
        return AuthOutcome(state=AuthState.AUTHENTICATED, user=user)
