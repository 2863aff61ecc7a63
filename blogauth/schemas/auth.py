from datetime import datetime

from pydantic import EmailStr, Field

from blogauth.schemas.common import CamelModel


class SignInRequest(CamelModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1)


class SignUpRequest(CamelModel):
    username: str = Field(min_length=3, max_length=20)
    email: EmailStr
    password: str = Field(min_length=6, max_length=40)


class JwtResponse(CamelModel):
    token: str
    type: str = "Bearer"
    id: int
    username: str
    email: str
    roles: list[str]
    expires_at: datetime


class PendingMfaResponse(CamelModel):
    pending_token: str
    mfa_required: bool = True
    expires_at: datetime


class VerifyMfaRequest(CamelModel):
    pending_token: str
    code: str | None = None


class ResetPasswordMfaRequest(CamelModel):
    username: str
    mfa_code: str
    new_password: str = Field(min_length=6, max_length=40)
