from pydantic import Field

from blogauth.schemas.common import CamelModel


class MfaStatusResponse(CamelModel):
    mfa_enabled: bool


class EnableMfaResponse(CamelModel):
    secret: str
    otpauth_uri: str
    qr_code_image: str


class ConfirmMfaRequest(CamelModel):
    secret: str = Field(min_length=16)
    code: str
