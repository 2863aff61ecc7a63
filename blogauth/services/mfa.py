import base64
import hashlib
import re
from io import BytesIO

import pyotp
import qrcode

from blogauth.config import settings

TOTP_DIGITS = 6
TOTP_INTERVAL = 30

_NON_DIGITS = re.compile(r"[^0-9]")


def _totp(secret: str) -> pyotp.TOTP:
    # SHA1 / 6 digits / 30s is what authenticator apps expect.
    return pyotp.TOTP(secret, digits=TOTP_DIGITS, digest=hashlib.sha1, interval=TOTP_INTERVAL)


def generate_secret() -> str:
    return pyotp.random_base32()


def provisioning_uri(secret: str, account_label: str) -> str:
    return _totp(secret).provisioning_uri(name=account_label, issuer_name=settings.mfa_issuer)


def qr_code_data_uri(secret: str, account_label: str) -> str:
    """PNG QR code of the provisioning URI, ready for an <img src>."""
    img = qrcode.make(provisioning_uri(secret, account_label))
    buf = BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def verify_code(secret: str | None, code: str | None) -> bool:
    if not secret or not code:
        return False
    digits = _NON_DIGITS.sub("", code)
    if not digits:
        return False
    try:
        return _totp(secret).verify(digits, valid_window=1)
    except (TypeError, ValueError):
        # Malformed base32 secret.
        return False
