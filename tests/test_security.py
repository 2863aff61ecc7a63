"""Token issuer and password hashing."""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from jose import jwt

from blogauth.config import settings
from blogauth.services import security
from blogauth.services.errors import InvalidTokenError


def _user(username="alice"):
    return SimpleNamespace(username=username)


def test_session_token_round_trip():
    issued = security.issue_session_token(_user())

    assert security.parse_username(issued.token) == "alice"
    assert security.parse_expiry(issued.token) == issued.expires_at
    assert issued.expires_at > datetime.now(timezone.utc)


def test_session_and_pending_tokens_have_different_lifetimes():
    session = security.issue_session_token(_user())
    pending = security.issue_pending_mfa_token("alice")

    assert pending.expires_at < session.expires_at
    assert pending.expires_at - datetime.now(timezone.utc) <= settings.pending_mfa_token_ttl()


def test_tokens_issued_back_to_back_are_distinct():
    first = security.issue_session_token(_user())
    second = security.issue_session_token(_user())

    assert first.token != second.token


def test_expired_token_is_rejected():
    expired = security._create_token({"sub": "alice"}, timedelta(seconds=-5))

    with pytest.raises(InvalidTokenError):
        security.parse_username(expired.token)


def test_token_signed_with_another_key_is_rejected():
    forged = jwt.encode(
        {"sub": "alice", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "some-other-secret",
        algorithm=settings.jwt_algorithm,
    )

    with pytest.raises(InvalidTokenError):
        security.parse_username(forged)


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
def test_malformed_token_is_rejected(garbage):
    with pytest.raises(InvalidTokenError):
        security.parse_expiry(garbage)


def test_token_without_subject_is_rejected():
    issued = security._create_token({}, timedelta(minutes=5))

    with pytest.raises(InvalidTokenError):
        security.decode_token(issued.token)


def test_session_token_from_pending_token_keeps_subject():
    pending = security.issue_pending_mfa_token("bob")

    issued = security.issue_token_from_pending_token(pending.token)

    assert security.parse_username(issued.token) == "bob"
    assert issued.expires_at > pending.expires_at


def test_expired_pending_token_cannot_be_exchanged():
    pending = security._create_token({"sub": "bob"}, timedelta(seconds=-1))

    with pytest.raises(InvalidTokenError):
        security.issue_token_from_pending_token(pending.token)


def test_password_hash_verifies_only_the_original():
    hashed = security.hash_password("correct")

    assert hashed != "correct"
    assert security.verify_password("correct", hashed)
    assert not security.verify_password("wrong", hashed)


def test_token_preview_truncates():
    assert security.token_preview("abcdefghijklmnop") == "abcdefghij..."
