import pyotp
import pytest

from blogauth.models.user import Role
from conftest import bearer


@pytest.fixture
def admin_token(make_user, signin):
    make_user("root", "rootpass", role=Role.ADMIN)
    return signin("root", "rootpass")


def test_admin_lists_users(client, make_user, admin_token):
    make_user()

    resp = client.get("/admin/users", headers=bearer(admin_token))

    assert resp.status_code == 200
    assert {u["username"] for u in resp.json()} == {"alice", "root"}
    assert "passwordHash" not in resp.json()[0]
    assert "mfaSecret" not in resp.json()[0]


def test_admin_routes_require_admin_role(client, make_user, signin):
    make_user()
    token = signin()

    assert client.get("/admin/users", headers=bearer(token)).status_code == 403
    assert client.get("/admin/audit", headers=bearer(token)).status_code == 403


@pytest.mark.parametrize("role", ["admin", "ROLE_ADMIN", {"name": "ROLE_ADMIN"}])
def test_role_accepts_name_or_object(client, make_user, admin_token, role):
    make_user()

    resp = client.patch("/admin/users/alice", json={"role": role}, headers=bearer(admin_token))

    assert resp.status_code == 200
    assert resp.json()["role"] == "ROLE_ADMIN"


@pytest.mark.parametrize("role", [5, "superuser", {"name": "ROLE_ADMIN", "extra": 1}, ["admin"]])
def test_unrecognised_role_is_rejected(client, make_user, admin_token, role):
    make_user()

    resp = client.patch("/admin/users/alice", json={"role": role}, headers=bearer(admin_token))

    assert resp.status_code == 422
    assert set(resp.json()) == {"message"}


def test_deactivation_ends_sessions_and_blocks_sign_in(client, make_user, signin, admin_token):
    make_user()
    alice = signin()

    resp = client.patch("/admin/users/alice", json={"active": False}, headers=bearer(admin_token))

    assert resp.status_code == 200
    assert resp.json()["isActive"] is False
    assert client.get("/tokens/my-sessions", headers=bearer(alice)).status_code == 401
    again = client.post("/auth/signin", json={"username": "alice", "password": "correct"})
    assert again.status_code == 400
    assert again.json() == {"message": "Invalid username or password"}


def test_update_unknown_user_is_404(client, admin_token):
    resp = client.patch("/admin/users/nobody", json={"active": False}, headers=bearer(admin_token))

    assert resp.status_code == 404
    assert resp.json() == {"message": "User not found"}


def test_audit_trail_filters_by_user(client, make_user, signin, admin_token):
    alice = make_user()
    token = signin()
    client.post("/auth/logout", headers=bearer(token))

    resp = client.get("/admin/audit", params={"user_id": alice.id}, headers=bearer(admin_token))

    assert resp.status_code == 200
    actions = [entry["action"] for entry in resp.json()]
    assert actions[0] == "logout"
    assert "session_issued" in actions
    assert all(entry["userId"] == alice.id for entry in resp.json())


class TestMfaManagement:
    def test_enable_check_and_disable(self, client, make_user, signin):
        make_user()
        token = signin()

        status = client.get("/user/2fa-status", headers=bearer(token))
        assert status.json() == {"mfaEnabled": False}

        generated = client.post("/user/generate-2fa-secret", headers=bearer(token))
        assert generated.status_code == 200
        body = generated.json()
        assert body["otpauthUri"].startswith("otpauth://totp/")
        assert body["qrCodeImage"].startswith("data:image/png;base64,")

        code = pyotp.TOTP(body["secret"]).now()
        enabled = client.post("/user/verify-2fa", json={"secret": body["secret"], "code": code}, headers=bearer(token))
        assert enabled.status_code == 200
        assert client.get("/user/2fa-status", headers=bearer(token)).json() == {"mfaEnabled": True}

        client.post("/auth/logout", headers=bearer(token))
        pending = client.post("/auth/signin", json={"username": "alice", "password": "correct"})
        assert pending.json()["mfaRequired"] is True
        verified = client.post(
            "/auth/verify-mfa",
            json={"pendingToken": pending.json()["pendingToken"], "code": pyotp.TOTP(body["secret"]).now()},
        )
        token = verified.json()["token"]

        disabled = client.post("/user/disable-2fa", headers=bearer(token))
        assert disabled.status_code == 200
        assert client.get("/user/2fa-status", headers=bearer(token)).json() == {"mfaEnabled": False}

    def test_enable_rejects_wrong_code(self, client, make_user, signin):
        make_user()
        token = signin()
        secret = client.post("/user/generate-2fa-secret", headers=bearer(token)).json()["secret"]
        current = pyotp.TOTP(secret).now()
        wrong = f"{(int(current) + 500000) % 1000000:06d}"

        resp = client.post("/user/verify-2fa", json={"secret": secret, "code": wrong}, headers=bearer(token))

        assert resp.status_code == 400
        assert client.get("/user/2fa-status", headers=bearer(token)).json() == {"mfaEnabled": False}
