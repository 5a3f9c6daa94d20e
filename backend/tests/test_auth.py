# Overview: Pytest coverage for signup, login, token refresh and staff creation.

from datetime import timedelta

import pytest

from retailhub.models import SessionToken, User
from retailhub.services import session_service
from retailhub.time_utils import utcnow


PASSWORD = "Password123!"

SIGNUP = {
    "email": "Founder@Example.com",
    "username": "founder",
    "fullname": "Shop Founder",
    "password": PASSWORD,
}


class TestSignup:

    def test_signup_creates_admin_owner(self, client, db_session):
        resp = client.post("/api/users", json=SIGNUP)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["role"] == "ADMIN"
        assert body["manager_id"] is None
        assert body["email"] == "founder@example.com"
        assert "password" not in body
        assert "password_hash" not in body

    def test_password_is_hashed(self, client, db_session):
        client.post("/api/users", json=SIGNUP)
        user = db_session.query(User).filter_by(username="founder").one()
        assert user.password_hash != PASSWORD
        assert user.password_hash.startswith("$2")

    @pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "NoDigitsHere!", "NoSpecial123"])
    def test_weak_password_rejected(self, client, db_session, password):
        resp = client.post("/api/users", json={**SIGNUP, "password": password})
        assert resp.status_code == 400
        assert db_session.query(User).count() == 0

    def test_missing_fields_rejected(self, client, db_session):
        resp = client.post("/api/users", json={"email": "a@b.com", "password": PASSWORD})
        assert resp.status_code == 400
        assert "Missing required fields" in resp.get_json()["error"]

    def test_role_cannot_be_chosen_at_signup(self, client, db_session):
        resp = client.post("/api/users", json={**SIGNUP, "role": "CASHIER"})
        assert resp.status_code == 400

    def test_duplicate_email_is_conflict(self, client, db_session):
        assert client.post("/api/users", json=SIGNUP).status_code == 201
        resp = client.post("/api/users", json={**SIGNUP, "username": "someone_else"})
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "A user with this email already exists."

    def test_duplicate_username_is_conflict(self, client, db_session):
        assert client.post("/api/users", json=SIGNUP).status_code == 201
        resp = client.post("/api/users", json={**SIGNUP, "email": "other@example.com"})
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "A user with this username already exists."


class TestLogin:

    def test_login_returns_tokens(self, login, admin):
        resp = login(admin.email)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["id"] == admin.id
        assert body["token"]
        assert body["refresh_token"]
        assert body["token"] != body["refresh_token"]

    def test_login_by_username(self, login, admin):
        assert login(admin.username).status_code == 200

    def test_wrong_password(self, login, admin):
        resp = login(admin.email, "WrongPassword1!")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"

    def test_unknown_email(self, login, db_session):
        assert login("nobody@retailhub.test").status_code == 401

    def test_missing_credentials(self, client, db_session):
        assert client.post("/api/users/login", json={"email": "x@y.z"}).status_code == 400

    def test_inactive_user_cannot_login(self, login, admin, db_session):
        admin.is_active = False
        db_session.commit()
        assert login(admin.email).status_code == 401

    def test_only_hashes_are_stored(self, login, admin, db_session):
        body = login(admin.email).get_json()
        hashes = {row.token_hash for row in db_session.query(SessionToken).all()}
        assert body["token"] not in hashes
        assert session_service.hash_token(body["token"]) in hashes

    def test_access_token_authenticates(self, client, login, admin):
        token = login(admin.email).get_json()["token"]
        resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.get_json()["id"] == admin.id


class TestTokens:

    def test_missing_token(self, client, db_session):
        resp = client.get("/api/users/me")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Authentication required"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_expired_token(self, client, admin, db_session):
        tokens = session_service.issue_tokens(admin.id)
        row = db_session.query(SessionToken).filter_by(
            token_hash=session_service.hash_token(tokens.access_token)
        ).one()
        row.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {tokens.access_token}"})
        assert resp.status_code == 401

    def test_access_token_uses_configured_lifetime(self, app, admin, db_session):
        tokens = session_service.issue_tokens(admin.id)
        row = db_session.query(SessionToken).filter_by(
            token_hash=session_service.hash_token(tokens.access_token)
        ).one()
        lifetime = row.expires_at - row.created_at
        assert lifetime == timedelta(minutes=app.config["ACCESS_TOKEN_TTL_MINUTES"])

    def test_refresh_token_is_not_an_access_token(self, client, login, admin):
        refresh = login(admin.email).get_json()["refresh_token"]
        resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {refresh}"})
        assert resp.status_code == 401

    def test_refresh_issues_new_access_token(self, client, login, admin):
        body = login(admin.email).get_json()
        resp = client.post("/api/users/refresh", json={"refresh_token": body["refresh_token"]})
        assert resp.status_code == 200
        new_token = resp.get_json()["token"]
        assert new_token != body["token"]
        me = client.get("/api/users/me", headers={"Authorization": f"Bearer {new_token}"})
        assert me.status_code == 200

    def test_refresh_rejects_access_token(self, client, login, admin):
        access = login(admin.email).get_json()["token"]
        resp = client.post("/api/users/refresh", json={"refresh_token": access})
        assert resp.status_code == 401

    def test_logout_revokes_tokens(self, client, login, admin):
        body = login(admin.email).get_json()
        headers = {"Authorization": f"Bearer {body['token']}"}

        resp = client.post("/api/users/logout", json={"refresh_token": body["refresh_token"]}, headers=headers)
        assert resp.status_code == 200

        assert client.get("/api/users/me", headers=headers).status_code == 401
        refresh = client.post("/api/users/refresh", json={"refresh_token": body["refresh_token"]})
        assert refresh.status_code == 401

    def test_cleanup_removes_old_revoked_tokens(self, admin, db_session):
        tokens = session_service.issue_tokens(admin.id)
        session_service.revoke_session(tokens.access_token)
        row = db_session.query(SessionToken).filter_by(
            token_hash=session_service.hash_token(tokens.access_token)
        ).one()
        row.created_at = utcnow() - timedelta(days=31)
        db_session.commit()

        assert session_service.cleanup_expired_sessions() == 1
        assert db_session.query(SessionToken).count() == 1


class TestStaffCreation:

    def _payload(self, role, username="new_staff"):
        return {
            "email": f"{username}@retailhub.test",
            "username": username,
            "fullname": "New Staff",
            "password": PASSWORD,
            "role": role,
        }

    def test_admin_creates_manager(self, client, admin, admin_headers):
        resp = client.post("/api/users/staff", json=self._payload("MANAGER"), headers=admin_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["role"] == "MANAGER"
        assert body["manager_id"] == admin.id

    def test_manager_creates_cashier(self, client, manager, manager_headers):
        resp = client.post("/api/users/staff", json=self._payload("CASHIER"), headers=manager_headers)
        assert resp.status_code == 201
        assert resp.get_json()["manager_id"] == manager.id

    def test_manager_cannot_create_admin(self, client, manager_headers, db_session):
        resp = client.post("/api/users/staff", json=self._payload("ADMIN"), headers=manager_headers)
        assert resp.status_code == 403
        assert db_session.query(User).filter_by(username="new_staff").first() is None

    def test_admin_cannot_create_admin_as_staff(self, client, admin_headers):
        resp = client.post("/api/users/staff", json=self._payload("ADMIN"), headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_role_rejected(self, client, admin_headers):
        resp = client.post("/api/users/staff", json=self._payload("JANITOR"), headers=admin_headers)
        assert resp.status_code == 400

    def test_cashier_cannot_create_staff(self, client, cashier_headers):
        resp = client.post("/api/users/staff", json=self._payload("CASHIER"), headers=cashier_headers)
        assert resp.status_code == 403
