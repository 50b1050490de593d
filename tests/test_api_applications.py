# Tests for owner auth and the applications API.
# Created: 2026-10-12

import pytest


@pytest.fixture
def other_headers(other_user, users):
    token, _ = users.issue_session(other_user)
    return {"Authorization": f"Bearer {token}"}


class TestOwnerAuth:
    def test_register_and_me(self, client):
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Linus", "email": "linus@example.com", "password": "penguins!"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["user"]["email"] == "linus@example.com"
        assert "password_hash" not in data["user"]

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.status_code == 200
        assert me.json()["applications_count"] == 0

    def test_register_validation(self, client, owner):
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "", "email": "ada@example.com", "password": "short"},
        )
        assert resp.status_code == 422
        assert set(resp.json()["errors"]) == {"name", "email", "password"}

    def test_register_missing_body_fields(self, client):
        resp = client.post("/api/v1/auth/register", json={"name": "x"})
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

    def test_login(self, client, owner):
        resp = client.post(
            "/api/v1/auth/login", json={"email": "ADA@example.com", "password": "correct-horse"}
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == owner.id

    def test_login_bad_password(self, client, owner):
        resp = client.post(
            "/api/v1/auth/login", json={"email": "ada@example.com", "password": "wrong-horse"}
        )
        assert resp.status_code == 401

    def test_me_requires_session(self, client):
        assert client.get("/api/v1/auth/me").status_code == 401
        resp = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer a:1:bad"})
        assert resp.status_code == 401

    def test_me_counts(self, client, session_headers, application, token_service, owner):
        token_service.issue(application, ["read"], owner, None)
        data = client.get("/api/v1/auth/me", headers=session_headers).json()
        assert data["applications_count"] == 1
        assert data["active_tokens_count"] == 1


class TestApplicationsAPI:
    def test_create_shows_secret_once(self, client, session_headers, registry):
        resp = client.post(
            "/api/v1/applications",
            json={
                "name": "Dashboard",
                "allowed_scopes": ["read", "write"],
                "callback_urls": ["https://example.com/cb"],
            },
            headers=session_headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        secret = data["client_secret"]
        assert len(secret) == 64
        app_id = data["application"]["id"]
        assert "client_secret" not in data["application"]
        assert "client_secret_hash" not in data["application"]

        shown = client.get(f"/api/v1/applications/{app_id}", headers=session_headers).json()
        assert secret not in str(shown)
        assert registry.authenticate_client(data["application"]["client_id"], secret)

    def test_create_validation(self, client, session_headers):
        resp = client.post(
            "/api/v1/applications",
            json={"name": "Bad", "callback_urls": ["http://192.168.0.1/cb"], "rate_limit": 0},
            headers=session_headers,
        )
        assert resp.status_code == 422
        assert {"callback_urls.0", "rate_limit"} <= set(resp.json()["errors"])

    def test_requires_session(self, client):
        assert client.get("/api/v1/applications").status_code == 401

    def test_list_paginated(self, client, session_headers, registry, owner):
        for i in range(12):
            registry.create(owner, f"App {i}")
        data = client.get("/api/v1/applications?page=2", headers=session_headers).json()
        assert data["total"] == 12
        assert data["current_page"] == 2
        assert data["last_page"] == 2
        assert data["per_page"] == 10
        assert len(data["data"]) == 2

    def test_other_users_application_is_403(self, client, application, other_headers):
        for method, path in [
            ("get", f"/api/v1/applications/{application.id}"),
            ("delete", f"/api/v1/applications/{application.id}"),
            ("post", f"/api/v1/applications/{application.id}/regenerate-secret"),
            ("patch", f"/api/v1/applications/{application.id}/toggle-status"),
            ("get", f"/api/v1/applications/{application.id}/tokens"),
        ]:
            resp = client.request(method.upper(), path, headers=other_headers)
            assert resp.status_code == 403, path
            assert resp.json()["error"] == "not_found"

    def test_missing_application_is_403(self, client, session_headers):
        resp = client.get("/api/v1/applications/missing", headers=session_headers)
        assert resp.status_code == 403

    def test_update(self, client, session_headers, application):
        resp = client.patch(
            f"/api/v1/applications/{application.id}",
            json={"name": "Renamed", "rate_limit": 50},
            headers=session_headers,
        )
        assert resp.status_code == 200
        data = resp.json()["application"]
        assert data["name"] == "Renamed"
        assert data["rate_limit"] == 50
        assert data["allowed_scopes"] == ["read", "write"]

    def test_regenerate_secret(self, client, session_headers, app_and_secret, registry):
        application, old_secret = app_and_secret
        resp = client.post(
            f"/api/v1/applications/{application.id}/regenerate-secret", headers=session_headers
        )
        assert resp.status_code == 200
        new_secret = resp.json()["client_secret"]
        assert new_secret != old_secret
        assert registry.authenticate_client(application.client_id, new_secret)

    def test_toggle_status(self, client, session_headers, application):
        path = f"/api/v1/applications/{application.id}/toggle-status"
        resp = client.patch(path, headers=session_headers)
        assert resp.json() == {
            "message": "Application deactivated successfully.",
            "is_active": False,
        }
        assert client.patch(path, headers=session_headers).json()["is_active"] is True

    def test_delete_cascades(self, client, session_headers, application, token_service, owner):
        plaintext, _ = token_service.issue(application, ["read"], owner, None)
        resp = client.delete(f"/api/v1/applications/{application.id}", headers=session_headers)
        assert resp.status_code == 200
        verify = client.post("/api/v1/oauth/verify", json={"token": plaintext})
        assert verify.status_code == 401


class TestOwnerSessions:
    def test_logout_ends_session(self, client, session_headers):
        assert client.post("/api/v1/auth/logout", headers=session_headers).status_code == 200
        resp = client.get("/api/v1/auth/me", headers=session_headers)
        assert resp.status_code == 401
        assert resp.json()["error_description"] == "Session expired or invalid"

    def test_refresh_rotates_session(self, client, session_headers):
        resp = client.post("/api/v1/auth/token/refresh", headers=session_headers)
        assert resp.status_code == 200
        fresh = {"Authorization": f"Bearer {resp.json()['token']}"}
        assert client.get("/api/v1/auth/me", headers=fresh).status_code == 200
        assert client.get("/api/v1/auth/me", headers=session_headers).status_code == 401

    def test_logout_requires_session(self, client):
        assert client.post("/api/v1/auth/logout").status_code == 401

    def test_login_with_malformed_email(self, client):
        resp = client.post(
            "/api/v1/auth/login", json={"email": "not-an-email", "password": "whatever1"}
        )
        assert resp.status_code == 422
        assert "email" in resp.json()["errors"]

    def test_register_with_malformed_email(self, client):
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Linus", "email": "linus@", "password": "penguins!"},
        )
        assert resp.status_code == 422
        assert "email" in resp.json()["errors"]


class TestProfile:
    def test_update_name_and_email(self, client, session_headers, owner):
        resp = client.put(
            "/api/v1/auth/profile",
            headers=session_headers,
            json={"name": "Augusta Ada", "email": "augusta@example.com"},
        )
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["name"] == "Augusta Ada"
        assert user["email"] == "augusta@example.com"
        assert user["applications_count"] == 0

    def test_email_taken_by_someone_else(self, client, session_headers, other_user):
        resp = client.put(
            "/api/v1/auth/profile", headers=session_headers, json={"email": other_user.email}
        )
        assert resp.status_code == 422
        assert resp.json()["errors"]["email"] == ["The email has already been taken."]

    def test_password_change_needs_confirmation(self, client, session_headers):
        resp = client.put(
            "/api/v1/auth/profile", headers=session_headers, json={"password": "new-password"}
        )
        assert resp.status_code == 422
        assert "password" in resp.json()["errors"]

    def test_password_change(self, client, session_headers, owner):
        resp = client.put(
            "/api/v1/auth/profile",
            headers=session_headers,
            json={"password": "new-password", "password_confirmation": "new-password"},
        )
        assert resp.status_code == 200
        old = client.post(
            "/api/v1/auth/login", json={"email": owner.email, "password": "correct-horse"}
        )
        assert old.status_code == 401
        new = client.post(
            "/api/v1/auth/login", json={"email": owner.email, "password": "new-password"}
        )
        assert new.status_code == 200


class TestDeleteAccount:
    def _delete(self, client, headers, **body):
        return client.request("DELETE", "/api/v1/auth/account", headers=headers, json=body)

    def test_requires_confirmation(self, client, session_headers):
        resp = self._delete(client, session_headers, password="correct-horse", confirmation="yes")
        assert resp.status_code == 422
        assert "confirmation" in resp.json()["errors"]

    def test_wrong_password(self, client, session_headers, store, owner):
        resp = self._delete(
            client, session_headers, password="wrong-horse", confirmation="DELETE_MY_ACCOUNT"
        )
        assert resp.status_code == 401
        assert store.get_user(owner.id) is not None

    def test_deletes_user_applications_and_tokens(
        self, client, session_headers, store, owner, application, token_service
    ):
        plaintext, _ = token_service.issue(application, ["read"], owner, None)
        resp = self._delete(
            client, session_headers, password="correct-horse", confirmation="DELETE_MY_ACCOUNT"
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["deleted_user"]["id"] == owner.id
        assert data["tokens_revoked"] == 1

        assert store.get_user(owner.id) is None
        assert store.get_application(application.id) is None
        assert store.list_tokens(user_id=owner.id) == []
        protected = client.get(
            "/api/v1/protected/user", headers={"Authorization": f"Bearer {plaintext}"}
        )
        assert protected.status_code == 401
        assert client.get("/api/v1/auth/me", headers=session_headers).status_code == 401
