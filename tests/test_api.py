"""End-to-end tests for the HTTP API."""

import pytest
from unittest.mock import MagicMock
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError, TimeoutError as SQLAlchemyTimeoutError

from app.api.deps import get_current_user, get_db_session
from app.config import get_settings
from app.main import app
from app.services.auth import ExternalProfile
from app.services.oauth import OAuthError, get_oauth_client

settings = get_settings()


def _register(client: TestClient, username: str = "alice", password: str = "pw1"):
    return client.post("/api/auth/register", json={"username": username, "password": password})


@pytest.fixture
def alice(client: TestClient) -> TestClient:
    """Client signed in as alice."""
    assert _register(client).status_code == 201
    return client


class TestAuthEndpoints:
    """Tests for /api/auth."""

    def test_register_sets_session_cookie(self, client: TestClient):
        response = _register(client)

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["username"] == "alice"
        assert "token" not in body
        cookie = response.headers["set-cookie"].lower()
        assert settings.SESSION_COOKIE_NAME in cookie
        assert "httponly" in cookie
        assert "samesite=lax" in cookie

    def test_register_duplicate(self, client: TestClient):
        _register(client)

        response = _register(client, password="other")

        assert response.status_code == 409

    def test_register_invalid_username(self, client: TestClient):
        assert _register(client, username="a!").status_code == 422

    def test_login_and_me(self, client: TestClient):
        _register(client)
        client.post("/api/auth/logout")

        response = client.post("/api/auth/login", json={"username": "alice", "password": "pw1"})
        assert response.status_code == 200

        me = client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["display_name"] == "alice"

    def test_login_wrong_password(self, client: TestClient):
        _register(client)
        client.post("/api/auth/logout")

        response = client.post(
            "/api/auth/login", json={"username": "alice", "password": "wrongpw"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid username or password"

    def test_logout_ends_session(self, alice: TestClient):
        assert alice.post("/api/auth/logout").status_code == 200

        assert alice.get("/api/auth/me").status_code == 401

    def test_requires_session(self, client: TestClient):
        assert client.get("/api/tasks").status_code == 401

    def test_change_password(self, alice: TestClient):
        response = alice.post(
            "/api/auth/change-password",
            json={"old_password": "pw1", "new_password": "pw-new"},
        )
        assert response.status_code == 200

        bad = alice.post(
            "/api/auth/change-password",
            json={"old_password": "pw1", "new_password": "again"},
        )
        assert bad.status_code == 400


class TestGoogleLogin:
    """Tests for the Google sign-in endpoints."""

    @pytest.fixture
    def google(self):
        fake = MagicMock()
        fake.authorization_url.side_effect = lambda state: f"https://google.test/auth?state={state}"
        fake.fetch_profile.return_value = ExternalProfile(
            subject_id="g-1", email="g@example.com", display_name="Gina"
        )
        app.dependency_overrides[get_oauth_client] = lambda: fake
        return fake

    def test_disabled(self, client: TestClient):
        app.dependency_overrides[get_oauth_client] = lambda: None

        response = client.get("/api/auth/google", follow_redirects=False)

        assert response.status_code == 503

    def test_full_flow(self, client: TestClient, google):
        start = client.get("/api/auth/google", follow_redirects=False)
        assert start.status_code == 307
        state = client.cookies.get("oauth_state")
        assert start.headers["location"].endswith(state)

        callback = client.get(
            "/api/auth/google/callback",
            params={"code": "c-1", "state": state},
            follow_redirects=False,
        )

        assert callback.status_code == 302
        assert callback.headers["location"] == settings.FRONTEND_URL
        google.fetch_profile.assert_called_once_with("c-1")

        me = client.get("/api/auth/me").json()
        assert me["username"] == "extid_g-1"
        assert me["display_name"] == "Gina"
        assert me["external_user"] is True

    def test_state_mismatch(self, client: TestClient, google):
        client.get("/api/auth/google", follow_redirects=False)

        response = client.get(
            "/api/auth/google/callback",
            params={"code": "c-1", "state": "forged"},
            follow_redirects=False,
        )

        assert response.status_code == 400
        google.fetch_profile.assert_not_called()

    def test_consent_denied(self, client: TestClient, google):
        client.get("/api/auth/google", follow_redirects=False)

        response = client.get(
            "/api/auth/google/callback",
            params={"error": "access_denied", "state": client.cookies.get("oauth_state")},
            follow_redirects=False,
        )

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith(settings.FRONTEND_URL)
        assert "error=" in location
        assert client.cookies.get("oauth_state") is None
        google.fetch_profile.assert_not_called()
        assert client.get("/api/auth/me").status_code == 401

    def test_provider_failure_returns_to_frontend(self, client: TestClient, google):
        google.fetch_profile.side_effect = OAuthError("token exchange failed")
        client.get("/api/auth/google", follow_redirects=False)

        response = client.get(
            "/api/auth/google/callback",
            params={"code": "c-1", "state": client.cookies.get("oauth_state")},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"].startswith(f"{settings.FRONTEND_URL}?error=")
        assert client.get("/api/auth/me").status_code == 401

    def test_external_account_cannot_use_password_login(self, client: TestClient, google):
        client.get("/api/auth/google", follow_redirects=False)
        client.get(
            "/api/auth/google/callback",
            params={"code": "c-1", "state": client.cookies.get("oauth_state")},
            follow_redirects=False,
        )
        client.post("/api/auth/logout")

        response = client.post(
            "/api/auth/login", json={"username": "extid_g-1", "password": "x"}
        )

        assert response.status_code == 401
        assert "Google" in response.json()["detail"]


class TestTaskEndpoints:
    """Tests for /api/tasks."""

    def test_create_and_list(self, alice: TestClient):
        created = alice.post("/api/tasks", json={"title": "Buy milk"})
        assert created.status_code == 201

        listing = alice.get("/api/tasks").json()

        assert listing["total"] == 1
        task = listing["tasks"][0]
        assert task["title"] == "Buy milk"
        assert task["order"] == 0
        assert task["status"] == "pending"
        assert task["priority"] == "medium"

    def test_create_validation(self, alice: TestClient):
        assert alice.post("/api/tasks", json={"title": ""}).status_code == 422
        assert alice.post(
            "/api/tasks", json={"title": "x", "deadline": "not-a-date"}
        ).status_code == 422

    def test_get_update_status_delete(self, alice: TestClient):
        task_id = alice.post(
            "/api/tasks", json={"title": "Draft", "deadline": "2026-11-05"}
        ).json()["id"]

        assert alice.get(f"/api/tasks/{task_id}").json()["deadline"] == "2026-11-05"

        updated = alice.patch(f"/api/tasks/{task_id}", json={"priority": "high"}).json()
        assert updated["priority"] == "high"
        assert updated["title"] == "Draft"

        done = alice.post(f"/api/tasks/{task_id}/status", json={"status": "done"})
        assert done.json()["status"] == "done"
        bad = alice.post(f"/api/tasks/{task_id}/status", json={"status": "archived"})
        assert bad.status_code == 422

        assert alice.delete(f"/api/tasks/{task_id}").status_code == 204
        assert alice.get(f"/api/tasks/{task_id}").status_code == 404

    def test_null_title_rejected(self, alice: TestClient):
        task_id = alice.post("/api/tasks", json={"title": "Keep"}).json()["id"]

        response = alice.patch(f"/api/tasks/{task_id}", json={"title": None})

        assert response.status_code == 400

    def test_reorder(self, alice: TestClient):
        ids = [alice.post("/api/tasks", json={"title": t}).json()["id"] for t in "ABC"]

        response = alice.post("/api/tasks/reorder", json={"task_ids": [ids[2], ids[0], ids[1]]})

        assert response.status_code == 200
        tasks = alice.get("/api/tasks").json()["tasks"]
        assert [t["title"] for t in tasks] == ["C", "A", "B"]
        assert [t["order"] for t in tasks] == [0, 1, 2]

    def test_reorder_unknown_task(self, alice: TestClient):
        task_id = alice.post("/api/tasks", json={"title": "A"}).json()["id"]

        response = alice.post(
            "/api/tasks/reorder", json={"task_ids": [task_id, str(uuid4())]}
        )

        assert response.status_code == 403

    def test_other_users_tasks_are_invisible(self, client: TestClient):
        _register(client, "alice")
        task_id = client.post("/api/tasks", json={"title": "secret"}).json()["id"]
        client.post("/api/auth/logout")
        _register(client, "bob", "pw2")

        assert client.get("/api/tasks").json()["tasks"] == []
        assert client.get(f"/api/tasks/{task_id}").status_code == 404
        assert client.patch(f"/api/tasks/{task_id}", json={"title": "mine"}).status_code == 404
        assert client.post(
            f"/api/tasks/{task_id}/status", json={"status": "done"}
        ).status_code == 404
        assert client.delete(f"/api/tasks/{task_id}").status_code == 404
        assert client.post(
            "/api/tasks/reorder", json={"task_ids": [task_id]}
        ).status_code == 403


class TestStoreFailure:
    """Storage outages surface as a retryable 503."""

    def test_operational_error(self, client: TestClient):
        broken = MagicMock()
        broken.exec.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        def broken_session():
            yield broken

        app.dependency_overrides[get_db_session] = broken_session
        app.dependency_overrides[get_current_user] = lambda: MagicMock(id=uuid4())

        response = client.get("/api/tasks")

        assert response.status_code == 503
        assert response.headers["retry-after"] == "1"

    def test_pool_timeout(self, client: TestClient):
        exhausted = MagicMock()
        timeout = SQLAlchemyTimeoutError("QueuePool limit reached, connection timed out")
        exhausted.exec.side_effect = timeout
        exhausted.get.side_effect = timeout

        def exhausted_session():
            yield exhausted

        app.dependency_overrides[get_db_session] = exhausted_session

        response = client.post(
            "/api/auth/login", json={"username": "alice", "password": "pw1"}
        )

        assert response.status_code == 503
        assert response.headers["retry-after"] == "1"


def test_health(client: TestClient):
    assert client.get("/health").json() == {"status": "healthy"}
