"""Integration tests for registration, login, refresh and password routes."""

import jwt
from fastapi.testclient import TestClient

from conftest import TEST_ACCESS_SECRET, InMemoryUserStore

REGISTRATION = {
    "email": "ada@example.com",
    "username": "ada",
    "password": "correct-horse",
    "name": "Ada",
    "DOB": "1815-12-10",
}


def register(client: TestClient, **overrides) -> dict:
    response = client.post("/register", json={**REGISTRATION, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestRegister:
    """Tests for POST /register."""

    def test_register_returns_tokens_and_profile(self, client: TestClient) -> None:
        """Test registration returns camelCase tokens and the new profile."""
        data = register(client)

        assert set(data) >= {"accessToken", "refreshToken", "user"}
        assert data["user"]["email"] == "ada@example.com"
        assert data["user"]["dob"] == "1815-12-10"
        assert data["user"]["followers"] == 0
        assert "password_hash" not in data["user"]

        payload = jwt.decode(data["accessToken"], TEST_ACCESS_SECRET, algorithms=["HS256"])
        assert payload["user_id"] == data["user"]["user_id"]

    def test_register_sets_refresh_cookie(self, client: TestClient) -> None:
        """Test the refresh token is also set as an HttpOnly cookie."""
        response = client.post("/register", json=REGISTRATION)

        assert "refreshToken=" in response.headers["set-cookie"]
        assert "HttpOnly" in response.headers["set-cookie"]

    def test_register_missing_field_returns_400(self, client: TestClient) -> None:
        """Test a missing password is a validation error."""
        response = client.post("/register", json={"email": "a@example.com", "username": "a"})

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_register_duplicate_returns_400_conflict(
        self, client: TestClient, user_store: InMemoryUserStore
    ) -> None:
        """Test a reused email is rejected without writing."""
        register(client)

        response = client.post("/register", json={**REGISTRATION, "username": "other"})

        assert response.status_code == 400
        assert response.json()["error"] == "conflict"
        assert len(user_store.rows) == 1

    def test_register_malformed_body_returns_400(self, client: TestClient) -> None:
        """Test a non-JSON body is reported as a validation error."""
        response = client.post("/register", content="not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400


class TestLogin:
    """Tests for POST /login."""

    def test_login_success(self, client: TestClient) -> None:
        """Test correct credentials return tokens and the profile."""
        registered = register(client)

        response = client.post("/login", json={"email": "ada@example.com", "password": "correct-horse"})

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["user_id"] == registered["user"]["user_id"]
        assert "accessToken" in data

    def test_login_failures_are_indistinguishable(self, client: TestClient) -> None:
        """Test wrong password and unknown email give the same 401 body."""
        register(client)

        wrong_password = client.post("/login", json={"email": "ada@example.com", "password": "nope"})
        unknown_email = client.post("/login", json={"email": "who@example.com", "password": "correct-horse"})

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json()["message"] == unknown_email.json()["message"]

    def test_login_missing_fields(self, client: TestClient) -> None:
        """Test missing credentials are a validation error."""
        response = client.post("/login", json={"email": "ada@example.com"})

        assert response.status_code == 400


class TestRefresh:
    """Tests for POST /refresh."""

    def test_refresh_from_body(self, client: TestClient) -> None:
        """Test a refresh token in the body yields new tokens."""
        registered = register(client)
        client.cookies.clear()

        response = client.post("/refresh", json={"refreshToken": registered["refreshToken"]})

        assert response.status_code == 200
        assert set(response.json()) == {"accessToken", "refreshToken"}

    def test_refresh_from_cookie(self, client: TestClient) -> None:
        """Test the cookie set at registration is accepted."""
        register(client)

        response = client.post("/refresh")

        assert response.status_code == 200

    def test_refresh_rejects_access_token(self, client: TestClient) -> None:
        """Test an access token cannot be used to refresh."""
        registered = register(client)
        client.cookies.clear()

        response = client.post("/refresh", json={"refreshToken": registered["accessToken"]})

        assert response.status_code == 401

    def test_refresh_without_token(self, client: TestClient) -> None:
        """Test a missing token is a 401."""
        client.cookies.clear()

        response = client.post("/refresh")

        assert response.status_code == 401


class TestChangePassword:
    """Tests for POST /change-password."""

    def test_change_password(self, client: TestClient) -> None:
        """Test the password changes for the identified caller."""
        user_id = register(client)["user"]["user_id"]

        response = client.post(
            "/change-password",
            json={"currentPassword": "correct-horse", "newPassword": "battery-staple"},
            headers={"X-User-ID": user_id},
        )

        assert response.status_code == 200
        assert "message" in response.json()
        login = client.post("/login", json={"email": "ada@example.com", "password": "battery-staple"})
        assert login.status_code == 200

    def test_change_password_with_bearer_token(self, client: TestClient) -> None:
        """Test the caller can be identified by an access token."""
        token = register(client)["accessToken"]

        response = client.post(
            "/change-password",
            json={"current_password": "correct-horse", "new_password": "battery-staple"},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 200

    def test_change_password_wrong_current(self, client: TestClient) -> None:
        """Test a wrong current password is a 401."""
        user_id = register(client)["user"]["user_id"]

        response = client.post(
            "/change-password",
            json={"currentPassword": "wrong", "newPassword": "battery-staple"},
            headers={"X-User-ID": user_id},
        )

        assert response.status_code == 401

    def test_change_password_without_identity(self, client: TestClient) -> None:
        """Test a request with no caller identity is a validation error."""
        response = client.post(
            "/change-password",
            json={"currentPassword": "a", "newPassword": "b"},
        )

        assert response.status_code == 400
