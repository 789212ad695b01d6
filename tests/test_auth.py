"""Tests for registration and login."""
import pytest

PASSWORD = "SecurePass123!"


def _register(client, email="test@example.com", password=PASSWORD, **extra):
    return client.post("/auth/register", json={"email": email, "password": password, **extra})


def _login(client, email="test@example.com", password=PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


class TestRegister:
    """Tests for POST /auth/register."""

    def test_register_success(self, client):
        """Valid registration returns 201 with user and token."""
        response = _register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "test@example.com"
        assert "id" in data["user"]
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        assert "password" not in data["user"]
        assert "hashed_password" not in data["user"]

    def test_register_with_display_name(self, client):
        response = _register(client, display_name="Ana")

        assert response.status_code == 201
        assert response.json()["user"]["display_name"] == "Ana"

    def test_token_is_usable(self, client):
        """The returned token authenticates follow-up requests."""
        token = _register(client).json()["access_token"]

        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        data = response.json()
        assert data["email_notifications_enabled"] is True
        assert data["reminder_days"] == 3

    def test_register_duplicate_email(self, client):
        """Registering with an existing email returns 409."""
        _register(client, email="duplicate@example.com")

        response = _register(client, email="duplicate@example.com", password="DifferentPass456!")

        assert response.status_code == 409
        assert "email already registered" in response.json()["detail"].lower()

    def test_email_is_case_insensitive(self, client):
        _register(client, email="Mixed@Example.com")

        assert _register(client, email="mixed@example.com").status_code == 409
        assert _login(client, email="MIXED@example.com").status_code == 200

    @pytest.mark.parametrize(
        "password, message",
        [
            ("Short1!", "8 characters"),
            ("NoNumberHere!", "number"),
            ("NoSpecial123", "special"),
        ],
    )
    def test_register_weak_password(self, client, password, message):
        response = _register(client, password=password)

        assert response.status_code == 422
        assert message in response.json()["detail"][0]["msg"].lower()

    @pytest.mark.parametrize("email, password", [("not-an-email", PASSWORD), ("", "")])
    def test_register_invalid_input(self, client, email, password):
        assert _register(client, email=email, password=password).status_code == 422


class TestLogin:
    """Tests for POST /auth/login."""

    def test_login_success(self, client):
        _register(client, email="login@example.com")

        response = _login(client, email="login@example.com")

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == "login@example.com"
        assert data["access_token"]
        assert data["token_type"] == "bearer"

    def test_login_wrong_password(self, client):
        _register(client, email="wrongpass@example.com")

        response = _login(client, email="wrongpass@example.com", password="WrongPassword123!")

        assert response.status_code == 401
        assert "invalid" in response.json()["detail"].lower()

    def test_login_nonexistent_user(self, client):
        """Unknown users get the same 401 as a wrong password."""
        response = _login(client, email="nobody@example.com")

        assert response.status_code == 401
        assert "invalid" in response.json()["detail"].lower()

    def test_login_empty_fields(self, client):
        assert _login(client, email="", password="").status_code == 422

    def test_expired_token_rejected(self, client):
        from datetime import timedelta

        from subtracker.auth import create_access_token

        user_id = _register(client).json()["user"]["id"]
        token = create_access_token({"sub": str(user_id)}, expires_delta=timedelta(minutes=-1))

        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
