"""AuthMiddleware: bearer token enforcement on non-public routes."""

from datetime import timedelta

import pytest

from crm.auth.helpers import create_access_token
from crm.middleware import is_public

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "path",
    [
        "/health",
        "/api/docs",
        "/openapi.json",
        "/api/auth/login",
        "/api/auth/register",
        "/api/auth/forgot-password",
        "/api/auth/reset-password",
        "/api/auth/verify-reset-token/abc",
        "/api/auth/login/",
    ],
)
def test_public_paths(path):
    assert is_public(path)


@pytest.mark.parametrize(
    "path",
    [
        "/api/auth/verify",
        "/api/auth/profile",
        "/api/users/profile",
        "/api/organizations/current",
        "/api/auth/verify-reset-token",
    ],
)
def test_protected_paths(path):
    assert not is_public(path)


class TestAuthMiddleware:
    def test_missing_header(self, client):
        res = client.get("/api/auth/profile")

        assert res.status_code == 401
        assert res.headers["WWW-Authenticate"] == "Bearer"
        assert res.json() == {
            "success": False,
            "error": {
                "code": 401,
                "type": "AuthenticationError",
                "message": "Access token required",
            },
        }

    def test_wrong_scheme(self, client):
        res = client.get("/api/auth/profile", headers={"Authorization": "Basic abc"})

        assert res.status_code == 401
        assert "Bearer" in res.json()["error"]["message"]

    def test_garbage_token(self, client):
        res = client.get("/api/auth/profile", headers={"Authorization": "Bearer garbage"})

        assert res.status_code == 401
        assert res.json()["error"]["message"] == "Invalid or expired token"

    def test_expired_token(self, client, make_account):
        user = make_account()
        token = create_access_token(
            {"sub": user["_id"], "email": user["email"], "role": "admin"},
            expires_delta=timedelta(seconds=-1),
        )

        res = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})

        assert res.status_code == 401

    def test_token_for_deleted_user(self, client):
        token = create_access_token({"sub": "missing", "email": "x@example.com"})

        res = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})

        assert res.status_code == 401

    def test_preflight_passes_through(self, client):
        res = client.options(
            "/api/auth/profile",
            headers={
                "Origin": "http://localhost:5174",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert res.status_code == 200
        assert res.headers["access-control-allow-origin"] == "http://localhost:5174"


class TestRequestLogging:
    def test_request_id_is_generated(self, client):
        res = client.get("/health")

        assert res.headers["X-Request-ID"]

    def test_request_id_is_echoed(self, client):
        res = client.get("/api/auth/profile", headers={"X-Request-ID": "abc123"})

        assert res.status_code == 401
        assert res.headers["X-Request-ID"] == "abc123"
