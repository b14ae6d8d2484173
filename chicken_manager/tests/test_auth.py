"""
Auth collaborator clients and settings validation
"""
import httpx
import pytest
import jwt
from pydantic import ValidationError

from chicken_manager.config import Settings
from chicken_manager.services.auth_client import (
    AuthError,
    JWTAuthClient,
    RemoteAuthClient,
    build_auth_client,
    create_access_token,
)

from conftest import TEST_SECRET, USER_A


# ===================== JWT CLIENT =====================


class TestJWTAuthClient:

    async def test_valid_token(self):
        client = JWTAuthClient(TEST_SECRET)
        identity = await client.get_user(create_access_token(USER_A, "a@example.com", TEST_SECRET))
        assert identity.id == USER_A
        assert identity.email == "a@example.com"

    async def test_wrong_secret(self):
        client = JWTAuthClient(TEST_SECRET)
        with pytest.raises(AuthError):
            await client.get_user(create_access_token(USER_A, None, "another-secret-of-the-same-length-000"))

    async def test_expired_token(self):
        client = JWTAuthClient(TEST_SECRET)
        with pytest.raises(AuthError):
            await client.get_user(create_access_token(USER_A, None, TEST_SECRET, expires_minutes=-5))

    async def test_wrong_audience(self):
        client = JWTAuthClient(TEST_SECRET)
        with pytest.raises(AuthError):
            await client.get_user(create_access_token(USER_A, None, TEST_SECRET, audience="anon"))

    async def test_missing_subject(self):
        client = JWTAuthClient(TEST_SECRET)
        token = jwt.encode({"aud": "authenticated", "email": "x@example.com"}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(AuthError, match="no subject"):
            await client.get_user(token)

    async def test_garbage(self):
        with pytest.raises(AuthError):
            await JWTAuthClient(TEST_SECRET).get_user("not-a-token")


# ===================== REMOTE CLIENT =====================


def _remote(handler) -> RemoteAuthClient:
    return RemoteAuthClient("https://auth.example.com/", api_key="anon-key", transport=httpx.MockTransport(handler))


class TestRemoteAuthClient:

    async def test_resolves_user(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            seen["apikey"] = request.headers.get("apikey")
            return httpx.Response(200, json={"id": USER_A, "email": "a@example.com"})

        client = _remote(handler)
        identity = await client.get_user("tok")
        await client.aclose()

        assert identity.id == USER_A
        assert seen == {"path": "/auth/v1/user", "auth": "Bearer tok", "apikey": "anon-key"}

    async def test_rejected_token(self):
        client = _remote(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))
        with pytest.raises(AuthError):
            await client.get_user("tok")
        await client.aclose()

    async def test_missing_id(self):
        client = _remote(lambda request: httpx.Response(200, json={"email": "a@example.com"}))
        with pytest.raises(AuthError):
            await client.get_user("tok")
        await client.aclose()

    async def test_non_json_reply(self):
        client = _remote(lambda request: httpx.Response(200, text="<html>gateway</html>"))
        with pytest.raises(AuthError, match="unreadable"):
            await client.get_user("tok")
        await client.aclose()

    async def test_non_object_reply(self):
        client = _remote(lambda request: httpx.Response(200, json=["not", "a", "user"]))
        with pytest.raises(AuthError):
            await client.get_user("tok")
        await client.aclose()

    async def test_service_unreachable(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _remote(handler)
        with pytest.raises(AuthError, match="unavailable"):
            await client.get_user("tok")
        await client.aclose()

    async def test_unreachable_service_means_401(self, unauth_client):
        from chicken_manager.main import app
        from chicken_manager.api.auth import get_auth_client

        def handler(request: httpx.Request):
            raise httpx.ConnectError("connection refused", request=request)

        app.dependency_overrides[get_auth_client] = lambda: _remote(handler)
        r = await unauth_client.get("/api/auth/me", headers={"Authorization": "Bearer tok"})
        assert r.status_code == 401


# ===================== SETTINGS =====================


class TestSettings:

    def test_jwt_mode_needs_secret(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, AUTH_MODE="jwt", AUTH_JWT_SECRET="")

    def test_remote_mode_needs_url(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, AUTH_MODE="remote", AUTH_SERVER_URL="")

    def test_unknown_mode(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, AUTH_MODE="magic")

    def test_build_clients(self):
        jwt_settings = Settings(_env_file=None, AUTH_MODE="jwt", AUTH_JWT_SECRET="s")
        assert isinstance(build_auth_client(jwt_settings), JWTAuthClient)

        remote_settings = Settings(_env_file=None, AUTH_MODE="remote", AUTH_SERVER_URL="https://auth.example.com")
        assert isinstance(build_auth_client(remote_settings), RemoteAuthClient)
