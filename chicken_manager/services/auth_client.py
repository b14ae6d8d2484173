"""
Auth collaborator clients - turn a bearer token into an identity.

Token issuance and verification belong to the hosted auth service. The
JWT client checks the service's HS256 access tokens with the shared secret;
the remote client asks the service directly.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
import jwt
from pydantic import BaseModel

from chicken_manager.config import Settings
from chicken_manager.utils.logger import get_logger

logger = get_logger(__name__)


class Identity(BaseModel):
    id: str
    email: Optional[str] = None


class AuthError(Exception):
    """Token rejected, or the auth service could not answer"""


class AuthClient:
    async def get_user(self, token: str) -> Identity:
        raise NotImplementedError

    async def aclose(self) -> None:
        pass


class JWTAuthClient(AuthClient):
    def __init__(self, secret: str, algorithm: str = "HS256", audience: Optional[str] = "authenticated"):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience

    async def get_user(self, token: str) -> Identity:
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthError("Token has expired") from e
        except jwt.PyJWTError as e:
            raise AuthError("Invalid token") from e

        user_id = claims.get("sub")
        if not user_id:
            raise AuthError("Token has no subject")
        return Identity(id=user_id, email=claims.get("email"))


class RemoteAuthClient(AuthClient):
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"apikey": api_key} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def get_user(self, token: str) -> Identity:
        try:
            response = await self._client.get(
                "/auth/v1/user",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Auth service request failed: {e}")
            raise AuthError("Auth service unavailable") from e

        if response.status_code != 200:
            raise AuthError("Invalid or expired token")

        try:
            body = response.json()
        except ValueError as e:
            logger.warning(f"Auth service returned a non-JSON reply: {e}")
            raise AuthError("Auth service returned an unreadable reply") from e
        if not isinstance(body, dict) or not body.get("id"):
            raise AuthError("Auth service returned no user")
        return Identity(id=body["id"], email=body.get("email"))

    async def aclose(self) -> None:
        await self._client.aclose()


def build_auth_client(settings: Settings) -> AuthClient:
    if settings.AUTH_MODE == "remote":
        return RemoteAuthClient(settings.AUTH_SERVER_URL, api_key=settings.AUTH_API_KEY)
    return JWTAuthClient(
        settings.AUTH_JWT_SECRET,
        algorithm=settings.AUTH_JWT_ALGORITHM,
        audience=settings.AUTH_JWT_AUDIENCE,
    )


def create_access_token(
    user_id: str,
    email: Optional[str],
    secret: str,
    algorithm: str = "HS256",
    audience: str = "authenticated",
    expires_minutes: int = 60,
) -> str:
    """Mint a token shaped like the auth service's (used by local tooling and tests)"""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    claims = {"sub": user_id, "email": email, "aud": audience, "exp": expire}
    return jwt.encode(claims, secret, algorithm=algorithm)
