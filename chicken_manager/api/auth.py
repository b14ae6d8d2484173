"""
Authentication - resolve the bearer token on each request to an identity
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chicken_manager.services.auth_client import AuthClient, AuthError, Identity
from chicken_manager.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_client(request: Request) -> AuthClient:
    """Dependency for the auth collaborator created at startup"""
    return request.app.state.auth_client


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_client: AuthClient = Depends(get_auth_client),
) -> Identity:
    """Fail closed: no identity, no data access"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=401,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return await auth_client.get_user(credentials.credentials)
    except AuthError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.get("/me", response_model=Identity)
async def get_me(current_user: Identity = Depends(get_current_user)):
    """Identity resolved from the bearer token"""
    return current_user
