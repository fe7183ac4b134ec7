"""
Request-time authentication for the FastAPI API.

Protected routes depend on ``get_current_identity`` (the email from a valid
bearer access token) or ``get_current_user`` (that email resolved to a
stored user). Nothing here refreshes tokens implicitly; clients call
``POST /auth/refresh-token`` themselves.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from review_api.config import APIConfig
from review_api.database import APIDatabaseService, CredentialStore
from review_api.errors import AuthenticationError, InternalError
from review_api.models import User
from review_api.security import PasswordHasher, TokenService
from utilities.logger import AuthLogger

logger = structlog.get_logger(__name__)
auth_logger = AuthLogger("review_api.auth")

# auto_error is off so a missing header is reported as 401 by us
security = HTTPBearer(auto_error=False)

BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def get_settings(request: Request) -> APIConfig:
    return request.app.state.config


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_credential_store(request: Request) -> CredentialStore:
    store = getattr(request.app.state, "credential_store", None)
    if store is None:
        raise InternalError(detail="Credential store not available")
    return store


def get_db_service(request: Request) -> APIDatabaseService:
    db_service = getattr(request.app.state, "db_service", None)
    if db_service is None:
        raise InternalError(detail="Database service not available")
    return db_service


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_service: TokenService = Depends(get_token_service),
) -> str:
    """
    Verify the bearer access token on a protected request.

    Args:
        request: Incoming request
        credentials: Parsed ``Authorization: Bearer`` header, if any
        token_service: Verifier configured for this application

    Returns:
        The email carried by the token

    Raises:
        AuthenticationError: 401 when no token is presented, 403 when the
            token is invalid or expired
    """
    if credentials is None or not credentials.credentials:
        auth_logger.log_token_rejected(request.url.path, "missing")
        raise AuthenticationError(
            "Access token required", status_code=401, headers=BEARER_CHALLENGE
        )

    try:
        return token_service.verify_access_token(credentials.credentials)
    except AuthenticationError:
        auth_logger.log_token_rejected(request.url.path, "invalid")
        raise


async def get_current_user(
    request: Request,
    email: str = Depends(get_current_identity),
    credential_store: CredentialStore = Depends(get_credential_store),
) -> User:
    """Resolve the authenticated email to the stored user."""
    try:
        user = await credential_store.find_by_email(email)
    except Exception as e:
        logger.error("Failed to resolve authenticated user", error=str(e))
        raise InternalError(detail=str(e))

    if user is None:
        auth_logger.log_token_rejected(request.url.path, "unknown_user")
        raise AuthenticationError("Invalid or expired token", status_code=403)
    return user
