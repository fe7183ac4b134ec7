"""
Signup, login and token refresh endpoints.
"""

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool

from review_api.auth import (
    get_credential_store, get_password_hasher, get_settings, get_token_service
)
from review_api.config import APIConfig
from review_api.database import CredentialStore
from review_api.errors import APIError, AuthenticationError, InternalError
from review_api.models import Credentials, MessageResponse, TokenResponse
from review_api.security import PasswordHasher, TokenService
from utilities.logger import AuthLogger

logger = structlog.get_logger(__name__)
auth_logger = AuthLogger("review_api.routes.auth")

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Email already exists"}},
)
async def signup(
    payload: Credentials,
    credential_store: CredentialStore = Depends(get_credential_store),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
):
    """Register a new user."""
    try:
        password_hash = await run_in_threadpool(password_hasher.hash, payload.password)
        await credential_store.create(payload.email, password_hash)
    except APIError as e:
        auth_logger.log_signup(payload.email, success=False, reason=e.message)
        raise
    except Exception as e:
        logger.error("Signup error", error=str(e))
        raise InternalError(detail=str(e))

    auth_logger.log_signup(payload.email)
    return MessageResponse(message="Signup success")


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={400: {"description": "Invalid credentials"}},
)
async def login(
    payload: Credentials,
    response: Response,
    credential_store: CredentialStore = Depends(get_credential_store),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    token_service: TokenService = Depends(get_token_service),
    settings: APIConfig = Depends(get_settings),
):
    """
    Log in with email and password.

    Returns a short-lived access token in the body and sets a long-lived
    refresh token as an HTTP-only cookie.
    """
    try:
        user = await credential_store.find_by_email(payload.email)
    except Exception as e:
        logger.error("Login error", error=str(e))
        raise InternalError(detail=str(e))

    if user is None:
        auth_logger.log_login(payload.email, success=False, reason="unknown_email")
        raise AuthenticationError("Invalid email", status_code=400)

    valid = await run_in_threadpool(password_hasher.verify, payload.password, user.password_hash)
    if not valid:
        auth_logger.log_login(payload.email, success=False, reason="wrong_password")
        raise AuthenticationError("Invalid password", status_code=400)

    access_token = token_service.issue_access_token(user.email)
    refresh_token = token_service.issue_refresh_token(user.email)

    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh_token,
        max_age=settings.refresh_cookie_max_age,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
    )
    auth_logger.log_login(user.email)
    return TokenResponse(access_token=access_token)


@router.post(
    "/refresh-token",
    response_model=TokenResponse,
    responses={
        401: {"description": "No refresh token"},
        403: {"description": "Invalid refresh token"},
    },
)
async def refresh_token(
    request: Request,
    token_service: TokenService = Depends(get_token_service),
    settings: APIConfig = Depends(get_settings),
):
    """Exchange the refresh token cookie for a new access token."""
    token = request.cookies.get(settings.refresh_cookie_name)
    if not token:
        auth_logger.log_refresh(None, success=False, reason="missing")
        raise AuthenticationError("No refresh token", status_code=401)

    try:
        email = token_service.verify_refresh_token(token)
    except AuthenticationError:
        auth_logger.log_refresh(None, success=False, reason="invalid")
        raise

    auth_logger.log_refresh(email)
    return TokenResponse(access_token=token_service.issue_access_token(email))


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, settings: APIConfig = Depends(get_settings)):
    """
    Clear the refresh token cookie.

    Tokens are stateless, so an already issued refresh token stays valid
    until it expires; this only removes it from the browser.
    """
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
    )
    return MessageResponse(message="Logged out")
