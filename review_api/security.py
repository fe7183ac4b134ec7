"""
Password hashing and JWT issuance/verification.

Both classes hold their own configuration so an application (or a test) can
run with its own secret and work factor.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
import structlog

from review_api.errors import AuthenticationError

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class PasswordHasher:
    """Salted one-way password hashing with bcrypt."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """
        Hash a plaintext password.

        A fresh salt is generated on every call, so hashing the same password
        twice gives two different strings.

        Args:
            password: Plaintext password

        Returns:
            bcrypt hash including algorithm, cost and salt
        """
        if not password:
            raise ValueError("password must not be blank")
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Check a plaintext password against a stored hash.

        Returns False for a mismatch and for a malformed stored hash.
        """
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False


class TokenService:
    """Issues and verifies signed access and refresh tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_token_ttl: timedelta = timedelta(seconds=60),
        refresh_token_ttl: timedelta = timedelta(days=7),
    ):
        if not secret:
            raise ValueError("token signing secret must not be blank")
        self._secret = secret
        self.algorithm = algorithm
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl

    def _encode(
        self,
        email: str,
        token_type: str,
        ttl: timedelta,
        issued_at: Optional[datetime] = None,
    ) -> str:
        now = issued_at or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "email": email,
            "type": token_type,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def issue_access_token(self, email: str, issued_at: Optional[datetime] = None) -> str:
        """Create a short-lived access token for ``email``."""
        return self._encode(email, ACCESS_TOKEN_TYPE, self.access_token_ttl, issued_at)

    def issue_refresh_token(self, email: str, issued_at: Optional[datetime] = None) -> str:
        """Create a long-lived refresh token for ``email``."""
        return self._encode(email, REFRESH_TOKEN_TYPE, self.refresh_token_ttl, issued_at)

    def _decode(self, token: str, token_type: str) -> str:
        """
        Verify signature, expiry and type of a token.

        Args:
            token: Encoded JWT
            token_type: Expected value of the ``type`` claim

        Returns:
            The email claim

        Raises:
            jwt.InvalidTokenError: If the token is tampered, expired, of the
                wrong type or carries no email
        """
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self.algorithm],
            options={"require": ["exp", "iat"]},
        )
        if payload.get("type") != token_type:
            raise jwt.InvalidTokenError(f"expected a {token_type} token")
        email = payload.get("email")
        if not email or not isinstance(email, str):
            raise jwt.InvalidTokenError("token carries no email claim")
        return email

    def verify_access_token(self, token: str) -> str:
        """
        Return the email carried by a valid access token.

        Rejections are logged by the caller, which knows the request path.

        Raises:
            AuthenticationError: 403 if the token is invalid or expired
        """
        try:
            return self._decode(token, ACCESS_TOKEN_TYPE)
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid or expired token", status_code=403)

    def verify_refresh_token(self, token: str) -> str:
        """
        Return the email carried by a valid refresh token.

        Raises:
            AuthenticationError: 403 if the token is invalid or expired
        """
        try:
            return self._decode(token, REFRESH_TOKEN_TYPE)
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid refresh token", status_code=403)
