"""
Tests for password hashing and token issuance/verification.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from review_api.errors import AuthenticationError
from review_api.security import PasswordHasher, TokenService


class TestPasswordHasher:
    """Test cases for PasswordHasher."""

    def test_verify_accepts_original_password(self, password_hasher):
        password_hash = password_hasher.hash("p1")
        assert password_hasher.verify("p1", password_hash) is True

    def test_hash_is_salted(self, password_hasher):
        """Hashing the same password twice gives different hashes."""
        first = password_hasher.hash("correct horse")
        second = password_hasher.hash("correct horse")

        assert first != second
        assert password_hasher.verify("correct horse", first)
        assert password_hasher.verify("correct horse", second)

    def test_hash_does_not_contain_plaintext(self, password_hasher):
        assert "s3cret-pass" not in password_hasher.hash("s3cret-pass")

    def test_hash_uses_configured_work_factor(self):
        password_hash = PasswordHasher(rounds=5).hash("p1")
        assert password_hash.startswith("$2b$05$")

    def test_wrong_password_is_false_not_exception(self, password_hasher):
        password_hash = password_hasher.hash("p1")
        assert password_hasher.verify("wrong", password_hash) is False

    @pytest.mark.parametrize("password,stored", [
        ("p1", "not-a-bcrypt-hash"),
        ("", "$2b$04$abcdefghijklmnopqrstuu"),
        ("p1", ""),
    ])
    def test_malformed_input_is_false(self, password_hasher, password, stored):
        assert password_hasher.verify(password, stored) is False

    def test_blank_password_cannot_be_hashed(self, password_hasher):
        with pytest.raises(ValueError):
            password_hasher.hash("")


class TestTokenService:
    """Test cases for TokenService."""

    def test_blank_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenService(secret="")

    def test_access_token_round_trip(self, token_service):
        token = token_service.issue_access_token("a@x.com")
        assert token_service.verify_access_token(token) == "a@x.com"

    def test_access_token_payload(self, token_service, test_config):
        issued_at = datetime.now(timezone.utc)
        token = token_service.issue_access_token("a@x.com", issued_at=issued_at)

        payload = jwt.decode(token, test_config.jwt_secret, algorithms=["HS256"])
        assert payload["email"] == "a@x.com"
        assert payload["type"] == "access"
        assert payload["exp"] - payload["iat"] == 60

    def test_refresh_token_lifetime_is_seven_days(self, token_service, test_config):
        token = token_service.issue_refresh_token("a@x.com")

        payload = jwt.decode(token, test_config.jwt_secret, algorithms=["HS256"])
        assert payload["type"] == "refresh"
        assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60

    def test_access_token_valid_before_expiry(self, token_service):
        issued_at = datetime.now(timezone.utc) - timedelta(seconds=30)
        token = token_service.issue_access_token("a@x.com", issued_at=issued_at)
        assert token_service.verify_access_token(token) == "a@x.com"

    def test_access_token_rejected_after_expiry(self, token_service):
        issued_at = datetime.now(timezone.utc) - timedelta(seconds=61)
        token = token_service.issue_access_token("a@x.com", issued_at=issued_at)

        with pytest.raises(AuthenticationError) as exc_info:
            token_service.verify_access_token(token)
        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Invalid or expired token"

    def test_refresh_token_rejected_after_expiry(self, token_service):
        issued_at = datetime.now(timezone.utc) - timedelta(days=7, seconds=1)
        token = token_service.issue_refresh_token("a@x.com", issued_at=issued_at)

        with pytest.raises(AuthenticationError) as exc_info:
            token_service.verify_refresh_token(token)
        assert exc_info.value.status_code == 403

    def test_token_signed_with_other_secret_rejected(self, token_service):
        forged = TokenService(secret="someone-else").issue_access_token("a@x.com")
        with pytest.raises(AuthenticationError):
            token_service.verify_access_token(forged)

    def test_garbage_token_rejected(self, token_service):
        with pytest.raises(AuthenticationError):
            token_service.verify_access_token("not-a-jwt")

    def test_refresh_token_is_not_an_access_token(self, token_service):
        token = token_service.issue_refresh_token("a@x.com")
        with pytest.raises(AuthenticationError):
            token_service.verify_access_token(token)

    def test_access_token_is_not_a_refresh_token(self, token_service):
        token = token_service.issue_access_token("a@x.com")
        with pytest.raises(AuthenticationError) as exc_info:
            token_service.verify_refresh_token(token)
        assert exc_info.value.message == "Invalid refresh token"

    def test_token_without_email_rejected(self, token_service, test_config):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"type": "access", "iat": now, "exp": now + 60},
            test_config.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError):
            token_service.verify_access_token(token)

    def test_token_without_expiry_rejected(self, token_service, test_config):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"email": "a@x.com", "type": "access", "iat": now},
            test_config.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError):
            token_service.verify_access_token(token)
