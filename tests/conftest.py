"""
Pytest configuration and shared fixtures.
"""

import secrets
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from review_api.config import APIConfig
from review_api.database import APIDatabaseService, CredentialStore
from review_api.errors import ConflictError
from review_api.main import create_app
from review_api.models import BookResponse, ReviewResponse, User
from review_api.security import PasswordHasher, TokenService


@pytest.fixture
def test_config():
    """Configuration with a per-test signing secret and a fast work factor."""
    return APIConfig(
        jwt_secret=f"test-secret-{secrets.token_hex(16)}",
        bcrypt_rounds=4,
        mongodb_database="book_reviews_test",
        debug=False,
    )


@pytest.fixture
def password_hasher(test_config):
    return PasswordHasher(rounds=test_config.bcrypt_rounds)


@pytest.fixture
def token_service(test_config):
    return TokenService(secret=test_config.jwt_secret, algorithm=test_config.jwt_algorithm)


@pytest.fixture
def mock_credential_store():
    """Create a mock credential store with no registered users."""
    store = AsyncMock(spec=CredentialStore)
    store.find_by_email.return_value = None
    return store


@pytest.fixture
def in_memory_users(mock_credential_store):
    """Back the mock credential store with a dict keyed by email."""
    users = {}

    async def find_by_email(email):
        return users.get(email)

    async def create(email, password_hash):
        if email in users:
            raise ConflictError("Email already exists")
        user = User(
            id=str(ObjectId()),
            email=email,
            password_hash=password_hash,
            created_at=datetime.now(timezone.utc),
        )
        users[email] = user
        return user

    mock_credential_store.find_by_email.side_effect = find_by_email
    mock_credential_store.create.side_effect = create
    return users


@pytest.fixture
def mock_db_service():
    """Create a mock book/review database service."""
    service = AsyncMock(spec=APIDatabaseService)
    service.health_check.return_value = {"status": "healthy"}
    return service


@pytest.fixture
def app(test_config, mock_credential_store, mock_db_service):
    """Application wired to the mock stores; the lifespan is not run."""
    application = create_app(test_config)
    application.state.credential_store = mock_credential_store
    application.state.db_service = mock_db_service
    return application


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def sample_user(password_hasher):
    return User(
        id=str(ObjectId()),
        email="a@x.com",
        password_hash=password_hasher.hash("p1"),
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def auth_headers(token_service, sample_user, mock_credential_store):
    """Bearer header for ``sample_user``, who resolves in the credential store."""
    mock_credential_store.find_by_email.return_value = sample_user
    token = token_service.issue_access_token(sample_user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_book():
    return BookResponse(
        id=str(ObjectId()),
        title="The Hobbit",
        author="J.R.R. Tolkien",
        genre="Fantasy",
        description="There and back again.",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_review(sample_book, sample_user):
    return ReviewResponse(
        id=str(ObjectId()),
        book_id=sample_book.id,
        user_id=sample_user.id,
        rating=4,
        comment="Lovely",
        created_at=datetime(2025, 1, 2, tzinfo=timezone.utc),
    )
