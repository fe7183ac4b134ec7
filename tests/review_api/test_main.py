"""
Tests for application startup and cross-origin settings.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from pymongo import ASCENDING

from review_api.database import APIDatabaseService, CredentialStore
from review_api.main import create_app, lifespan


@pytest.fixture
def mock_motor_client():
    """Motor client whose database answers ping and index creation."""
    database = MagicMock()
    for name in ("users", "books", "reviews"):
        collection = MagicMock()
        collection.name = name
        collection.create_index = AsyncMock()
        setattr(database, name, collection)
    database.command = AsyncMock(return_value={"ok": 1})

    client = MagicMock()
    client.__getitem__.return_value = database
    return client


class TestLifespan:
    """Test cases for the application lifespan."""

    @pytest.mark.asyncio
    async def test_startup_creates_unique_indexes(self, test_config, mock_motor_client):
        app = create_app(test_config)
        database = mock_motor_client.__getitem__.return_value

        with patch("review_api.main.AsyncIOMotorClient", return_value=mock_motor_client):
            async with lifespan(app):
                database.command.assert_awaited_once_with("ping")
                database.users.create_index.assert_awaited_once_with("email", unique=True)
                database.reviews.create_index.assert_any_await(
                    [("book_id", ASCENDING), ("user_id", ASCENDING)], unique=True
                )
                assert isinstance(app.state.credential_store, CredentialStore)
                assert isinstance(app.state.db_service, APIDatabaseService)

        mock_motor_client.__getitem__.assert_called_once_with("book_reviews_test")
        mock_motor_client.close.assert_called_once()
        assert app.state.credential_store is None
        assert app.state.db_service is None

    @pytest.mark.asyncio
    async def test_failed_ping_closes_client(self, test_config, mock_motor_client):
        app = create_app(test_config)
        database = mock_motor_client.__getitem__.return_value
        database.command.side_effect = Exception("Connection refused")

        with patch("review_api.main.AsyncIOMotorClient", return_value=mock_motor_client):
            with pytest.raises(Exception, match="Connection refused"):
                async with lifespan(app):
                    pass

        mock_motor_client.close.assert_called_once()
        database.users.create_index.assert_not_called()
        database.reviews.create_index.assert_not_called()
        assert app.state.db_service is None


class TestCORS:
    """Credentialed cross-origin requests are limited to configured origins."""

    def test_no_origins_allowed_by_default(self, test_config):
        client = TestClient(create_app(test_config))

        response = client.get("/health", headers={"Origin": "https://evil.example"})

        assert "access-control-allow-origin" not in response.headers

    def test_configured_origin_allowed(self, test_config):
        settings = test_config.model_copy(update={"cors_origins": ["https://books.example"]})
        client = TestClient(create_app(settings))

        allowed = client.get("/health", headers={"Origin": "https://books.example"})
        other = client.get("/health", headers={"Origin": "https://evil.example"})

        assert allowed.headers["access-control-allow-origin"] == "https://books.example"
        assert allowed.headers["access-control-allow-credentials"] == "true"
        assert "access-control-allow-origin" not in other.headers
