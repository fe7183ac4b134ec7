"""
API configuration settings.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-me-in-production"


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Book Review API"
    api_version: str = "1.0.0"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Database Settings
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "book_reviews"

    # Security Settings
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, min_length=1)
    jwt_algorithm: str = "HS256"
    access_token_expire_seconds: int = 60
    refresh_token_expire_days: int = 7
    bcrypt_rounds: int = 10

    # Refresh cookie
    refresh_cookie_name: str = "refreshToken"
    refresh_cookie_secure: bool = False  # Set to true behind HTTPS

    # CORS Settings
    # Origins allowed to send the refresh cookie; set explicitly per deployment
    cors_origins: list = []
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("jwt_secret")
    @classmethod
    def validate_secret(cls, v):
        """Reject whitespace-only signing secrets."""
        if not v.strip():
            raise ValueError("jwt_secret must not be blank")
        return v

    @field_validator("access_token_expire_seconds", "refresh_token_expire_days")
    @classmethod
    def validate_lifetime(cls, v):
        """Token lifetimes must be positive."""
        if v <= 0:
            raise ValueError("token lifetimes must be positive")
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v):
        """bcrypt accepts work factors between 4 and 31."""
        if v < 4 or v > 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    @property
    def refresh_cookie_max_age(self) -> int:
        """Refresh cookie lifetime in seconds."""
        return self.refresh_token_expire_days * 24 * 60 * 60

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug


# Global config instance
config = APIConfig()
