"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72

# Keeps (page - 1) * limit within the 8-byte ints MongoDB accepts for skip
MAX_PAGE = 1_000_000


class User(BaseModel):
    """Stored user identity."""
    id: str = Field(..., description="Unique user identifier")
    email: str = Field(..., description="Email address, case-sensitive as stored")
    password_hash: str = Field(..., description="bcrypt password hash")
    created_at: datetime = Field(..., description="Signup timestamp")


class Credentials(BaseModel):
    """Email and password submitted to signup and login."""
    email: str = Field(..., min_length=1, description="Email address")
    password: str = Field(..., min_length=1, description="Plaintext password")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """Emails are stored as given, but must not be blank."""
        if not v.strip():
            raise ValueError("Email is required")
        return v

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v):
        """Reject passwords bcrypt would silently truncate."""
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class TokenResponse(BaseModel):
    """Access token returned by login and refresh."""
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken", description="Signed access token")


class MessageResponse(BaseModel):
    """Plain confirmation message."""
    message: str = Field(..., description="Human-readable result")


class BookCreate(BaseModel):
    """Payload for creating a book."""
    title: str = Field(..., min_length=1, description="Book title")
    author: str = Field(..., min_length=1, description="Book author")
    genre: Optional[str] = Field(None, description="Book genre")
    description: Optional[str] = Field(None, description="Book description")


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: Optional[str] = Field(None, description="Book genre")
    description: Optional[str] = Field(None, description="Book description")
    created_at: datetime = Field(..., description="Creation timestamp")


class BookQueryParams(BaseModel):
    """Query parameters for book listing."""
    author: Optional[str] = Field(None, description="Filter by author (partial, case-insensitive)")
    genre: Optional[str] = Field(None, description="Filter by genre (partial, case-insensitive)")
    page: int = Field(1, ge=1, le=MAX_PAGE, description="Page number")
    limit: int = Field(10, ge=1, le=100, description="Books per page")


class BookListResponse(BaseModel):
    """Response model for a page of books."""
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Number of books per page")
    books: List[BookResponse] = Field(..., description="List of books")


class ReviewCreate(BaseModel):
    """Payload for submitting a review."""
    rating: int = Field(..., description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Free-text comment")

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v):
        """Ratings run from 1 to 5."""
        if v < 1 or v > 5:
            raise ValueError("Rating must be between 1 and 5")
        return v


class ReviewUpdate(BaseModel):
    """Payload for editing a review. Omitted fields keep their value."""
    rating: Optional[int] = Field(None, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Free-text comment")

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v):
        """Ratings run from 1 to 5."""
        if v is not None and (v < 1 or v > 5):
            raise ValueError("Rating must be between 1 and 5")
        return v


class ReviewResponse(BaseModel):
    """Review response model for API."""
    id: str = Field(..., description="Unique review identifier")
    book_id: str = Field(..., description="Reviewed book")
    user_id: str = Field(..., description="Review author")
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Free-text comment")
    created_at: datetime = Field(..., description="Creation timestamp")


class BookReview(BaseModel):
    """Review as listed on a book's detail page."""
    id: str = Field(..., description="Unique review identifier")
    rating: int = Field(..., description="Rating from 1 to 5")
    comment: Optional[str] = Field(None, description="Free-text comment")
    created_at: datetime = Field(..., description="Creation timestamp")
    email: str = Field(..., description="Reviewer's email")


class BookDetailResponse(BaseModel):
    """A book with its average rating and a page of reviews."""
    model_config = ConfigDict(populate_by_name=True)

    book: BookResponse = Field(..., description="The book")
    average_rating: float = Field(..., description="Average rating, 0 when unreviewed")
    reviews: List[BookReview] = Field(..., description="Page of reviews, newest first")
    review_page: int = Field(..., alias="reviewPage", description="Current review page")
    review_limit: int = Field(..., alias="reviewLimit", description="Reviews per page")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
