"""
Database service layer for the FastAPI application.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from review_api.errors import ConflictError
from review_api.models import (
    BookCreate, BookQueryParams, BookResponse, BookReview,
    ReviewResponse, User
)

logger = structlog.get_logger(__name__)


def _object_id(value: str) -> Optional[ObjectId]:
    """Parse an id from a URL; malformed ids map to None."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _contains(text: str) -> Dict[str, str]:
    """Case-insensitive partial match on a literal string."""
    return {"$regex": re.escape(text), "$options": "i"}


def _book_from_doc(doc: Dict[str, Any]) -> BookResponse:
    return BookResponse(
        id=str(doc["_id"]),
        title=doc["title"],
        author=doc["author"],
        genre=doc.get("genre"),
        description=doc.get("description"),
        created_at=doc["created_at"],
    )


def _review_from_doc(doc: Dict[str, Any]) -> ReviewResponse:
    return ReviewResponse(
        id=str(doc["_id"]),
        book_id=str(doc["book_id"]),
        user_id=str(doc["user_id"]),
        rating=doc["rating"],
        comment=doc.get("comment"),
        created_at=doc["created_at"],
    )


class CredentialStore:
    """Persists user identities. Emails are unique."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.users_collection = database.users

    async def create_indexes(self) -> None:
        await self.users_collection.create_index("email", unique=True)

    async def find_by_email(self, email: str) -> Optional[User]:
        """
        Look up a user by exact email.

        Args:
            email: Email as submitted; no case folding is applied

        Returns:
            User if found, None otherwise
        """
        doc = await self.users_collection.find_one({"email": email})
        if doc is None:
            return None
        return User(
            id=str(doc["_id"]),
            email=doc["email"],
            password_hash=doc["password_hash"],
            created_at=doc["created_at"],
        )

    async def create(self, email: str, password_hash: str) -> User:
        """
        Insert a new user.

        The existence check gives the friendly error in the common case; the
        unique index on ``email`` catches concurrent signups.

        Raises:
            ConflictError: If the email is already registered
        """
        if await self.find_by_email(email) is not None:
            raise ConflictError("Email already exists")

        created_at = _utcnow()
        try:
            result = await self.users_collection.insert_one({
                "email": email,
                "password_hash": password_hash,
                "created_at": created_at,
            })
        except DuplicateKeyError:
            logger.info("Concurrent signup lost the race", email=email)
            raise ConflictError("Email already exists")

        return User(
            id=str(result.inserted_id),
            email=email,
            password_hash=password_hash,
            created_at=created_at,
        )


class APIDatabaseService:
    """Database service for book and review operations."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.books_collection = database.books
        self.reviews_collection = database.reviews
        self.users_collection = database.users

    async def create_indexes(self) -> None:
        """Create indexes for listing order and review uniqueness."""
        await self.books_collection.create_index([("created_at", DESCENDING)])
        await self.reviews_collection.create_index(
            [("book_id", ASCENDING), ("user_id", ASCENDING)], unique=True
        )
        await self.reviews_collection.create_index(
            [("book_id", ASCENDING), ("created_at", DESCENDING)]
        )

    # Books

    async def create_book(self, book: BookCreate) -> BookResponse:
        doc = {
            "title": book.title,
            "author": book.author,
            "genre": book.genre or None,
            "description": book.description or None,
            "created_at": _utcnow(),
        }
        result = await self.books_collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _book_from_doc(doc)

    async def get_books(self, query_params: BookQueryParams) -> List[BookResponse]:
        """
        Get books with optional author/genre filters, newest first.

        Args:
            query_params: Filters and pagination

        Returns:
            One page of books
        """
        filter_query: Dict[str, Any] = {}
        if query_params.author:
            filter_query["author"] = _contains(query_params.author)
        if query_params.genre:
            filter_query["genre"] = _contains(query_params.genre)

        skip = (query_params.page - 1) * query_params.limit
        cursor = (
            self.books_collection.find(filter_query)
            .sort("created_at", DESCENDING)
            .skip(skip)
            .limit(query_params.limit)
        )
        docs = await cursor.to_list(length=query_params.limit)
        return [_book_from_doc(doc) for doc in docs]

    async def search_books(self, text: str) -> List[BookResponse]:
        """Books whose title or author contains ``text``, ignoring case."""
        pattern = _contains(text)
        cursor = self.books_collection.find(
            {"$or": [{"title": pattern}, {"author": pattern}]}
        )
        docs = await cursor.to_list(length=None)
        return [_book_from_doc(doc) for doc in docs]

    async def get_book_by_id(self, book_id: str) -> Optional[BookResponse]:
        object_id = _object_id(book_id)
        if object_id is None:
            return None
        doc = await self.books_collection.find_one({"_id": object_id})
        return _book_from_doc(doc) if doc else None

    async def get_average_rating(self, book_id: str) -> float:
        """Average rating rounded to two decimals, 0 for an unreviewed book."""
        object_id = _object_id(book_id)
        if object_id is None:
            return 0.0
        cursor = self.reviews_collection.aggregate([
            {"$match": {"book_id": object_id}},
            {"$group": {"_id": None, "average_rating": {"$avg": "$rating"}}},
        ])
        rows = await cursor.to_list(length=1)
        if not rows or rows[0].get("average_rating") is None:
            return 0.0
        return round(float(rows[0]["average_rating"]), 2)

    async def get_book_reviews(self, book_id: str, page: int, limit: int) -> List[BookReview]:
        """One page of a book's reviews with each reviewer's email, newest first."""
        object_id = _object_id(book_id)
        if object_id is None:
            return []
        cursor = self.reviews_collection.aggregate([
            {"$match": {"book_id": object_id}},
            {"$sort": {"created_at": DESCENDING}},
            {"$skip": (page - 1) * limit},
            {"$limit": limit},
            {"$lookup": {
                "from": self.users_collection.name,
                "localField": "user_id",
                "foreignField": "_id",
                "as": "user",
            }},
            {"$unwind": "$user"},
        ])
        docs = await cursor.to_list(length=limit)
        return [
            BookReview(
                id=str(doc["_id"]),
                rating=doc["rating"],
                comment=doc.get("comment"),
                created_at=doc["created_at"],
                email=doc["user"]["email"],
            )
            for doc in docs
        ]

    # Reviews

    async def find_review(self, book_id: str, user_id: str) -> Optional[ReviewResponse]:
        doc = await self.reviews_collection.find_one({
            "book_id": _object_id(book_id),
            "user_id": _object_id(user_id),
        })
        return _review_from_doc(doc) if doc else None

    async def create_review(
        self,
        book_id: str,
        user_id: str,
        rating: int,
        comment: Optional[str],
    ) -> ReviewResponse:
        """
        Insert a review.

        Raises:
            ConflictError: If this user already reviewed this book
        """
        doc = {
            "book_id": _object_id(book_id),
            "user_id": _object_id(user_id),
            "rating": rating,
            "comment": comment or None,
            "created_at": _utcnow(),
        }
        try:
            result = await self.reviews_collection.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("You have already reviewed this book")
        doc["_id"] = result.inserted_id
        return _review_from_doc(doc)

    async def get_review_by_id(self, review_id: str) -> Optional[ReviewResponse]:
        object_id = _object_id(review_id)
        if object_id is None:
            return None
        doc = await self.reviews_collection.find_one({"_id": object_id})
        return _review_from_doc(doc) if doc else None

    async def update_review(
        self,
        review_id: str,
        rating: int,
        comment: Optional[str],
    ) -> Optional[ReviewResponse]:
        doc = await self.reviews_collection.find_one_and_update(
            {"_id": _object_id(review_id)},
            {"$set": {"rating": rating, "comment": comment}},
            return_document=ReturnDocument.AFTER,
        )
        return _review_from_doc(doc) if doc else None

    async def delete_review(self, review_id: str) -> bool:
        result = await self.reviews_collection.delete_one({"_id": _object_id(review_id)})
        return result.deleted_count == 1

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            return {"status": "healthy"}
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}
