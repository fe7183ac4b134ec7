"""
Book and review endpoints.

Reads are public. Creating books and writing reviews need a bearer access
token; review edits and deletions are limited to the review's author.
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from review_api.auth import get_current_user, get_db_service
from review_api.database import APIDatabaseService
from review_api.errors import (
    APIError, ConflictError, InternalError, NotFoundError, ValidationError
)
from review_api.models import (
    MAX_PAGE, BookCreate, BookDetailResponse, BookListResponse, BookQueryParams,
    BookResponse, MessageResponse, ReviewCreate, ReviewResponse, ReviewUpdate, User
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/books")


@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Books"],
)
async def create_book(
    payload: BookCreate,
    user: User = Depends(get_current_user),
    db_service: APIDatabaseService = Depends(get_db_service),
):
    """Add a new book."""
    try:
        book = await db_service.create_book(payload)
    except Exception as e:
        logger.error("Error inserting book", error=str(e))
        raise InternalError(detail=str(e))

    logger.info("Book created", book_id=book.id, user_id=user.id)
    return book


@router.get("", response_model=BookListResponse, tags=["Books"])
async def get_books(
    page: int = 1,
    limit: int = 10,
    author: Optional[str] = None,
    genre: Optional[str] = None,
    db_service: APIDatabaseService = Depends(get_db_service),
):
    """
    Get books, newest first.

    - **page**: Page number (starts from 1)
    - **limit**: Books per page (1-100)
    - **author**: Filter by author (partial, case-insensitive)
    - **genre**: Filter by genre (partial, case-insensitive)
    """
    try:
        query_params = BookQueryParams(author=author, genre=genre, page=page, limit=limit)
    except ValueError as e:
        raise ValidationError(str(e))

    try:
        books = await db_service.get_books(query_params)
    except Exception as e:
        logger.error("Error fetching books", error=str(e))
        raise InternalError(detail=str(e))

    return BookListResponse(page=query_params.page, limit=query_params.limit, books=books)


@router.get("/search", response_model=List[BookResponse], tags=["Books"])
async def search_books(
    query: Optional[str] = None,
    db_service: APIDatabaseService = Depends(get_db_service),
):
    """Search books by title or author (partial, case-insensitive)."""
    if not query or not query.strip():
        raise ValidationError("Missing search query")

    try:
        return await db_service.search_books(query.strip())
    except Exception as e:
        logger.error("Error searching books", error=str(e))
        raise InternalError(detail=str(e))


@router.get("/{book_id}", response_model=BookDetailResponse, tags=["Books"])
async def get_book(
    book_id: str,
    review_page: int = Query(1, alias="reviewPage", ge=1, le=MAX_PAGE),
    review_limit: int = Query(5, alias="reviewLimit", ge=1, le=100),
    db_service: APIDatabaseService = Depends(get_db_service),
):
    """Get a book with its average rating and a page of its reviews."""
    try:
        book = await db_service.get_book_by_id(book_id)
        if book is None:
            raise NotFoundError("Book not found")

        average_rating = await db_service.get_average_rating(book_id)
        reviews = await db_service.get_book_reviews(book_id, review_page, review_limit)
    except APIError:
        raise
    except Exception as e:
        logger.error("Error fetching book details", book_id=book_id, error=str(e))
        raise InternalError(detail=str(e))

    return BookDetailResponse(
        book=book,
        average_rating=average_rating,
        reviews=reviews,
        review_page=review_page,
        review_limit=review_limit,
    )


@router.post(
    "/{book_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Reviews"],
)
async def create_review(
    book_id: str,
    payload: ReviewCreate,
    user: User = Depends(get_current_user),
    db_service: APIDatabaseService = Depends(get_db_service),
):
    """Submit a review. Each user may review a book once."""
    try:
        if await db_service.get_book_by_id(book_id) is None:
            raise NotFoundError("Book not found")

        if await db_service.find_review(book_id, user.id) is not None:
            raise ConflictError("You have already reviewed this book")

        review = await db_service.create_review(book_id, user.id, payload.rating, payload.comment)
    except APIError:
        raise
    except Exception as e:
        logger.error("Error submitting review", book_id=book_id, error=str(e))
        raise InternalError(detail=str(e))

    logger.info("Review created", review_id=review.id, book_id=book_id, user_id=user.id)
    return review


async def _get_owned_review(
    db_service: APIDatabaseService,
    review_id: str,
    user: User,
    not_found_message: str,
) -> ReviewResponse:
    review = await db_service.get_review_by_id(review_id)
    if review is None or review.user_id != user.id:
        raise NotFoundError(not_found_message)
    return review


@router.put("/reviews/{review_id}", response_model=ReviewResponse, tags=["Reviews"])
async def update_review(
    review_id: str,
    payload: ReviewUpdate,
    user: User = Depends(get_current_user),
    db_service: APIDatabaseService = Depends(get_db_service),
):
    """
    Update your own review.

    An omitted rating keeps the current one; the comment is replaced only
    when it is sent.
    """
    message = "Review not found or not yours to edit"
    try:
        review = await _get_owned_review(db_service, review_id, user, message)

        rating = payload.rating if payload.rating is not None else review.rating
        comment = payload.comment if "comment" in payload.model_fields_set else review.comment

        updated = await db_service.update_review(review_id, rating, comment)
        if updated is None:
            raise NotFoundError(message)
    except APIError:
        raise
    except Exception as e:
        logger.error("Error updating review", review_id=review_id, error=str(e))
        raise InternalError(detail=str(e))

    return updated


@router.delete("/reviews/{review_id}", response_model=MessageResponse, tags=["Reviews"])
async def delete_review(
    review_id: str,
    user: User = Depends(get_current_user),
    db_service: APIDatabaseService = Depends(get_db_service),
):
    """Delete your own review."""
    message = "Review not found or not yours to delete"
    try:
        await _get_owned_review(db_service, review_id, user, message)
        if not await db_service.delete_review(review_id):
            raise NotFoundError(message)
    except APIError:
        raise
    except Exception as e:
        logger.error("Error deleting review", review_id=review_id, error=str(e))
        raise InternalError(detail=str(e))

    logger.info("Review deleted", review_id=review_id, user_id=user.id)
    return MessageResponse(message="Review deleted successfully")
