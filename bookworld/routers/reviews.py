"""
Reviews Router

Endpoints for book reviews.

Endpoints:
- GET /books/{book_id}/reviews - List reviews for a book
- GET /books/{book_id}/reviews/me - The caller's review of the book (or null)
- POST /books/{book_id}/reviews - Create a review (authenticated)
- GET /books/{book_id}/reviews/{review_id} - Get a specific review
- PUT /books/{book_id}/reviews/{review_id} - Update a review (author only)
- DELETE /books/{book_id}/reviews/{review_id} - Delete a review (author or admin)
- POST /books/{book_id}/reviews/{review_id}/like - Toggle a like

Business Rules:
- One review per user per book (enforced by database constraint)
- Every create/update/delete recomputes the book's rating aggregate
- Likes never affect the rating aggregate
"""

import logging

from fastapi import APIRouter, Request, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from bookworld.config import get_settings
from bookworld.dependencies import (
    CurrentUser,
    DbSession,
    Pagination,
    ensure_owner_or_admin,
    get_book_or_404,
    get_review_or_404,
)
from bookworld.exceptions import ConflictError
from bookworld.models import Review
from bookworld.schemas import (
    LikeToggleResponse,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from bookworld.services.cache import invalidate_book_cache
from bookworld.services.catalog import remove_review
from bookworld.services.rate_limiter import limiter
from bookworld.services.ratings import recalculate_book_rating
from bookworld.services.reactions import toggle_review_like

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(
    prefix="/books/{book_id}/reviews",
    tags=["Reviews"],
    responses={
        404: {"description": "Review or book not found"},
    },
)

DUPLICATE_REVIEW_MESSAGE = "You have already reviewed this book"


def find_user_review(db: Session, book_id: int, user_id: int) -> Review | None:
    """The review `user_id` wrote for `book_id`, with its author loaded."""
    return db.execute(
        select(Review)
        .options(selectinload(Review.user))
        .where(Review.book_id == book_id, Review.user_id == user_id)
    ).scalar_one_or_none()


# =============================================================================
# List and Read
# =============================================================================


@router.get(
    "",
    response_model=ReviewListResponse,
    summary="List reviews for a book",
    description="Get a paginated list of reviews for a specific book, newest first.",
)
@limiter.limit(settings.rate_limit_default)
def list_book_reviews(
    request: Request,
    book_id: int,
    db: DbSession,
    pagination: Pagination,
) -> ReviewListResponse:
    """
    List all reviews for a book.

    Raises:
        NotFoundError: 404 if the book does not exist
    """
    get_book_or_404(db, book_id)

    total = db.execute(
        select(func.count(Review.id)).where(Review.book_id == book_id)
    ).scalar() or 0

    reviews = db.execute(
        select(Review)
        .options(selectinload(Review.user))
        .where(Review.book_id == book_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .offset(pagination.skip)
        .limit(pagination.per_page)
    ).scalars().all()

    return ReviewListResponse(
        items=[ReviewResponse.model_validate(r) for r in reviews],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages_for(total),
    )


@router.get(
    "/me",
    response_model=ReviewResponse | None,
    summary="Get my review of this book",
    description="Returns the caller's review of the book, or null if they have not reviewed it.",
)
@limiter.limit(settings.rate_limit_default)
def get_my_review(
    request: Request,
    book_id: int,
    db: DbSession,
    current_user: CurrentUser,
) -> ReviewResponse | None:
    get_book_or_404(db, book_id)
    review = find_user_review(db, book_id, current_user.id)
    return ReviewResponse.model_validate(review) if review else None


@router.get(
    "/{review_id}",
    response_model=ReviewResponse,
    summary="Get a review",
)
@limiter.limit(settings.rate_limit_default)
def get_review(
    request: Request,
    book_id: int,
    review_id: int,
    db: DbSession,
) -> ReviewResponse:
    return ReviewResponse.model_validate(get_review_or_404(db, book_id, review_id))


# =============================================================================
# Create / Update / Delete
# =============================================================================


@router.post(
    "",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a review",
    description="Create a new review for a book. Requires authentication.",
)
@limiter.limit(settings.rate_limit_write)
def create_review(
    request: Request,
    book_id: int,
    review_in: ReviewCreate,
    db: DbSession,
    current_user: CurrentUser,
) -> ReviewResponse:
    """
    Create a new review for a book.

    Users can only review each book once.

    Raises:
        NotFoundError: 404 if the book does not exist
        ConflictError: 400 if the user already reviewed this book
    """
    get_book_or_404(db, book_id)

    if find_user_review(db, book_id, current_user.id) is not None:
        raise ConflictError(DUPLICATE_REVIEW_MESSAGE)

    review = Review(
        book_id=book_id,
        user_id=current_user.id,
        rating=review_in.rating,
        content=review_in.content,
    )

    # A concurrent request may insert the same (book, user) pair between the
    # check above and this flush; only the savepoint is rolled back then.
    try:
        with db.begin_nested():
            db.add(review)
            db.flush()
    except IntegrityError as e:
        logger.warning(f"Duplicate review for book {book_id} by user {current_user.id}: {e}")
        raise ConflictError(DUPLICATE_REVIEW_MESSAGE) from e

    recalculate_book_rating(db, book_id)
    db.commit()

    invalidate_book_cache(book_id)
    logger.info(f"Review {review.id} created for book {book_id} by user {current_user.id}")

    return ReviewResponse.model_validate(get_review_or_404(db, book_id, review.id))


@router.put(
    "/{review_id}",
    response_model=ReviewResponse,
    summary="Update a review",
    description="Update your own review. Only the review author can update it.",
)
@limiter.limit(settings.rate_limit_write)
def update_review(
    request: Request,
    book_id: int,
    review_id: int,
    review_in: ReviewUpdate,
    db: DbSession,
    current_user: CurrentUser,
) -> ReviewResponse:
    """
    Update an existing review.

    Raises:
        NotFoundError: 404 if the book or review does not exist
        AuthorizationError: 403 if the caller is not the author
    """
    review = get_review_or_404(db, book_id, review_id)
    ensure_owner_or_admin(
        current_user,
        review.user_id,
        "You can only update your own reviews",
        allow_admin=False,
    )

    update_data = review_in.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(review, field, value)

    recalculate_book_rating(db, book_id)
    db.commit()

    invalidate_book_cache(book_id)
    logger.info(f"Review {review_id} updated by user {current_user.id}")

    return ReviewResponse.model_validate(get_review_or_404(db, book_id, review_id))


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a review",
    description="Delete your own review, or any review as an admin. Removes its comments too.",
)
@limiter.limit(settings.rate_limit_write)
def delete_review(
    request: Request,
    book_id: int,
    review_id: int,
    db: DbSession,
    current_user: CurrentUser,
) -> None:
    """
    Delete a review with its comment forest and likes.

    Raises:
        NotFoundError: 404 if the book or review does not exist
        AuthorizationError: 403 if the caller is neither author nor admin
    """
    review = get_review_or_404(db, book_id, review_id)
    ensure_owner_or_admin(
        current_user,
        review.user_id,
        "You can only delete your own reviews",
    )

    remove_review(db, review)
    db.commit()

    invalidate_book_cache(book_id)
    logger.info(f"Review {review_id} deleted by user {current_user.id}")


# =============================================================================
# Likes
# =============================================================================


@router.post(
    "/{review_id}/like",
    response_model=LikeToggleResponse,
    summary="Like or unlike a review",
)
@limiter.limit(settings.rate_limit_write)
def like_review(
    request: Request,
    book_id: int,
    review_id: int,
    db: DbSession,
    current_user: CurrentUser,
) -> LikeToggleResponse:
    """Toggle the caller's like on a review."""
    review = get_review_or_404(db, book_id, review_id)
    liked = toggle_review_like(db, review, current_user)

    return LikeToggleResponse(
        message="Review liked successfully" if liked else "Review unliked successfully",
        liked=liked,
        likes_count=review.likes_count,
    )
