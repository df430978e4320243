"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.

Authentication Gate
===================
get_current_user reads "Authorization: Bearer <token>", verifies the
signature and expiry, resolves the user, and records the caller's
Identity on request.state. Any failure is an AuthenticationError (401).

Role Requirements
=================
Routes declare the role they need in their signature instead of checking
it in the body:

    @router.post("/books")
    def create_book(admin: AdminUser, ...):
        ...

require_role() raises AuthorizationError (403) for any other role.
Resource ownership ("only the author may edit") is checked in the handler
with ensure_owner_or_admin(), since it depends on the loaded resource.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Query, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from bookworld.config import get_settings
from bookworld.database import get_db
from bookworld.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from bookworld.models import Book, Comment, Review, Role, User
from bookworld.services.security import read_access_token

settings = get_settings()

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
DbSession = Annotated[Session, Depends(get_db)]


# =============================================================================
# Pagination Parameters
# =============================================================================
class PaginationParams:
    """
    Common pagination parameters for list endpoints.

    - page: Which page to return (1-indexed)
    - per_page: How many items per page
    - skip: Calculated offset for database query
    """

    def __init__(
        self,
        page: int = Query(
            default=1,
            ge=1,
            description="Page number (1-indexed)",
            examples=[1, 2, 3],
        ),
        per_page: int = Query(
            default=10,
            ge=1,
            le=100,
            description="Number of items per page (max 100)",
            examples=[10, 25, 50],
        ),
    ) -> None:
        self.page = page
        self.per_page = per_page

    @property
    def skip(self) -> int:
        """Number of records to skip (page 1 → 0, page 2 → per_page, ...)."""
        return (self.page - 1) * self.per_page

    def pages_for(self, total: int) -> int:
        """Total number of pages needed for `total` items."""
        return (total + self.per_page - 1) // self.per_page if total > 0 else 0


Pagination = Annotated[PaginationParams, Depends()]


# =============================================================================
# Bearer Authentication
# =============================================================================
# auto_error=False so a missing header reaches get_current_user and gets
# the application's own 401 message and body.

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_prefix}/users/login",
    auto_error=False,
)


@dataclass(frozen=True)
class Identity:
    """Who is making the request, as attached to request.state.identity."""

    user_id: int
    role: Role


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to a user.

    Rejects a missing header, a malformed or tampered token, an expired
    token, and a token whose user no longer exists. The role is read from
    the stored user, so a promotion applies to tokens issued before it.

    Returns:
        User object for the authenticated user

    Raises:
        AuthenticationError: 401 on any verification failure
    """
    if not token:
        raise AuthenticationError("Access denied. No token provided.")

    claims = read_access_token(token)
    if claims is None:
        raise AuthenticationError("Invalid token.")

    user = db.get(User, int(claims["sub"]))
    if user is None:
        raise AuthenticationError("Invalid token.")

    request.state.identity = Identity(user_id=user.id, role=Role(user.role))
    return user


def require_role(role: Role):
    """
    Build a dependency that admits only users holding `role`.

    Usage:
        AdminUser = Annotated[User, Depends(require_role(Role.ADMIN))]
    """

    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role.value:
            raise AuthorizationError(f"Access denied. {role.value.capitalize()} role required.")
        return current_user

    return role_checker


def ensure_owner_or_admin(
    user: User,
    owner_id: int,
    message: str,
    allow_admin: bool = True,
) -> None:
    """
    Check that `user` owns the resource, or is an admin when allowed.

    Raises:
        AuthorizationError: 403 when the check fails
    """
    if user.id == owner_id:
        return
    if allow_admin and user.is_admin:
        return
    raise AuthorizationError(message)


# Type aliases for cleaner route signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_role(Role.ADMIN))]


# =============================================================================
# Resource Lookups
# =============================================================================
# Nested routes (/books/{book_id}/reviews/{review_id}/comments/{comment_id})
# check that every id belongs to its parent, so a review id from another
# book is reported as not found.

def get_book_or_404(db: Session, book_id: int) -> Book:
    """Get a book by ID, with genres loaded, or raise NotFoundError."""
    stmt = (
        select(Book)
        .options(selectinload(Book.genres))
        .where(Book.id == book_id)
    )
    book = db.execute(stmt).scalar_one_or_none()
    if book is None:
        raise NotFoundError("Book not found")
    return book


def get_review_or_404(db: Session, book_id: int, review_id: int) -> Review:
    """Get a review of the given book, with its author loaded, or raise NotFoundError."""
    get_book_or_404(db, book_id)
    stmt = (
        select(Review)
        .options(selectinload(Review.user))
        .where(Review.id == review_id, Review.book_id == book_id)
    )
    review = db.execute(stmt).scalar_one_or_none()
    if review is None:
        raise NotFoundError("Review not found")
    return review


def get_comment_or_404(db: Session, review: Review, comment_id: int) -> Comment:
    """Get a comment on the given review, or raise NotFoundError."""
    stmt = (
        select(Comment)
        .options(selectinload(Comment.user))
        .where(Comment.id == comment_id, Comment.review_id == review.id)
    )
    comment = db.execute(stmt).scalar_one_or_none()
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def get_user_or_404(db: Session, user_id: int) -> User:
    """Get a user by ID or raise NotFoundError."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user
