"""
Users Router

Accounts, sign-in, profiles, favourites and role management.

Endpoints:
- POST /users/signup - Create an account
- POST /users/login - Exchange email/password for a bearer token
- POST /users/google-auth - Exchange a Google ID token for a bearer token
- GET  /users/me - The caller's profile (with favourite and liked ids)
- PUT  /users/me - Update the caller's profile
- GET  /users/favourites - The caller's favourite books
- PUT  /users/favourites - Toggle a book in the caller's favourites
- GET  /users - List users (admin only)
- GET  /users/{user_id} - Public profile
- PUT  /users/{user_id}/promote - Make a user an admin (admin only)
- POST /users/{user_id}/report - Flag another user for moderation

Fixed paths are registered before /users/{user_id} so they are matched first.
"""

import logging

from fastapi import APIRouter, Request, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookworld.config import get_settings
from bookworld.dependencies import (
    AdminUser,
    CurrentUser,
    DbSession,
    Pagination,
    get_book_or_404,
    get_user_or_404,
)
from bookworld.exceptions import AuthenticationError, ConflictError, ValidationError
from bookworld.models import Role, User, UserReport
from bookworld.schemas import (
    BookResponse,
    FavoriteToggleRequest,
    FavoriteToggleResponse,
    GoogleAuthRequest,
    LoginRequest,
    PromoteResponse,
    ReportCreate,
    ReportResponse,
    TokenResponse,
    UserCreate,
    UserListResponse,
    UserPublicResponse,
    UserResponse,
    UserUpdate,
)
from bookworld.services.oauth import get_or_create_oauth_user, verify_google_credential
from bookworld.services.rate_limiter import limiter
from bookworld.services.reactions import toggle_favorite
from bookworld.services.security import create_user_token, hash_password, verify_password

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/users",
    tags=["Users"],
)

DUPLICATE_EMAIL_MESSAGE = "Email already exists"


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def _token_response(user: User, message: str) -> TokenResponse:
    return TokenResponse(
        message=message,
        access_token=create_user_token(user),
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


# =============================================================================
# Authentication
# =============================================================================


@router.post(
    "/signup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
@limiter.limit(settings.rate_limit_auth)
def signup(
    request: Request,
    user_in: UserCreate,
    db: DbSession,
) -> UserResponse:
    """
    Register a new account with email and password.

    Raises:
        ConflictError: 400 if the email is already registered
    """
    if find_user_by_email(db, user_in.email) is not None:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    user = User(
        email=user_in.email,
        hashed_password=hash_password(user_in.password),
        first_name=user_in.first_name,
        last_name=user_in.last_name,
    )

    # Two signups racing past the check above meet the unique email index
    try:
        with db.begin_nested():
            db.add(user)
            db.flush()
    except IntegrityError as e:
        logger.warning(f"Concurrent signup for {user_in.email}: {e}")
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from e

    db.commit()
    db.refresh(user)

    logger.info(f"New user registered: {user.email}")
    return UserResponse.model_validate(user)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log in",
)
@limiter.limit(settings.rate_limit_auth)
def login(
    request: Request,
    credentials: LoginRequest,
    db: DbSession,
) -> TokenResponse:
    """
    Authenticate with email and password and receive a bearer token.

    Raises:
        AuthenticationError: 401 for an unknown email or wrong password
    """
    user = find_user_by_email(db, credentials.email)

    if user is None or not verify_password(credentials.password, user.hashed_password):
        logger.warning(f"Failed login attempt for {credentials.email}")
        raise AuthenticationError("Invalid email or password")

    logger.info(f"User logged in: {user.email}")
    return _token_response(user, "Login successful")


@router.post(
    "/google-auth",
    response_model=TokenResponse,
    summary="Sign in with Google",
    description="Verifies a Google ID token; creates the account on first sign-in.",
)
@limiter.limit(settings.rate_limit_auth)
def google_auth(
    request: Request,
    payload: GoogleAuthRequest,
    db: DbSession,
) -> TokenResponse:
    """
    Raises:
        AuthenticationError: 401 if the Google token is invalid
        ValidationError: 400 if Google sign-in is not configured
    """
    oauth_data = verify_google_credential(payload.token)
    user = get_or_create_oauth_user(db, oauth_data)
    return _token_response(user, "Google authentication successful")


# =============================================================================
# Current User
# =============================================================================


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get my profile",
)
def get_me(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.put(
    "/me",
    response_model=UserResponse,
    summary="Update my profile",
)
@limiter.limit(settings.rate_limit_write)
def update_me(
    request: Request,
    user_in: UserUpdate,
    db: DbSession,
    current_user: CurrentUser,
) -> UserResponse:
    # Names arrive stripped and non-null; picture may be null to clear it
    update_data = user_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    logger.info(f"User {current_user.id} updated profile fields: {sorted(update_data)}")
    return UserResponse.model_validate(current_user)


@router.get(
    "/favourites",
    response_model=list[BookResponse],
    summary="List my favourite books",
)
def list_favourites(current_user: CurrentUser) -> list[BookResponse]:
    return [BookResponse.model_validate(book) for book in current_user.favorite_books]


@router.put(
    "/favourites",
    response_model=FavoriteToggleResponse,
    summary="Add or remove a favourite book",
)
@limiter.limit(settings.rate_limit_write)
def toggle_favourite(
    request: Request,
    payload: FavoriteToggleRequest,
    db: DbSession,
    current_user: CurrentUser,
) -> FavoriteToggleResponse:
    """
    Toggle a book in the caller's favourites.

    Raises:
        NotFoundError: 404 if the book does not exist
    """
    book = get_book_or_404(db, payload.book_id)
    favorited = toggle_favorite(db, current_user, book)

    return FavoriteToggleResponse(
        message="Book added to favourites" if favorited else "Book removed from favourites",
        favorited=favorited,
        favorite_book_ids=current_user.favorite_book_ids,
    )


# =============================================================================
# Admin
# =============================================================================


@router.get(
    "",
    response_model=UserListResponse,
    summary="List users",
    description="Admin only.",
)
def list_users(
    db: DbSession,
    admin: AdminUser,
    pagination: Pagination,
) -> UserListResponse:
    total = db.execute(select(func.count(User.id))).scalar() or 0
    users = db.execute(
        select(User)
        .order_by(User.id)
        .offset(pagination.skip)
        .limit(pagination.per_page)
    ).scalars().all()

    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages_for(total),
    )


@router.put(
    "/{user_id}/promote",
    response_model=PromoteResponse,
    summary="Promote a user to admin",
    description="Admin only.",
)
def promote_user(
    user_id: int,
    db: DbSession,
    admin: AdminUser,
) -> PromoteResponse:
    user = get_user_or_404(db, user_id)
    user.role = Role.ADMIN.value
    db.commit()
    db.refresh(user)

    logger.info(f"Admin {admin.id} promoted user {user_id} to admin")
    return PromoteResponse(
        message="User promoted to admin",
        user=UserResponse.model_validate(user),
    )


# =============================================================================
# Moderation
# =============================================================================


@router.post(
    "/{user_id}/report",
    response_model=ReportResponse,
    summary="Report a user",
)
@limiter.limit(settings.rate_limit_write)
def report_user(
    request: Request,
    user_id: int,
    report_in: ReportCreate,
    db: DbSession,
    current_user: CurrentUser,
) -> ReportResponse:
    """
    Flag another account for moderation.

    Raises:
        NotFoundError: 404 if the user does not exist
        ValidationError: 400 when reporting yourself
    """
    reported = get_user_or_404(db, user_id)
    if reported.id == current_user.id:
        raise ValidationError("You cannot report yourself")

    report = UserReport(
        reporter_id=current_user.id,
        reported_user_id=reported.id,
        reason=report_in.reason,
        description=report_in.description,
    )
    db.add(report)
    db.commit()

    logger.info(f"User {current_user.id} reported user {reported.id}: {report.reason}")
    return ReportResponse(message="User reported successfully", report_id=report.id)


# =============================================================================
# Public Profiles
# =============================================================================


@router.get(
    "/{user_id}",
    response_model=UserPublicResponse,
    summary="Get a user's public profile",
)
def get_user_profile(user_id: int, db: DbSession) -> UserPublicResponse:
    """
    Raises:
        NotFoundError: 404 if the user does not exist
    """
    return UserPublicResponse.model_validate(get_user_or_404(db, user_id))
