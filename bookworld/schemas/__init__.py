"""
Pydantic Schemas Package

Schema Naming Convention:
- XxxCreate: Fields required when creating a new record
- XxxUpdate: Fields allowed when updating (all optional)
- XxxResponse: Fields returned in API responses
"""

from bookworld.schemas.book import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    FavoriteToggleResponse,
    MessageResponse,
)
from bookworld.schemas.comment import CommentCreate, CommentResponse
from bookworld.schemas.review import (
    LikeToggleResponse,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from bookworld.schemas.user import (
    FavoriteToggleRequest,
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

__all__ = [
    "BookCreate",
    "BookListResponse",
    "BookResponse",
    "BookUpdate",
    "FavoriteToggleResponse",
    "MessageResponse",
    "CommentCreate",
    "CommentResponse",
    "LikeToggleResponse",
    "ReviewCreate",
    "ReviewListResponse",
    "ReviewResponse",
    "ReviewUpdate",
    "FavoriteToggleRequest",
    "GoogleAuthRequest",
    "LoginRequest",
    "PromoteResponse",
    "ReportCreate",
    "ReportResponse",
    "TokenResponse",
    "UserCreate",
    "UserListResponse",
    "UserPublicResponse",
    "UserResponse",
    "UserUpdate",
]
