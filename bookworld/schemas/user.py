"""
User Pydantic Schemas

These schemas define the shape of data for account-related API operations.

Schemas:
- UserCreate: Signup data (email, password, names)
- LoginRequest / GoogleAuthRequest: Credentials exchanged for a token
- UserUpdate: Profile update fields
- UserResponse: The caller's own profile, with favourites and likes
- UserPublicResponse: What other users may see
- TokenResponse: Bearer token plus the signed-in profile
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator


# =============================================================================
# Request Schemas
# =============================================================================


class UserCreate(BaseModel):
    """
    Schema for signup.

    Example request body:
    {
        "email": "jane@example.com",
        "password": "bookworm42",
        "first_name": "Jane",
        "last_name": "Doe"
    }
    """

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["jane@example.com"],
    )
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password (min 8 chars, at least one letter and one number)",
        examples=["bookworm42"],
    )
    first_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Given name",
        examples=["Jane"],
    )
    last_name: str = Field(
        default="",
        max_length=100,
        description="Family name",
        examples=["Doe"],
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        """
        Validate password strength.

        Requirements:
        - At least 8 characters (enforced by min_length)
        - At least 1 letter
        - At least 1 number
        """
        if not re.search(r"[A-Za-z]", v):
            raise ValueError("Password must contain at least one letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one number")
        return v


class LoginRequest(BaseModel):
    """Email/password login."""

    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class GoogleAuthRequest(BaseModel):
    """Google sign-in: the ID token obtained by the frontend."""

    token: str = Field(..., min_length=1, description="Google ID token")


class UserUpdate(BaseModel):
    """
    Schema for updating the caller's profile.

    All fields are optional for partial updates.
    """

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    picture: str | None = Field(
        default=None,
        max_length=500,
        description="URL to profile picture; null clears it",
    )

    @field_validator("first_name", "last_name")
    @classmethod
    def names_must_be_present(cls, v: str | None, info: ValidationInfo) -> str:
        # Names are stored NOT NULL; only picture may be cleared
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        v = v.strip()
        if info.field_name == "first_name" and not v:
            raise ValueError("first_name cannot be blank")
        return v


class FavoriteToggleRequest(BaseModel):
    """Book to add to or remove from the caller's favourites."""

    book_id: int = Field(..., ge=1, description="Book ID")


# =============================================================================
# Response Schemas
# =============================================================================


class UserPublicResponse(BaseModel):
    """
    Public user profile, embedded in reviews and comments.

    Excludes email and account fields.
    """

    id: int = Field(..., description="Unique user identifier")
    first_name: str = Field(..., description="Given name")
    last_name: str = Field(default="", description="Family name")
    picture: str | None = Field(default=None, description="Profile picture URL")

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    """
    Schema for the caller's own profile.

    SECURITY: Never includes the password hash.
    """

    id: int = Field(..., description="Unique user identifier", examples=[1, 42])
    email: EmailStr = Field(..., description="User's email address")
    first_name: str = Field(..., description="Given name")
    last_name: str = Field(default="", description="Family name")
    picture: str | None = Field(default=None, description="Profile picture URL")
    role: str = Field(..., description="Access role (user, admin)")
    auth_provider: str = Field(..., description="Authentication provider (local, google)")
    created_at: datetime = Field(..., description="When the user registered")

    favorite_book_ids: list[int] = Field(default_factory=list, description="Favourite book IDs")
    liked_review_ids: list[int] = Field(default_factory=list, description="Liked review IDs")
    liked_comment_ids: list[int] = Field(default_factory=list, description="Liked comment IDs")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "email": "jane@example.com",
                "first_name": "Jane",
                "last_name": "Doe",
                "picture": None,
                "role": "user",
                "auth_provider": "local",
                "created_at": "2024-01-15T10:30:00Z",
                "favorite_book_ids": [3, 7],
                "liked_review_ids": [12],
                "liked_comment_ids": [],
            }
        },
    )


class UserListResponse(BaseModel):
    """Paginated list of users (admin only)."""

    items: list[UserResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1, le=100)
    pages: int = Field(..., ge=0)


class TokenResponse(BaseModel):
    """
    Bearer token issued by login and Google sign-in.

    Clients send it back as "Authorization: Bearer <access_token>".
    """

    message: str = Field(..., examples=["Login successful"])
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserResponse


class PromoteResponse(BaseModel):
    message: str
    user: UserResponse


class ReportCreate(BaseModel):
    """Why the caller is flagging another user."""

    reason: str = Field(..., min_length=1, max_length=200, examples=["Harassment in comments"])
    description: str | None = Field(default=None, max_length=2000)

    @field_validator("reason")
    @classmethod
    def reason_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason cannot be blank")
        return v


class ReportResponse(BaseModel):
    message: str = Field(..., examples=["User reported successfully"])
    report_id: int
