"""
Review schemas.

Ratings are whole stars from 1 to 5. Content is trimmed and may not be
blank. The one-review-per-book rule is checked by the router and backed by
a unique constraint.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookworld.schemas.user import UserPublicResponse


def _clean_content(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Review content must not be empty")
    return v


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Whole stars, 1 to 5", examples=[4])
    content: str = Field(..., min_length=1, max_length=5000, examples=["Slow start, brilliant ending."])

    @field_validator("content")
    @classmethod
    def clean_content(cls, v):
        return _clean_content(v)


class ReviewUpdate(BaseModel):
    """Partial update; omitted fields keep their value."""

    rating: int | None = Field(default=None, ge=1, le=5)
    content: str | None = Field(default=None, min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def clean_content(cls, v):
        return _clean_content(v)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    book_id: int
    user_id: int
    rating: int
    content: str
    likes_count: int = 0
    comment_count: int = Field(default=0, description="Top-level comments only")
    created_at: datetime
    updated_at: datetime
    user: UserPublicResponse


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1, le=100)
    pages: int = Field(..., ge=0)


class LikeToggleResponse(BaseModel):
    """Outcome of a like toggle on a review or a comment."""

    message: str = Field(..., examples=["Review liked successfully"])
    liked: bool
    likes_count: int = Field(..., ge=0)
