"""
Comment Pydantic Schemas

- CommentCreate: Body for a top-level comment or a reply
- CommentResponse: A comment with its poster's public profile
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookworld.schemas.user import UserPublicResponse


class CommentCreate(BaseModel):
    """
    Schema for posting a comment or a reply.

    Example request body:
    {
        "content": "Totally agree about the ending!"
    }
    """

    content: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Comment text",
    )

    @field_validator("content")
    @classmethod
    def content_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment content must not be empty")
        return v


class CommentResponse(BaseModel):
    """A single comment; replies are fetched per comment."""

    id: int
    review_id: int
    user_id: int
    parent_id: int | None = Field(default=None, description="Parent comment, null when top-level")
    content: str
    likes_count: int = Field(default=0)
    reply_count: int = Field(default=0, description="Number of direct replies")
    created_at: datetime
    user: UserPublicResponse

    model_config = ConfigDict(from_attributes=True)
