"""
Book Pydantic Schemas

Book writes arrive as multipart forms (so a cover image can ride along);
the router collects the form fields and validates them through BookCreate
or BookUpdate. Responses are plain JSON.

Genres travel as a list of names. The admin frontend may post them as
repeated form fields, as one JSON array string, or as a comma-separated
string; normalize_genres() accepts all three.
"""

import json
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_genres(values: list[str] | str | None) -> list[str]:
    """
    Flatten the accepted genre encodings into a de-duplicated list.

    Examples:
        ["Fantasy", "Classic"]         -> ["Fantasy", "Classic"]
        ['["Fantasy", "Classic"]']     -> ["Fantasy", "Classic"]
        ["Fantasy, Classic"]           -> ["Fantasy", "Classic"]
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]

    names: list[str] = []
    for raw in values:
        raw = (raw or "").strip()
        if not raw:
            continue
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValueError("genres must be a JSON array of strings") from e
            if not isinstance(parsed, list):
                raise ValueError("genres must be a JSON array of strings")
            candidates = [str(item) for item in parsed]
        else:
            candidates = raw.split(",")

        for name in candidates:
            name = name.strip()
            if name and name.lower() not in {n.lower() for n in names}:
                if len(name) > 100:
                    raise ValueError("genre names must be at most 100 characters")
                names.append(name)
    return names


class BookBase(BaseModel):
    """Shared book fields."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Book title",
        examples=["The Hobbit"],
    )
    author: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Author name",
        examples=["J.R.R. Tolkien"],
    )
    description: str | None = Field(
        default=None,
        max_length=5000,
        description="Book description or summary",
    )
    year_published: int | None = Field(
        default=None,
        ge=0,
        le=9999,
        description="Year of first publication",
        examples=[1937],
    )
    genres: list[str] = Field(
        default_factory=list,
        description="Genre names",
        examples=[["Fantasy", "Adventure"]],
    )

    @field_validator("title", "author")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("genres", mode="before")
    @classmethod
    def parse_genres(cls, v):
        return normalize_genres(v)


class BookCreate(BookBase):
    """Validated fields of the create-book form."""

    pass


class BookUpdate(BaseModel):
    """
    Validated fields of the update-book form.

    Only fields that were sent are applied (model_dump(exclude_unset=True)).
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    author: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    year_published: int | None = Field(default=None, ge=0, le=9999)
    genres: list[str] | None = Field(default=None)

    @field_validator("title", "author")
    @classmethod
    def must_not_be_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("genres", mode="before")
    @classmethod
    def parse_genres(cls, v):
        if v is None:
            return None
        return normalize_genres(v)


class BookResponse(BaseModel):
    """Schema for book responses."""

    id: int = Field(..., description="Unique book identifier")
    title: str
    author: str
    description: str | None = None
    year_published: int | None = None
    image_url: str | None = Field(default=None, description="Cover image URL")
    genres: list[str] = Field(default_factory=list, description="Genre names")
    average_rating: float = Field(
        default=0.0,
        ge=0,
        le=5,
        description="Mean review rating (0 when there are no reviews)",
    )
    total_reviews: int = Field(default=0, ge=0, description="Number of reviews")
    created_at: datetime
    updated_at: datetime

    @field_validator("genres", mode="before")
    @classmethod
    def genre_objects_to_names(cls, v):
        return [getattr(item, "name", item) for item in v or []]

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "The Hobbit",
                "author": "J.R.R. Tolkien",
                "description": "Bilbo Baggins is swept into a quest...",
                "year_published": 1937,
                "image_url": "https://bucket.s3.us-east-1.amazonaws.com/covers/hobbit.jpg",
                "genres": ["Adventure", "Fantasy"],
                "average_rating": 4.5,
                "total_reviews": 2,
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        },
    )


class BookListResponse(BaseModel):
    """
    Paginated list of books.

    Includes pagination metadata:
    - total: Total number of matching books
    - page: Current page number
    - per_page: Number of items per page
    - pages: Total number of pages
    """

    items: list[BookResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1, le=100)
    pages: int = Field(..., ge=0)


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class FavoriteToggleResponse(BaseModel):
    message: str = Field(..., examples=["Book added to favourites"])
    favorited: bool
    favorite_book_ids: list[int]
