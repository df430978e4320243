"""
Books Router

Catalog endpoints.

- Anyone can list, search and read books.
- Only admins can create, update or delete them (AdminUser).
- Writes accept multipart forms so a cover image can be attached. The image
  is uploaded before the database is touched, so a failed upload never
  leaves a half-written book behind.
- Deleting a book also deletes its reviews (with their comment threads and
  likes) and removes it from every user's favourites, in one transaction.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

from bookworld.config import get_settings
from bookworld.dependencies import AdminUser, DbSession, Pagination, get_book_or_404
from bookworld.exceptions import ValidationError, format_validation_errors
from bookworld.models import Book, Genre
from bookworld.schemas import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    MessageResponse,
)
from bookworld.services.cache import (
    cache_get,
    cache_set,
    invalidate_book_cache,
    make_cache_key,
)
from bookworld.services.catalog import remove_book, resolve_genres
from bookworld.services.rate_limiter import limiter
from bookworld.services.storage import CoverStorage, get_cover_storage

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={
        404: {"description": "Book not found"},
    },
)


# =============================================================================
# Helper Functions
# =============================================================================
def _validate_form(schema, data: dict):
    try:
        return schema(**data)
    except PydanticValidationError as e:
        raise ValidationError(format_validation_errors(e.errors())) from e


def _upload_cover(storage: CoverStorage, image: UploadFile | None) -> str | None:
    """
    Upload the attached cover, if any, and return its URL.

    Raises:
        ValidationError: Not an image, or larger than max_cover_bytes
        UnexpectedError: The storage backend failed
    """
    if image is None or not image.filename:
        return None

    content_type = image.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError("Cover image must be an image file")
    if image.size is not None and image.size > settings.max_cover_bytes:
        raise ValidationError(
            f"Cover image must be at most {settings.max_cover_bytes // (1024 * 1024)} MB"
        )

    return storage.upload_cover(image.file, image.filename, content_type)


# =============================================================================
# Read Endpoints
# =============================================================================
@router.get(
    "",
    response_model=BookListResponse,
    summary="List or search books",
    description="Paginated book list. `q` matches title or author, `genre` matches a genre name.",
)
@limiter.limit(settings.rate_limit_default)
def list_books(
    request: Request,
    db: DbSession,
    pagination: Pagination,
    q: str | None = Query(default=None, max_length=100, description="Search title or author"),
    genre: str | None = Query(default=None, max_length=100, description="Genre name"),
):
    """
    List books ordered by title, optionally filtered.

    Results are cached per query and page.
    """
    q = q.strip() if q else None
    genre = genre.strip() if genre else None

    cache_key = make_cache_key(
        "books", q=q, genre=genre, page=pagination.page, per_page=pagination.per_page
    )
    cached = cache_get(cache_key)
    if cached is not None:
        return cached

    stmt = select(Book)
    if q:
        search_term = f"%{q.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Book.title).like(search_term),
                func.lower(Book.author).like(search_term),
            )
        )
    if genre:
        stmt = stmt.where(Book.genres.any(func.lower(Genre.name) == genre.lower()))

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar() or 0

    books = db.execute(
        stmt
        .options(selectinload(Book.genres))
        .order_by(Book.title, Book.id)
        .offset(pagination.skip)
        .limit(pagination.per_page)
    ).scalars().all()

    response = BookListResponse(
        items=[BookResponse.model_validate(book) for book in books],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
        pages=pagination.pages_for(total),
    )
    cache_set(cache_key, response.model_dump(mode="json"), ttl=settings.cache_ttl_books)
    return response


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get a book by ID",
)
@limiter.limit(settings.rate_limit_default)
def get_book(
    request: Request,
    book_id: int,
    db: DbSession,
):
    """
    Get a single book by its ID.

    Raises:
        NotFoundError: 404 if book not found
    """
    cache_key = make_cache_key("book", book_id)
    cached = cache_get(cache_key)
    if cached is not None:
        return cached

    book = get_book_or_404(db, book_id)
    response = BookResponse.model_validate(book)
    cache_set(cache_key, response.model_dump(mode="json"), ttl=settings.cache_ttl_books)
    return response


@router.post(
    "/{book_id}/log-visit",
    response_model=MessageResponse,
    summary="Record a book page visit",
)
@limiter.limit(settings.rate_limit_default)
def log_visit(
    request: Request,
    book_id: int,
    db: DbSession,
) -> MessageResponse:
    """Acknowledge a visit beacon from the book detail page."""
    book = get_book_or_404(db, book_id)
    logger.info(f"Visit logged for book {book.id}")
    return MessageResponse(message="Visit logged")


# =============================================================================
# Admin Endpoints
# =============================================================================
@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a book",
    description="Admin only. Multipart form; `image` is an optional cover file.",
)
@limiter.limit(settings.rate_limit_write)
def create_book(
    request: Request,
    db: DbSession,
    admin: AdminUser,
    storage: CoverStorage = Depends(get_cover_storage),
    title: str = Form(...),
    author: str = Form(...),
    description: str | None = Form(None),
    year_published: int | None = Form(None),
    genres: list[str] | None = Form(None),
    image: UploadFile | None = File(None),
) -> BookResponse:
    """
    Create a new book.

    Order of operations:
    1. Validate the form
    2. Upload the cover (if any)
    3. Insert the book

    Raises:
        ValidationError: 400 for invalid fields or a non-image upload
        UnexpectedError: 500 if the cover upload fails (nothing is saved)
    """
    book_in = _validate_form(
        BookCreate,
        {
            "title": title,
            "author": author,
            "description": description,
            "year_published": year_published,
            "genres": genres or [],
        },
    )

    image_url = _upload_cover(storage, image)

    book = Book(
        title=book_in.title,
        author=book_in.author,
        description=book_in.description,
        year_published=book_in.year_published,
        image_url=image_url,
    )
    book.genres = resolve_genres(db, book_in.genres)
    db.add(book)
    db.commit()

    invalidate_book_cache()
    logger.info(f"Admin {admin.id} created book {book.id}: {book.title}")

    return BookResponse.model_validate(get_book_or_404(db, book.id))


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    summary="Update a book",
    description="Admin only. Only the fields sent are changed; `image` replaces the cover.",
)
@limiter.limit(settings.rate_limit_write)
def update_book(
    request: Request,
    book_id: int,
    db: DbSession,
    admin: AdminUser,
    storage: CoverStorage = Depends(get_cover_storage),
    title: str | None = Form(None),
    author: str | None = Form(None),
    description: str | None = Form(None),
    year_published: int | None = Form(None),
    genres: list[str] | None = Form(None),
    image: UploadFile | None = File(None),
) -> BookResponse:
    """
    Update an existing book.

    Raises:
        NotFoundError: 404 if book not found
        ValidationError: 400 for invalid fields
        UnexpectedError: 500 if the cover upload fails (book unchanged)
    """
    book = get_book_or_404(db, book_id)

    submitted = {
        "title": title,
        "author": author,
        "description": description,
        "year_published": year_published,
        "genres": genres,
    }
    book_in = _validate_form(
        BookUpdate,
        {key: value for key, value in submitted.items() if value is not None},
    )
    update_data = book_in.model_dump(exclude_unset=True)

    image_url = _upload_cover(storage, image)

    genre_names = update_data.pop("genres", None)
    for field, value in update_data.items():
        setattr(book, field, value)
    if genre_names is not None:
        book.genres = resolve_genres(db, genre_names)
    if image_url is not None:
        book.image_url = image_url

    db.commit()

    invalidate_book_cache(book_id)
    logger.info(f"Admin {admin.id} updated book {book_id}")

    return BookResponse.model_validate(get_book_or_404(db, book_id))


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a book",
    description="Admin only. Also deletes the book's reviews and removes it from favourites.",
)
@limiter.limit(settings.rate_limit_write)
def delete_book(
    request: Request,
    book_id: int,
    db: DbSession,
    admin: AdminUser,
) -> None:
    """
    Delete a book and everything hanging off it.

    Raises:
        NotFoundError: 404 if book not found
    """
    book = get_book_or_404(db, book_id)
    removed_reviews = remove_book(db, book)
    db.commit()

    invalidate_book_cache(book_id)
    logger.info(f"Admin {admin.id} deleted book {book_id} ({removed_reviews} reviews)")
