"""
Catalog Service

Write paths for books and reviews that touch more than one table.

- Genres are resolved by name, creating missing ones.
- Removing a review removes its comment forest and likes, then
  recomputes the owning book's rating aggregate.
- Removing a book removes every review on it (as above) and its rows in
  users' favourites.

None of these functions commit; route handlers commit once so each
operation is all-or-nothing.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bookworld.models import Book, Genre, Review
from bookworld.services.comment_tree import purge_review_comments
from bookworld.services.ratings import recalculate_book_rating

logger = logging.getLogger(__name__)


def resolve_genres(db: Session, names: list[str]) -> list[Genre]:
    """
    Map genre names to Genre rows, creating the missing ones.

    Matching is case-insensitive; the first spelling seen is kept.
    """
    genres: list[Genre] = []
    seen: set[str] = set()
    for name in names:
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)

        genre = db.execute(
            select(Genre).where(func.lower(Genre.name) == key)
        ).scalar_one_or_none()
        if genre is None:
            genre = Genre(name=name)
            db.add(genre)
            logger.info(f"Created genre: {name}")
        genres.append(genre)
    return genres


def remove_review(db: Session, review: Review) -> None:
    """Delete a review with its comments and likes, then refresh the book aggregate."""
    book_id = review.book_id
    purge_review_comments(db, review.id)
    db.delete(review)
    recalculate_book_rating(db, book_id)
    logger.info(f"Deleted review {review.id} on book {book_id}")


def remove_book(db: Session, book: Book) -> int:
    """
    Delete a book, all of its reviews, and its favourite entries.

    Returns:
        Number of reviews removed
    """
    review_ids = db.execute(
        select(Review.id).where(Review.book_id == book.id)
    ).scalars().all()

    for review_id in review_ids:
        purge_review_comments(db, review_id)

    # Reviews (and their likes) follow Book.reviews' cascade; favourite rows
    # are removed through Book.favorited_by.
    db.delete(book)
    db.flush()

    logger.info(f"Deleted book {book.id} with {len(review_ids)} reviews")
    return len(review_ids)
