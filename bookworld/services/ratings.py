"""
Ratings Service

Maintains the denormalized rating aggregate on the Book model:
- average_rating: The mean of all current review ratings
- total_reviews: Number of current reviews

The aggregate is always recomputed from the full set of live reviews
rather than adjusted incrementally, so any drift (for example from two
concurrent review writes) is corrected by the next mutation on that book.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bookworld.models import Book, Review

logger = logging.getLogger(__name__)


def recalculate_book_rating(db: Session, book_id: int) -> Book | None:
    """
    Recalculate and update a book's rating aggregate.

    Called after any review create/update/delete operation. Pending
    changes are flushed first so the query sees them. The caller owns
    the transaction and commits.

    The mean is stored unrounded; rounding is left to clients.

    Args:
        db: Database session
        book_id: ID of the book to update

    Returns:
        The updated Book, or None if it no longer exists
    """
    db.flush()

    stmt = select(
        func.avg(Review.rating),
        func.count(Review.id),
    ).where(Review.book_id == book_id)

    avg_rating, review_count = db.execute(stmt).one()

    book = db.get(Book, book_id)
    if book is None:
        return None

    book.average_rating = float(avg_rating) if avg_rating is not None else 0.0
    book.total_reviews = int(review_count or 0)
    logger.debug(
        f"Book {book_id} rating recalculated: "
        f"avg={book.average_rating} count={book.total_reviews}"
    )
    return book


def recalculate_all_book_ratings(db: Session) -> int:
    """
    Recalculate rating aggregates for all books and commit.

    Used by the seed script and for repairing data by hand.

    Returns:
        Number of books updated
    """
    book_ids = db.execute(select(Book.id)).scalars().all()

    for book_id in book_ids:
        recalculate_book_rating(db, book_id)

    db.commit()
    return len(book_ids)
