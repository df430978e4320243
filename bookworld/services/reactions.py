"""
Reactions Service

Like/unlike toggles for reviews and comments, and the favourite-book toggle.

Each relation is a single association row (review_likes, comment_likes,
user_favorite_books). The target's like set and the user's liked set
both read that row, so one insert or delete updates both sides at once
and a toggle applied twice restores the original state.
"""

import logging

from sqlalchemy.orm import Session

from bookworld.models import Book, Comment, Review, User

logger = logging.getLogger(__name__)


def _toggle_membership(members: list, user: User) -> bool:
    if user in members:
        members.remove(user)
        return False
    members.append(user)
    return True


def toggle_review_like(db: Session, review: Review, user: User) -> bool:
    """
    Like the review, or unlike it if the user already liked it.

    Returns:
        True if the review is now liked by the user, False if unliked
    """
    liked = _toggle_membership(review.liked_by, user)
    db.commit()
    logger.info(f"User {user.id} {'liked' if liked else 'unliked'} review {review.id}")
    return liked


def toggle_comment_like(db: Session, comment: Comment, user: User) -> bool:
    """
    Like the comment, or unlike it if the user already liked it.

    Returns:
        True if the comment is now liked by the user, False if unliked
    """
    liked = _toggle_membership(comment.liked_by, user)
    db.commit()
    logger.info(f"User {user.id} {'liked' if liked else 'unliked'} comment {comment.id}")
    return liked


def toggle_favorite(db: Session, user: User, book: Book) -> bool:
    """
    Add the book to the user's favourites, or remove it if already there.

    Returns:
        True if the book is now a favourite, False if removed
    """
    if book in user.favorite_books:
        user.favorite_books.remove(book)
        favorited = False
    else:
        user.favorite_books.append(book)
        favorited = True
    db.commit()
    logger.info(f"User {user.id} {'added' if favorited else 'removed'} favourite book {book.id}")
    return favorited
