"""
SQLAlchemy Models Package

Model Relationships:
- Genre <-> Book: Many-to-Many through book_genres
- User <-> Book: Many-to-Many favourites through user_favorite_books
- Book -> Review: One-to-Many (one review per user per book)
- Review -> Comment: One-to-Many forest (Comment.parent_id for replies)
- User <-> Review / Comment: Many-to-Many likes
- User -> UserReport: reports filed against other users

Import all models here so Alembic and the relationship registry see them.
"""

from bookworld.models.genre import Genre
from bookworld.models.book import Book, book_genres, user_favorite_books
from bookworld.models.user import AuthProvider, Role, User
from bookworld.models.review import Review, review_likes
from bookworld.models.comment import Comment, comment_likes
from bookworld.models.report import UserReport

__all__ = [
    "Genre",
    "Book",
    "book_genres",
    "user_favorite_books",
    "AuthProvider",
    "Role",
    "User",
    "Review",
    "review_likes",
    "Comment",
    "comment_likes",
    "UserReport",
]
