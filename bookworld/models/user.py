"""
User Model

Represents a reader or administrator, authenticated either with
email/password or with Google sign-in.

The user side of every "like" and "favourite" relation lives here as a
many-to-many relationship. Each relation is stored as one row in an
association table, so the user's liked set and the target's like set are
two views of the same data and can never disagree.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookworld.database import Base

if TYPE_CHECKING:
    from bookworld.models.book import Book
    from bookworld.models.comment import Comment
    from bookworld.models.review import Review


class Role(str, Enum):
    """
    Roles that gate access to routes.

    - USER: Regular reader (default)
    - ADMIN: Can manage the catalog and promote users
    """
    USER = "user"
    ADMIN = "admin"


class AuthProvider(str, Enum):
    """
    Authentication providers supported by the system.

    - LOCAL: Email/password registration
    - GOOGLE: Google sign-in
    """
    LOCAL = "local"
    GOOGLE = "google"


class User(Base):
    """
    User model representing registered users in the system.

    Table: users

    Google users may not have a password (hashed_password is nullable).

    Relationships:
    - reviews: One-to-Many with Review
    - favorite_books: Many-to-Many with Book through user_favorite_books
    - liked_reviews: Many-to-Many with Review through review_likes
    - liked_comments: Many-to-Many with Comment through comment_likes

    Example:
        user = User(
            email="jane@example.com",
            first_name="Jane",
            last_name="Doe",
            hashed_password=hash_password("secret123"),
        )
    """

    __tablename__ = "users"

    # -------------------------------------------------------------------------
    # Primary Key
    # -------------------------------------------------------------------------
    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # Authentication Fields
    # -------------------------------------------------------------------------
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="User's email address (used for login)"
    )

    hashed_password: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Bcrypt hashed password (null for Google accounts)"
    )

    role: Mapped[str] = mapped_column(
        String(20),
        default=Role.USER.value,
        nullable=False,
        comment="Access role (user, admin)"
    )

    auth_provider: Mapped[str] = mapped_column(
        String(20),
        default=AuthProvider.LOCAL.value,
        nullable=False,
        comment="Authentication provider (local, google)"
    )

    provider_user_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Subject id issued by the sign-in provider"
    )

    # -------------------------------------------------------------------------
    # Profile Fields
    # -------------------------------------------------------------------------
    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Given name"
    )

    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
        comment="Family name"
    )

    picture: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="URL to the user's profile picture"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="user",
    )

    favorite_books: Mapped[list["Book"]] = relationship(
        "Book",
        secondary="user_favorite_books",
        back_populates="favorited_by",
        order_by="Book.title",
    )

    liked_reviews: Mapped[list["Review"]] = relationship(
        "Review",
        secondary="review_likes",
        back_populates="liked_by",
    )

    liked_comments: Mapped[list["Comment"]] = relationship(
        "Comment",
        secondary="comment_likes",
        back_populates="liked_by",
    )

    # -------------------------------------------------------------------------
    # Derived Properties
    # -------------------------------------------------------------------------
    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def favorite_book_ids(self) -> list[int]:
        return sorted(book.id for book in self.favorite_books)

    @property
    def liked_review_ids(self) -> list[int]:
        return sorted(review.id for review in self.liked_reviews)

    @property
    def liked_comment_ids(self) -> list[int]:
        return sorted(comment.id for comment in self.liked_comments)

    def __repr__(self) -> str:
        """Developer-friendly string representation."""
        return f"User(id={self.id}, email='{self.email}', role='{self.role}')"
