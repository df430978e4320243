"""
Book Model

average_rating and total_reviews summarise a book's live reviews. They are
written only by services.ratings.recalculate_book_rating(), inside the same
transaction as the review change that moved them.

The two many-to-many tables that hang off books live here as well:
book_genres and user_favorite_books.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookworld.database import Base

if TYPE_CHECKING:
    from bookworld.models.genre import Genre
    from bookworld.models.review import Review
    from bookworld.models.user import User


def _link_table(name: str, left: str, right: str) -> Table:
    """Pair table whose composite primary key makes each pair unique."""
    return Table(
        name,
        Base.metadata,
        Column(f"{left}_id", Integer, ForeignKey(f"{left}s.id", ondelete="CASCADE"), primary_key=True),
        Column(f"{right}_id", Integer, ForeignKey(f"{right}s.id", ondelete="CASCADE"), primary_key=True),
    )


book_genres = _link_table("book_genres", "book", "genre")

# A favourite is a single row, so the user's list and the book's
# favorited_by can never disagree.
user_favorite_books = _link_table("user_favorite_books", "user", "book")


class Book(Base):
    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("total_reviews >= 0", name="ck_book_total_reviews_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(500), index=True, nullable=False)
    author: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    year_published: Mapped[int | None] = mapped_column(Integer)
    image_url: Mapped[str | None] = mapped_column(Text, comment="Public URL of the cover image")

    average_rating: Mapped[float] = mapped_column(Float, default=0.0, server_default="0", nullable=False)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    genres: Mapped[list["Genre"]] = relationship(
        secondary=book_genres, back_populates="books", order_by="Genre.name"
    )
    reviews: Mapped[list["Review"]] = relationship(back_populates="book", cascade="all, delete-orphan")
    favorited_by: Mapped[list["User"]] = relationship(
        secondary=user_favorite_books, back_populates="favorite_books"
    )

    @property
    def genre_names(self) -> list[str]:
        return [genre.name for genre in self.genres]

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title={self.title!r})"
