"""
Review Model

A user reviews a book at most once, with a rating from 1 to 5. Removing a
review also removes its comment forest and its likes (services.catalog),
and the book's rating aggregate is recomputed in the same transaction.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookworld.database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


review_likes = Table(
    "review_likes",
    Base.metadata,
    Column("review_id", Integer, ForeignKey("reviews.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("book_id", "user_id", name="uq_review_book_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    book_id: Mapped[int] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    book = relationship("Book", back_populates="reviews")
    user = relationship("User", back_populates="reviews")
    liked_by = relationship("User", secondary=review_likes, back_populates="liked_reviews")

    # Top-level comments only; replies hang off Comment.replies
    comments = relationship(
        "Comment",
        primaryjoin="and_(Comment.review_id == Review.id, Comment.parent_id.is_(None))",
        order_by="Comment.id",
        viewonly=True,
    )

    @property
    def likes_count(self) -> int:
        return len(self.liked_by)

    @property
    def comment_count(self) -> int:
        return len(self.comments)

    def __repr__(self) -> str:
        return f"Review(id={self.id}, book_id={self.book_id}, user_id={self.user_id}, rating={self.rating})"
