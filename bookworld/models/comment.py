"""
Comment Model

Comments form a forest under each review: top-level comments have no
parent, replies point at the comment they answer. A reply always carries
the same review_id as its parent, and a parent is fixed when the reply is
created, so the structure cannot contain cycles.

Child lists are derived from parent_id (ordered by id), so removing a
comment row also removes it from its parent's replies or from the review's
top-level list.
"""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookworld.database import Base


comment_likes = Table(
    "comment_likes",
    Base.metadata,
    Column(
        "comment_id",
        Integer,
        ForeignKey("comments.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    comment="Users who liked a comment",
)


class Comment(Base):
    """
    Comment model for review discussions.

    Attributes:
        id: Primary key
        review_id: Review the thread belongs to
        user_id: Author of the comment
        parent_id: Comment being replied to (None for top-level comments)
        content: Comment text
        created_at: When the comment was posted
        replies: Direct replies, oldest first
        liked_by: Users who liked the comment
    """

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    review_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("reviews.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Comment text",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    user = relationship("User")
    review = relationship("Review")

    parent = relationship(
        "Comment",
        remote_side=[id],
        back_populates="replies",
    )
    replies = relationship(
        "Comment",
        back_populates="parent",
        order_by="Comment.id",
    )

    liked_by = relationship(
        "User",
        secondary=comment_likes,
        back_populates="liked_comments",
    )

    @property
    def likes_count(self) -> int:
        return len(self.liked_by)

    @property
    def reply_count(self) -> int:
        return len(self.replies)

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, review_id={self.review_id}, parent_id={self.parent_id})>"
