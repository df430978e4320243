"""
Genre Model

A book's genres travel as plain names on the wire. Each distinct name is
stored once here and linked to books through book_genres; the catalog
service resolves names case-insensitively, creating rows on first use.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookworld.database import Base

if TYPE_CHECKING:
    from bookworld.models.book import Book


class Genre(Base):
    __tablename__ = "genres"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)

    books: Mapped[List["Book"]] = relationship(secondary="book_genres", back_populates="genres")

    def __repr__(self) -> str:
        return f"Genre({self.name!r})"
