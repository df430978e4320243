#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample data for development.

USAGE:
    # From the project root with the virtualenv activated
    python scripts/seed_data.py

This script:
1. Connects to the database using app settings
2. Clears existing data
3. Creates an admin, two readers, genres and books
4. Adds a few reviews and recomputes each book's rating aggregate

Seeded logins (password for all: "password123"):
    admin@bookworld.dev, alice@bookworld.dev, bob@bookworld.dev
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete
from sqlalchemy.orm import Session

from bookworld.database import SessionLocal, create_tables
from bookworld.models import (
    Book,
    Comment,
    Genre,
    Review,
    Role,
    User,
    book_genres,
    comment_likes,
    review_likes,
    user_favorite_books,
)
from bookworld.services.ratings import recalculate_all_book_ratings
from bookworld.services.security import hash_password

SEED_PASSWORD = "password123"


def clear_data(db: Session) -> None:
    """Clear all existing data, children before parents."""
    print("Clearing existing data...")
    for table in (comment_likes, review_likes, user_favorite_books, book_genres):
        db.execute(delete(table))
    db.execute(delete(Comment))
    db.execute(delete(Review))
    db.execute(delete(Book))
    db.execute(delete(Genre))
    db.execute(delete(User))
    db.commit()
    print("Data cleared.")


def create_users(db: Session) -> dict[str, User]:
    """Create one admin and two readers."""
    print("Creating users...")
    users_data = [
        {"email": "admin@bookworld.dev", "first_name": "Ada", "last_name": "Admin", "role": Role.ADMIN.value},
        {"email": "alice@bookworld.dev", "first_name": "Alice", "last_name": "Reader", "role": Role.USER.value},
        {"email": "bob@bookworld.dev", "first_name": "Bob", "last_name": "Reader", "role": Role.USER.value},
    ]

    hashed = hash_password(SEED_PASSWORD)
    users = {}
    for data in users_data:
        user = User(hashed_password=hashed, **data)
        db.add(user)
        users[data["first_name"]] = user

    db.commit()
    print(f"Created {len(users)} users.")
    return users


def create_genres(db: Session) -> dict[str, Genre]:
    """Create sample genres."""
    print("Creating genres...")
    names = ["Classic", "Dystopian", "Fantasy", "Mystery", "Romance", "Science Fiction"]

    genres = {name: Genre(name=name) for name in names}
    db.add_all(genres.values())
    db.commit()

    print(f"Created {len(genres)} genres.")
    return genres


def create_books(db: Session, genres: dict[str, Genre]) -> dict[str, Book]:
    """Create sample books linked to their genres."""
    print("Creating books...")
    books_data = [
        {
            "title": "1984",
            "author": "George Orwell",
            "description": "A dystopian novel set in a totalitarian society under constant surveillance.",
            "year_published": 1949,
            "genres": ["Classic", "Dystopian"],
        },
        {
            "title": "Pride and Prejudice",
            "author": "Jane Austen",
            "description": "The story of Elizabeth Bennet and the proud Mr. Darcy.",
            "year_published": 1813,
            "genres": ["Classic", "Romance"],
        },
        {
            "title": "Murder on the Orient Express",
            "author": "Agatha Christie",
            "description": "Hercule Poirot investigates a murder aboard a snowbound train.",
            "year_published": 1934,
            "genres": ["Mystery"],
        },
        {
            "title": "Foundation",
            "author": "Isaac Asimov",
            "description": "A mathematician foresees the fall of the Galactic Empire.",
            "year_published": 1951,
            "genres": ["Science Fiction"],
        },
        {
            "title": "The Hobbit",
            "author": "J.R.R. Tolkien",
            "description": "Bilbo Baggins joins a quest to reclaim the Lonely Mountain.",
            "year_published": 1937,
            "genres": ["Fantasy", "Classic"],
        },
    ]

    books = {}
    for data in books_data:
        genre_names = data.pop("genres")
        book = Book(**data)
        book.genres = [genres[name] for name in genre_names]
        db.add(book)
        books[book.title] = book

    db.commit()
    print(f"Created {len(books)} books.")
    return books


def create_reviews(db: Session, users: dict[str, User], books: dict[str, Book]) -> int:
    """Create reviews, one thread of comments, and refresh every book's aggregate."""
    print("Creating reviews...")
    reviews_data = [
        ("Alice", "1984", 5, "Chilling and more relevant every year."),
        ("Bob", "1984", 4, "Bleak, but impossible to put down."),
        ("Alice", "The Hobbit", 5, "A perfect adventure story."),
        ("Bob", "Foundation", 3, "Big ideas, thin characters."),
        ("Alice", "Pride and Prejudice", 4, "Sharp and funny."),
    ]

    reviews = []
    for first_name, title, rating, content in reviews_data:
        review = Review(
            user=users[first_name],
            book=books[title],
            rating=rating,
            content=content,
        )
        db.add(review)
        reviews.append(review)
    db.flush()

    thread_root = Comment(review=reviews[0], user=users["Bob"], content="Did you read Animal Farm too?")
    db.add(thread_root)
    db.flush()
    db.add(Comment(
        review=reviews[0],
        user=users["Alice"],
        parent=thread_root,
        content="Yes, shorter but just as sharp.",
    ))

    reviews[0].liked_by.append(users["Bob"])
    users["Bob"].favorite_books.append(books["1984"])
    db.commit()

    recalculate_all_book_ratings(db)
    print(f"Created {len(reviews)} reviews.")
    return len(reviews)


def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    create_tables()
    db = SessionLocal()

    try:
        if clear_existing:
            clear_data(db)

        users = create_users(db)
        genres = create_genres(db)
        books = create_books(db, genres)
        review_count = create_reviews(db, users, books)

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print("\nSummary:")
        print(f"  - Users: {len(users)}")
        print(f"  - Genres: {len(genres)}")
        print(f"  - Books: {len(books)}")
        print(f"  - Reviews: {review_count}")
        print(f"\nLog in with any seeded email and the password '{SEED_PASSWORD}'.")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
