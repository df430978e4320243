"""
API Routers Package

Each module groups the endpoints of one resource under its own prefix and
tags. The routers are registered in main.py.

Router Structure:
- books.py: /books/* catalog endpoints
- reviews.py: /books/{book_id}/reviews/* endpoints
- comments.py: /books/{book_id}/reviews/{review_id}/comments/* endpoints
- users.py: /users/* accounts, sign-in, profiles and favourites
"""

from bookworld.routers.books import router as books_router
from bookworld.routers.comments import router as comments_router
from bookworld.routers.reviews import router as reviews_router
from bookworld.routers.users import router as users_router

__all__ = [
    "books_router",
    "reviews_router",
    "comments_router",
    "users_router",
]
