"""
Book World API Application Package

A book catalog with reviews, threaded comments, likes and favourites.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy database connection and session management
- exceptions.py: Error kinds and the HTTP error boundary
- main.py: FastAPI application factory and configuration
- dependencies.py: Authentication gate, pagination and resource lookups
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Business logic (ratings, comment trees, caching, storage)
"""

__version__ = "1.0.0"
