"""
Services Package

Business logic kept apart from the HTTP layer (routers).

Current services:
- cache.py: Redis caching utilities with invalidation helpers
- catalog.py: Genre resolution and cascading book/review removal
- comment_tree.py: Comment forests, replies and subtree deletion
- oauth.py: Google sign-in verification and account linking
- rate_limiter.py: Rate limiting with slowapi and Redis backend
- ratings.py: Book rating aggregate recalculation
- reactions.py: Like and favourite toggles
- security.py: Password hashing and JWT utilities
- storage.py: Cover image uploads to S3
"""
