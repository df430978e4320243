"""
Test Suite for Book World API

Test Organization:
- conftest.py: Shared fixtures (test database, client, fake storage, sample data)
- test_auth_gate.py: Bearer token checks and role requirements
- test_books.py: /books endpoints
- test_reviews.py: /books/{id}/reviews endpoints and the rating aggregate
- test_comments.py: Comment threads under a review
- test_comment_tree.py: CommentForest traversal
- test_likes.py: Like toggles on reviews and comments
- test_users.py: Accounts, sign-in, profiles and favourites

Running Tests:
    pytest
    pytest tests/test_reviews.py -v
"""
