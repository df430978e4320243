"""
Tests for Reviews

Tests the review system:
- List reviews for a book (newest first)
- Create a review (authenticated, one per user per book)
- Get a single review and the caller's own review
- Update a review (author only)
- Delete a review (author or admin), taking its comments along

Every create/update/delete keeps the book's average_rating and
total_reviews equal to the mean and count of its current reviews.
"""

from unittest.mock import patch

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bookworld.models import Book, Comment, Review, User
from bookworld.services.security import create_user_token


def get_auth_header(user: User) -> dict:
    """Create authorization header for a user."""
    return {"Authorization": f"Bearer {create_user_token(user)}"}


def post_review(client: TestClient, book_id: int, user: User, rating: int, content: str = "Worth reading."):
    return client.post(
        f"/books/{book_id}/reviews",
        json={"rating": rating, "content": content},
        headers=get_auth_header(user),
    )


def book_stats(client: TestClient, book_id: int) -> tuple[float, int]:
    data = client.get(f"/books/{book_id}").json()
    return data["average_rating"], data["total_reviews"]


# =============================================================================
# Rating Aggregate
# =============================================================================


class TestRatingAggregate:
    """The book's rating fields follow its reviews."""

    def test_create_create_delete_scenario(
        self,
        client: TestClient,
        sample_book: Book,
        sample_user: User,
        second_user: User,
    ):
        response = post_review(client, sample_book.id, sample_user, 5)
        assert response.status_code == status.HTTP_201_CREATED
        first_review_id = response.json()["id"]
        assert book_stats(client, sample_book.id) == (5, 1)

        response = post_review(client, sample_book.id, second_user, 3)
        assert response.status_code == status.HTTP_201_CREATED
        assert book_stats(client, sample_book.id) == (4, 2)

        response = client.delete(
            f"/books/{sample_book.id}/reviews/{first_review_id}",
            headers=get_auth_header(sample_user),
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert book_stats(client, sample_book.id) == (3, 1)

    def test_update_rating_recomputes_average(
        self,
        client: TestClient,
        sample_book: Book,
        sample_review: Review,
        sample_user: User,
    ):
        assert book_stats(client, sample_book.id) == (4, 1)

        response = client.put(
            f"/books/{sample_book.id}/reviews/{sample_review.id}",
            json={"rating": 2},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["rating"] == 2
        assert response.json()["content"] == "I really enjoyed reading this book."
        assert book_stats(client, sample_book.id) == (2, 1)

    def test_deleting_last_review_resets_to_zero(
        self,
        client: TestClient,
        sample_book: Book,
        sample_review: Review,
        sample_user: User,
    ):
        client.delete(
            f"/books/{sample_book.id}/reviews/{sample_review.id}",
            headers=get_auth_header(sample_user),
        )

        assert book_stats(client, sample_book.id) == (0, 0)

    def test_average_is_not_rounded(
        self,
        client: TestClient,
        db_session: Session,
        sample_book: Book,
        sample_user: User,
        second_user: User,
        admin_user: User,
    ):
        post_review(client, sample_book.id, sample_user, 5)
        post_review(client, sample_book.id, second_user, 4)
        post_review(client, sample_book.id, admin_user, 4)

        average, total = book_stats(client, sample_book.id)
        assert total == 3
        assert abs(average - 13 / 3) < 1e-9


# =============================================================================
# List and Read
# =============================================================================


class TestListBookReviews:
    """Tests for GET /books/{book_id}/reviews"""

    def test_list_reviews_empty(self, client: TestClient, sample_book: Book):
        response = client.get(f"/books/{sample_book.id}/reviews")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["items"] == []
        assert data["total"] == 0

    def test_list_reviews_with_author(self, client: TestClient, sample_review: Review):
        response = client.get(f"/books/{sample_review.book_id}/reviews")

        data = response.json()
        assert data["total"] == 1
        review = data["items"][0]
        assert review["rating"] == 4
        assert review["likes_count"] == 0
        assert review["comment_count"] == 0
        assert review["user"]["first_name"] == "Reader"
        assert "email" not in review["user"]

    def test_list_reviews_book_not_found(self, client: TestClient):
        response = client.get("/books/99999/reviews")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_get_single_review(self, client: TestClient, sample_review: Review):
        response = client.get(f"/books/{sample_review.book_id}/reviews/{sample_review.id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == sample_review.id

    def test_review_from_other_book_is_not_found(
        self, client: TestClient, db_session: Session, sample_review: Review
    ):
        other = Book(title="Dune", author="Frank Herbert")
        db_session.add(other)
        db_session.commit()

        response = client.get(f"/books/{other.id}/reviews/{sample_review.id}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"message": "Review not found"}

    def test_my_review(self, client: TestClient, sample_review: Review, sample_user: User):
        response = client.get(
            f"/books/{sample_review.book_id}/reviews/me",
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == sample_review.id

    def test_my_review_is_null_when_absent(
        self, client: TestClient, sample_review: Review, second_user: User
    ):
        response = client.get(
            f"/books/{sample_review.book_id}/reviews/me",
            headers=get_auth_header(second_user),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() is None


# =============================================================================
# Create
# =============================================================================


class TestCreateReview:
    """Tests for POST /books/{book_id}/reviews"""

    def test_create_review_unauthenticated(
        self, client: TestClient, db_session: Session, sample_book: Book
    ):
        response = client.post(
            f"/books/{sample_book.id}/reviews",
            json={"rating": 5, "content": "Anonymous praise"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert db_session.execute(select(func.count(Review.id))).scalar() == 0

    def test_create_duplicate_review(
        self, client: TestClient, sample_review: Review, sample_user: User
    ):
        response = post_review(client, sample_review.book_id, sample_user, 1)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"message": "You have already reviewed this book"}
        assert book_stats(client, sample_review.book_id) == (4, 1)

    def test_concurrent_duplicate_hits_unique_constraint(
        self, client: TestClient, db_session: Session, sample_review: Review, sample_user: User
    ):
        # The existence check misses, as it would for a request racing this one
        with patch("bookworld.routers.reviews.find_user_review", return_value=None):
            response = post_review(client, sample_review.book_id, sample_user, 1)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"message": "You have already reviewed this book"}
        assert db_session.execute(select(func.count(Review.id))).scalar() == 1
        assert book_stats(client, sample_review.book_id) == (4, 1)

    def test_create_review_book_not_found(self, client: TestClient, sample_user: User):
        response = post_review(client, 99999, sample_user, 5)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_create_review_rating_out_of_range(
        self, client: TestClient, sample_book: Book, sample_user: User
    ):
        response = post_review(client, sample_book.id, sample_user, 6)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "rating" in response.json()["message"]

    def test_create_review_blank_content(
        self, client: TestClient, sample_book: Book, sample_user: User
    ):
        response = post_review(client, sample_book.id, sample_user, 3, content="   ")

        assert response.status_code == status.HTTP_400_BAD_REQUEST


# =============================================================================
# Update / Delete
# =============================================================================


class TestUpdateReview:
    """Tests for PUT /books/{book_id}/reviews/{review_id}"""

    def test_update_by_other_user_forbidden(
        self, client: TestClient, sample_review: Review, second_user: User
    ):
        response = client.put(
            f"/books/{sample_review.book_id}/reviews/{sample_review.id}",
            json={"rating": 1},
            headers=get_auth_header(second_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"message": "You can only update your own reviews"}

    def test_admin_cannot_edit_others_review(
        self, client: TestClient, sample_review: Review, admin_user: User
    ):
        response = client.put(
            f"/books/{sample_review.book_id}/reviews/{sample_review.id}",
            json={"content": "Edited by admin"},
            headers=get_auth_header(admin_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestDeleteReview:
    """Tests for DELETE /books/{book_id}/reviews/{review_id}"""

    def test_delete_by_other_user_forbidden(
        self, client: TestClient, sample_review: Review, second_user: User
    ):
        response = client.delete(
            f"/books/{sample_review.book_id}/reviews/{sample_review.id}",
            headers=get_auth_header(second_user),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"message": "You can only delete your own reviews"}

    def test_admin_can_delete_any_review(
        self, client: TestClient, sample_review: Review, admin_user: User
    ):
        response = client.delete(
            f"/books/{sample_review.book_id}/reviews/{sample_review.id}",
            headers=get_auth_header(admin_user),
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert book_stats(client, sample_review.book_id) == (0, 0)

    def test_delete_removes_comment_forest(
        self,
        client: TestClient,
        db_session: Session,
        sample_review: Review,
        sample_user: User,
        second_user: User,
    ):
        # root -> reply -> nested reply, plus a second top-level comment
        comment_ids = []
        parent_id = None
        for depth in range(3):
            comment = Comment(
                review_id=sample_review.id,
                user_id=second_user.id if depth % 2 == 0 else sample_user.id,
                parent_id=parent_id,
                content=f"Level {depth}",
            )
            db_session.add(comment)
            db_session.flush()
            comment_ids.append(comment.id)
            parent_id = comment.id
        sibling = Comment(review_id=sample_review.id, user_id=sample_user.id, content="Sibling")
        db_session.add(sibling)
        db_session.flush()
        comment_ids.append(sibling.id)
        comment.liked_by.append(second_user)
        db_session.commit()

        base = f"/books/{sample_review.book_id}/reviews/{sample_review.id}"
        assert client.get(f"{base}/comments/{comment_ids[1]}").json()[0]["id"] == comment_ids[2]

        response = client.delete(base, headers=get_auth_header(sample_user))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert db_session.execute(select(func.count(Comment.id))).scalar() == 0
        for comment_id in comment_ids:
            assert client.get(f"{base}/comments/{comment_id}").status_code == status.HTTP_404_NOT_FOUND

        me = client.get("/users/me", headers=get_auth_header(second_user)).json()
        assert me["liked_comment_ids"] == []
