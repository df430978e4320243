"""
Tests for Users

Tests cover:
- Signup and login with email/password
- Google sign-in (the Google verifier is patched, no network calls)
- Profile read/update
- Favourites toggle
- Admin user listing and public profiles
- Reporting another user
"""

from unittest.mock import patch

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bookworld.models import Book, User, UserReport
from bookworld.services.security import create_user_token

TEST_PASSWORD = "SecurePass123"
GOOGLE_VERIFY = "bookworld.services.oauth.id_token.verify_oauth2_token"

GOOGLE_CLAIMS = {
    "sub": "google-sub-123",
    "email": "Grace@Example.com",
    "email_verified": True,
    "given_name": "Grace",
    "family_name": "Hopper",
    "picture": "https://example.com/grace.png",
}


def get_auth_header(user: User) -> dict:
    """Create authorization header for a user."""
    return {"Authorization": f"Bearer {create_user_token(user)}"}


# =============================================================================
# Signup / Login
# =============================================================================


class TestSignup:
    """Tests for POST /users/signup"""

    def test_signup_success(self, client: TestClient):
        response = client.post(
            "/users/signup",
            json={
                "email": "New.Reader@Example.com",
                "password": "bookworm42",
                "first_name": "New",
                "last_name": "Reader",
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["email"] == "new.reader@example.com"
        assert data["role"] == "user"
        assert data["auth_provider"] == "local"
        assert data["favorite_book_ids"] == []
        assert "password" not in data
        assert "hashed_password" not in data

    def test_signup_duplicate_email(self, client: TestClient, sample_user: User):
        response = client.post(
            "/users/signup",
            json={"email": sample_user.email, "password": "bookworm42", "first_name": "Dup"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"message": "Email already exists"}

    def test_concurrent_signup_hits_unique_email(
        self, client: TestClient, db_session: Session, sample_user: User
    ):
        # The lookup misses, as it would for a request racing the first signup
        with patch("bookworld.routers.users.find_user_by_email", return_value=None):
            response = client.post(
                "/users/signup",
                json={"email": sample_user.email, "password": "bookworm42", "first_name": "Twin"},
            )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"message": "Email already exists"}
        count = db_session.execute(
            select(func.count(User.id)).where(User.email == sample_user.email)
        ).scalar()
        assert count == 1

    def test_signup_weak_password(self, client: TestClient):
        response = client.post(
            "/users/signup",
            json={"email": "weak@example.com", "password": "short", "first_name": "Weak"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "password" in response.json()["message"]

    def test_signup_invalid_email(self, client: TestClient):
        response = client.post(
            "/users/signup",
            json={"email": "not-an-email", "password": "bookworm42", "first_name": "Bad"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestLogin:
    """Tests for POST /users/login"""

    def test_login_success_token_works(self, client: TestClient, sample_user: User):
        response = client.post(
            "/users/login",
            json={"email": sample_user.email, "password": TEST_PASSWORD},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "Login successful"
        assert data["token_type"] == "bearer"
        assert data["expires_in"] > 0
        assert data["user"]["id"] == sample_user.id

        me = client.get("/users/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == status.HTTP_200_OK
        assert me.json()["email"] == sample_user.email

    def test_login_wrong_password(self, client: TestClient, sample_user: User):
        response = client.post(
            "/users/login",
            json={"email": sample_user.email, "password": "WrongPass999"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"message": "Invalid email or password"}

    def test_login_unknown_email(self, client: TestClient):
        response = client.post(
            "/users/login",
            json={"email": "ghost@example.com", "password": TEST_PASSWORD},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Invalid email or password"

    def test_google_account_cannot_use_password_login(
        self, client: TestClient, db_session: Session
    ):
        db_session.add(User(email="oauth@example.com", first_name="OAuth", auth_provider="google"))
        db_session.commit()

        response = client.post(
            "/users/login",
            json={"email": "oauth@example.com", "password": "anything1"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestGoogleAuth:
    """Tests for POST /users/google-auth"""

    def test_first_sign_in_creates_account(self, client: TestClient, db_session: Session):
        with patch(GOOGLE_VERIFY, return_value=GOOGLE_CLAIMS) as mock_verify:
            response = client.post("/users/google-auth", json={"token": "google-id-token"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "Google authentication successful"
        assert data["access_token"]
        assert data["user"]["email"] == "grace@example.com"
        assert data["user"]["first_name"] == "Grace"
        assert data["user"]["auth_provider"] == "google"
        assert mock_verify.call_args.args[0] == "google-id-token"

    def test_second_sign_in_reuses_account(self, client: TestClient, db_session: Session):
        with patch(GOOGLE_VERIFY, return_value=GOOGLE_CLAIMS):
            first = client.post("/users/google-auth", json={"token": "t1"}).json()
            second = client.post("/users/google-auth", json={"token": "t2"}).json()

        assert first["user"]["id"] == second["user"]["id"]
        count = db_session.execute(
            select(func.count(User.id)).where(User.email == "grace@example.com")
        ).scalar()
        assert count == 1

    def test_links_existing_email_account(
        self, client: TestClient, db_session: Session, sample_user: User
    ):
        claims = {**GOOGLE_CLAIMS, "email": sample_user.email}

        with patch(GOOGLE_VERIFY, return_value=claims):
            response = client.post("/users/google-auth", json={"token": "t"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["id"] == sample_user.id

    def test_unverified_email_does_not_link_existing_account(
        self, client: TestClient, db_session: Session, sample_user: User
    ):
        claims = {
            **GOOGLE_CLAIMS,
            "sub": "other-google-sub",
            "email": sample_user.email,
            "email_verified": False,
        }

        with patch(GOOGLE_VERIFY, return_value=claims):
            response = client.post("/users/google-auth", json={"token": "t"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"message": "Invalid Google token"}
        db_session.refresh(sample_user)
        assert sample_user.auth_provider == "local"
        assert sample_user.provider_user_id is None

    def test_missing_email_verified_claim_is_rejected(self, client: TestClient):
        claims = {key: value for key, value in GOOGLE_CLAIMS.items() if key != "email_verified"}

        with patch(GOOGLE_VERIFY, return_value=claims):
            response = client.post("/users/google-auth", json={"token": "t"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_invalid_google_token(self, client: TestClient):
        with patch(GOOGLE_VERIFY, side_effect=ValueError("Token expired")):
            response = client.post("/users/google-auth", json={"token": "bad"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"message": "Invalid Google token"}

    def test_google_token_without_email(self, client: TestClient):
        with patch(GOOGLE_VERIFY, return_value={"sub": "abc"}):
            response = client.post("/users/google-auth", json={"token": "t"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Profile
# =============================================================================


class TestProfile:
    """Tests for /users/me and /users/{user_id}"""

    def test_update_me(self, client: TestClient, sample_user: User):
        response = client.put(
            "/users/me",
            json={"first_name": "Renamed", "picture": "https://example.com/me.png"},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["first_name"] == "Renamed"
        assert data["last_name"] == "Tester"
        assert data["picture"] == "https://example.com/me.png"

    def test_update_me_rejects_null_last_name(self, client: TestClient, sample_user: User):
        response = client.put(
            "/users/me",
            json={"last_name": None},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "last_name" in response.json()["message"]
        me = client.get("/users/me", headers=get_auth_header(sample_user)).json()
        assert me["last_name"] == "Tester"

    def test_update_me_rejects_blank_first_name(self, client: TestClient, sample_user: User):
        response = client.put(
            "/users/me",
            json={"first_name": "   "},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "first_name" in response.json()["message"]
        me = client.get("/users/me", headers=get_auth_header(sample_user)).json()
        assert me["first_name"] == "Reader"

    def test_update_me_strips_names_and_clears_picture(
        self, client: TestClient, sample_user: User
    ):
        headers = get_auth_header(sample_user)
        client.put("/users/me", json={"picture": "https://example.com/me.png"}, headers=headers)

        response = client.put(
            "/users/me",
            json={"first_name": "  Ada ", "last_name": " Lovelace ", "picture": None},
            headers=headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert (data["first_name"], data["last_name"]) == ("Ada", "Lovelace")
        assert data["picture"] is None

    def test_public_profile_hides_email(self, client: TestClient, sample_user: User):
        response = client.get(f"/users/{sample_user.id}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["first_name"] == "Reader"
        assert "email" not in data

    def test_public_profile_not_found(self, client: TestClient):
        response = client.get("/users/99999")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"message": "User not found"}

    def test_admin_lists_users(
        self, client: TestClient, admin_user: User, sample_user: User, second_user: User
    ):
        response = client.get("/users?per_page=2", headers=get_auth_header(admin_user))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 3
        assert data["pages"] == 2
        assert len(data["items"]) == 2


# =============================================================================
# Favourites
# =============================================================================


class TestFavourites:
    """Tests for GET/PUT /users/favourites"""

    def test_toggle_favourite(self, client: TestClient, sample_user: User, sample_book: Book):
        headers = get_auth_header(sample_user)

        response = client.put("/users/favourites", json={"book_id": sample_book.id}, headers=headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "message": "Book added to favourites",
            "favorited": True,
            "favorite_book_ids": [sample_book.id],
        }

        books = client.get("/users/favourites", headers=headers).json()
        assert [b["title"] for b in books] == ["1984"]

        response = client.put("/users/favourites", json={"book_id": sample_book.id}, headers=headers)
        assert response.json()["message"] == "Book removed from favourites"
        assert response.json()["favorite_book_ids"] == []
        assert client.get("/users/favourites", headers=headers).json() == []

    def test_favourite_unknown_book(self, client: TestClient, sample_user: User):
        response = client.put(
            "/users/favourites",
            json={"book_id": 99999},
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"message": "Book not found"}

    def test_favourites_require_token(self, client: TestClient):
        assert client.get("/users/favourites").status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Reports
# =============================================================================


class TestReportUser:
    """Tests for POST /users/{user_id}/report"""

    REPORT = {"reason": "Inappropriate behavior", "description": "Spoilers in every comment"}

    def test_report_user(
        self, client: TestClient, db_session: Session, sample_user: User, second_user: User
    ):
        response = client.post(
            f"/users/{second_user.id}/report",
            json=self.REPORT,
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "User reported successfully"

        report = db_session.get(UserReport, data["report_id"])
        assert report.reporter_id == sample_user.id
        assert report.reported_user_id == second_user.id
        assert report.reason == "Inappropriate behavior"

    def test_cannot_report_yourself(
        self, client: TestClient, db_session: Session, sample_user: User
    ):
        response = client.post(
            f"/users/{sample_user.id}/report",
            json=self.REPORT,
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"message": "You cannot report yourself"}
        assert db_session.execute(select(func.count(UserReport.id))).scalar() == 0

    def test_report_unknown_user(self, client: TestClient, sample_user: User):
        response = client.post(
            "/users/99999/report",
            json=self.REPORT,
            headers=get_auth_header(sample_user),
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"message": "User not found"}

    def test_report_requires_token(self, client: TestClient, second_user: User):
        response = client.post(f"/users/{second_user.id}/report", json=self.REPORT)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
