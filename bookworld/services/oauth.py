"""
OAuth Service

Google sign-in for the single-page frontend.

The browser obtains a Google ID token and posts it to /users/google-auth.
This service:
1. Verifies the token's signature, issuer and audience (google-auth)
2. Normalizes the claims into OAuthUserData
3. Finds, links or creates the matching account
"""

import logging
from dataclasses import dataclass

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from sqlalchemy import select
from sqlalchemy.orm import Session

from bookworld.config import get_settings
from bookworld.exceptions import AuthenticationError, ValidationError
from bookworld.models import AuthProvider, User

logger = logging.getLogger(__name__)


# =============================================================================
# OAuth User Data
# =============================================================================


@dataclass
class OAuthUserData:
    """Normalized user data extracted from a verified ID token."""

    email: str
    provider: str
    provider_user_id: str
    first_name: str
    last_name: str = ""
    picture: str | None = None


def verify_google_credential(token: str) -> OAuthUserData:
    """
    Verify a Google ID token and extract the profile claims.

    Args:
        token: ID token issued to the configured client id

    Returns:
        Normalized user data

    Raises:
        ValidationError: Google sign-in is not configured
        AuthenticationError: The token is invalid, expired, or lacks a verified email
    """
    settings = get_settings()
    if not settings.google_client_id:
        raise ValidationError("Google sign-in is not configured")

    try:
        claims = id_token.verify_oauth2_token(
            token,
            google_requests.Request(),
            settings.google_client_id,
        )
    except ValueError as e:
        logger.warning(f"Google token verification failed: {e}")
        raise AuthenticationError("Invalid Google token") from e

    email = (claims.get("email") or "").strip().lower()
    if not email or not claims.get("sub"):
        raise AuthenticationError("Invalid Google token")

    # An unverified address must never sign in to, or link with, a local account
    if claims.get("email_verified") not in (True, "true"):
        logger.warning(f"Google token for unverified email {email} rejected")
        raise AuthenticationError("Invalid Google token")

    first_name = claims.get("given_name") or claims.get("name") or email.split("@")[0]

    return OAuthUserData(
        email=email,
        provider=AuthProvider.GOOGLE.value,
        provider_user_id=str(claims["sub"]),
        first_name=first_name,
        last_name=claims.get("family_name") or "",
        picture=claims.get("picture"),
    )


def get_or_create_oauth_user(db: Session, oauth_data: OAuthUserData) -> User:
    """
    Get existing user or create new one from OAuth data.

    Account linking rules:
    1. If provider_user_id matches an existing account, return it
    2. If the email matches an existing account, link the provider to it
    3. Otherwise, create a new account without a password

    Returns:
        User object (existing or newly created)
    """
    stmt = select(User).where(
        User.auth_provider == oauth_data.provider,
        User.provider_user_id == oauth_data.provider_user_id,
    )
    existing_oauth_user = db.execute(stmt).scalar_one_or_none()

    if existing_oauth_user:
        logger.info(f"Found existing OAuth user: {existing_oauth_user.email}")
        return existing_oauth_user

    stmt = select(User).where(User.email == oauth_data.email)
    existing_email_user = db.execute(stmt).scalar_one_or_none()

    if existing_email_user:
        logger.info(f"Linking OAuth to existing user: {existing_email_user.email}")
        existing_email_user.auth_provider = oauth_data.provider
        existing_email_user.provider_user_id = oauth_data.provider_user_id
        if oauth_data.picture and not existing_email_user.picture:
            existing_email_user.picture = oauth_data.picture
        db.commit()
        return existing_email_user

    new_user = User(
        email=oauth_data.email,
        first_name=oauth_data.first_name,
        last_name=oauth_data.last_name,
        picture=oauth_data.picture,
        auth_provider=oauth_data.provider,
        provider_user_id=oauth_data.provider_user_id,
    )

    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    logger.info(f"Created new OAuth user: {new_user.email}")

    return new_user
