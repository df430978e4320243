"""
Passwords and Bearer Tokens

Passwords are stored as bcrypt hashes (passlib). Sign-in returns an HS256
JWT (python-jose) whose claims are:

    sub   user id, as a string
    role  the role at issue time (informational; the gate re-reads it)
    type  always "access"
    iat / exp

Only the stored user decides what a token may do, so these helpers never
touch the database.
"""

import logging
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from bookworld.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    Check a sign-in attempt against the stored hash.

    Google-only accounts have no hash and never match.
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Sign `data` as an access token.

    Args:
        data: Claims to include (normally sub and role)
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        **data,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def create_user_token(user) -> str:
    """Issue the bearer credential for a signed-in user."""
    return create_access_token({"sub": str(user.id), "role": user.role})


def decode_token(token: str) -> dict | None:
    """
    Verify the signature and expiry of a token.

    Returns:
        The claims, or None if the token is malformed, forged or expired
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        return None


def read_access_token(token: str) -> dict | None:
    """
    Claims of a valid access token whose subject looks like a user id.

    Returns:
        The claims, or None for anything that should be answered with 401
    """
    claims = decode_token(token)
    if claims is None:
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        logger.warning(f"Rejected token of type {claims.get('type')!r}")
        return None

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        logger.warning("Rejected token without a numeric subject")
        return None

    return claims
