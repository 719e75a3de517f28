from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from jwt.exceptions import PyJWTError
from smartpantry.config import settings


def create_identity_token(
    uid: str, email: Optional[str] = None, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create an identity token the way the auth provider issues them.

    Only used by tests and local tooling; production tokens come from the
    provider.

    Args:
        uid: Identity to encode as the subject
        email: Optional email claim
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    to_encode = {"sub": uid}
    if email:
        to_encode["email"] = email

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_identity_token(token: str) -> Optional[dict]:
    """
    Decode an identity token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload or None if invalid or expired
    """
    try:
        return jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except PyJWTError:
        return None
