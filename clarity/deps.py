"""Dependency providers for authentication and settings."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from .database import get_db
from .exceptions import UnauthorizedError
from .models import User, Website
from .services.clerk_session import ClerkSession, ClerkSessionVerifier
from .settings import get_settings

SESSION_COOKIE = "__session"


@lru_cache()
def get_session_verifier() -> ClerkSessionVerifier:
    """Return the process-wide verifier (caches fetched JWKS keys)."""
    return ClerkSessionVerifier.from_settings(get_settings())


def _extract_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
    return request.cookies.get(SESSION_COOKIE)


def get_session(
    request: Request,
    verifier: ClerkSessionVerifier = Depends(get_session_verifier),
) -> ClerkSession:
    """Require a valid Clerk session.

    Accepts `Authorization: Bearer <jwt>` (API clients) or the `__session`
    cookie (same-site browser requests). Runs before any business logic, so an
    unauthenticated call never reaches the database.
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        return verifier.verify(token)
    except UnauthorizedError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))


def get_current_user(
    db: Session = Depends(get_db),
    session: ClerkSession = Depends(get_session),
) -> User:
    """Resolve the verified session to the local User row."""
    user = db.query(User).filter(User.clerk_id == session.user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not registered")
    return user


def get_owned_website(
    website_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Website:
    """Load a website owned by the current user.

    Another user's website is reported as missing rather than forbidden so ids
    cannot be probed.
    """
    website = (
        db.query(Website)
        .filter(Website.id == website_id, Website.user_id == current_user.id)
        .first()
    )
    if not website:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Website not found")
    return website
