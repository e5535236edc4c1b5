"""API dependencies for dependency injection."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status
from sqlmodel import Session

from app.config import get_settings
from app.db.session import get_session
from app.models.session import SessionToken
from app.models.user import User
from app.services.sessions import resolve_session

settings = get_settings()


def get_db_session() -> Generator[Session, None, None]:
    """Get database session dependency."""
    yield from get_session()


DBSession = Annotated[Session, Depends(get_db_session)]


def get_session_token(request: Request) -> str | None:
    """Read the session token from its cookie."""
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


SessionCookie = Annotated[str | None, Depends(get_session_token)]


def get_current_user(session: DBSession, token: SessionCookie) -> User:
    """Get current authenticated user from the session cookie."""
    user = resolve_session(session, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Your session has expired. Please log in again.",
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def set_session_cookie(response: Response, issued: SessionToken) -> None:
    """Attach a session token as a script-inaccessible, same-site cookie."""
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=issued.token,
        max_age=settings.SESSION_EXPIRATION_HOURS * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
