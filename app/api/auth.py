"""Authentication API endpoints."""

import secrets
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from app.api.deps import (
    CurrentUser,
    DBSession,
    SessionCookie,
    clear_session_cookie,
    set_session_cookie,
    settings,
)
from app.models.user import (
    AuthResponse,
    PasswordChange,
    UserCreate,
    UserLogin,
    User,
    UserResponse,
)
from app.services.auth import (
    InvalidCredentialsError,
    UsernameTakenError,
    WrongAuthMethodError,
    authenticate_external,
    authenticate_user,
    change_password,
    register_user,
)
from app.services.oauth import GoogleOAuthClient, OAuthError, get_oauth_client
from app.services.sessions import create_session, destroy_session

router = APIRouter(prefix="/api/auth", tags=["Auth"])

OAUTH_STATE_COOKIE = "oauth_state"

OAuthClient = Annotated[GoogleOAuthClient | None, Depends(get_oauth_client)]


def _start_session(session: Session, response: Response, user: User) -> AuthResponse:
    issued = create_session(session, user.id)
    set_session_cookie(response, issued)
    return AuthResponse(user=UserResponse.from_user(user), expires_at=issued.expires_at)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_endpoint(
    session: DBSession, response: Response, user_data: UserCreate
) -> AuthResponse:
    """Register a new account and sign in."""
    try:
        user = register_user(session, user_data)
    except UsernameTakenError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists",
        )

    return _start_session(session, response, user)


@router.post("/login", response_model=AuthResponse)
def login_endpoint(
    session: DBSession, response: Response, credentials: UserLogin
) -> AuthResponse:
    """Sign in with username and password."""
    try:
        user = authenticate_user(session, credentials.username, credentials.password)
    except InvalidCredentialsError:
        # Generic error message to prevent enumeration
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    except WrongAuthMethodError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )

    return _start_session(session, response, user)


@router.post("/logout")
def logout_endpoint(
    session: DBSession, response: Response, token: SessionCookie
) -> dict[str, str]:
    """Sign out and end the session."""
    destroy_session(session, token)
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
def me_endpoint(current_user: CurrentUser) -> UserResponse:
    """Get the signed-in user."""
    return UserResponse.from_user(current_user)


@router.post("/change-password")
def change_password_endpoint(
    session: DBSession, current_user: CurrentUser, data: PasswordChange
) -> dict[str, str]:
    """Change the signed-in user's password."""
    try:
        change_password(session, current_user, data.old_password, data.new_password)
    except WrongAuthMethodError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Google accounts cannot change password here",
        )
    except InvalidCredentialsError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Old password is incorrect",
        )
    return {"message": "Password changed successfully"}


def _require_google(client: GoogleOAuthClient | None) -> GoogleOAuthClient:
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google login is not configured.",
        )
    return client


@router.get("/google")
def google_login_endpoint(client: OAuthClient) -> RedirectResponse:
    """Redirect the browser to Google's consent screen."""
    client = _require_google(client)
    state = secrets.token_urlsafe(16)
    redirect = RedirectResponse(client.authorization_url(state))
    redirect.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        max_age=10 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return redirect


def _google_login_failed(message: str) -> RedirectResponse:
    """Send the browser back to the frontend with an error to show."""
    redirect = RedirectResponse(
        f"{settings.FRONTEND_URL}?{urlencode({'error': message})}",
        status_code=status.HTTP_302_FOUND,
    )
    redirect.delete_cookie(OAUTH_STATE_COOKIE)
    return redirect


@router.get("/google/callback")
def google_callback_endpoint(
    request: Request,
    session: DBSession,
    client: OAuthClient,
    state: str,
    code: str | None = None,
    error: str | None = None,
) -> RedirectResponse:
    """Finish Google sign-in, start a session and return to the frontend."""
    client = _require_google(client)
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not expected_state or not secrets.compare_digest(expected_state.encode(), state.encode()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid OAuth state",
        )

    if error:
        return _google_login_failed("Google login was cancelled.")
    if not code:
        return _google_login_failed("Google login failed. Please try again.")

    try:
        profile = client.fetch_profile(code)
    except OAuthError:
        return _google_login_failed("Google login failed. Please try again.")

    user = authenticate_external(session, profile)
    redirect = RedirectResponse(settings.FRONTEND_URL, status_code=status.HTTP_302_FOUND)
    set_session_cookie(redirect, create_session(session, user.id))
    redirect.delete_cookie(OAUTH_STATE_COOKIE)
    return redirect
