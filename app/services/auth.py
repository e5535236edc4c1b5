"""Authentication service: password hashing and identity resolution."""

import logging
from dataclasses import dataclass

import bcrypt
from sqlmodel import Session

from app.models.user import (
    BCRYPT_MAX_BYTES,
    EXTERNAL_USERNAME_PREFIX,
    ExternalCredential,
    NoCredential,
    PasswordCredential,
    User,
    UserCreate,
)
from app.services.users import (
    DuplicateExternalRefError,
    DuplicateUsernameError,
    create_user,
    get_user_by_external_ref,
    get_user_by_username,
    set_display_name,
    update_credential,
)

logger = logging.getLogger(__name__)


class InvalidCredentialsError(Exception):
    """Raised when a username/password pair does not match an account."""
    pass


class WrongAuthMethodError(Exception):
    """Raised when an account cannot sign in with the attempted method."""
    pass


class UsernameTakenError(Exception):
    """Raised when registering a username that already exists."""
    pass


@dataclass(frozen=True)
class ExternalProfile:
    """Verified profile returned by the external identity provider."""

    subject_id: str
    email: str | None = None
    display_name: str | None = None


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password_bytes, salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode('utf-8')
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        # Could never have been hashed, so cannot match
        return False
    hashed_bytes = hashed_password.encode('utf-8')
    return bcrypt.checkpw(password_bytes, hashed_bytes)


def _check_password(user: User, password: str) -> None:
    """Verify ``password`` against the user's credential or raise."""
    match user.credential:
        case PasswordCredential(password_hash=password_hash):
            if not verify_password(password, password_hash):
                raise InvalidCredentialsError("Invalid username or password")
        case ExternalCredential():
            raise WrongAuthMethodError(
                "This account uses Google login. Please continue with Google."
            )
        case NoCredential():
            raise InvalidCredentialsError("Invalid username or password")


def authenticate_user(session: Session, username: str, password: str) -> User:
    """
    Authenticate a user by username and password.

    Raises InvalidCredentialsError without saying whether the username
    exists, and WrongAuthMethodError for external-only accounts.
    """
    user = get_user_by_username(session, username)
    if user is None:
        logger.info("Login failed", extra={"reason": "credentials"})
        raise InvalidCredentialsError("Invalid username or password")

    try:
        _check_password(user, password)
    except (InvalidCredentialsError, WrongAuthMethodError) as e:
        logger.info(
            "Login failed",
            extra={"user_id": str(user.id), "reason": type(e).__name__},
        )
        raise
    return user


def register_user(session: Session, user_data: UserCreate) -> User:
    """
    Register a new local account.

    Never signs in to an existing account, whatever password is given.
    """
    if get_user_by_username(session, user_data.username) is not None:
        raise UsernameTakenError("Username already exists")

    try:
        user = create_user(
            session,
            username=user_data.username,
            password_hash=hash_password(user_data.password),
            display_name=user_data.username,
        )
    except DuplicateUsernameError:
        raise UsernameTakenError("Username already exists")

    logger.info("User registered", extra={"user_id": str(user.id)})
    return user


def external_username(subject_id: str) -> str:
    """Deterministic username for an account created by external login."""
    return f"{EXTERNAL_USERNAME_PREFIX}{subject_id}"


def authenticate_external(session: Session, profile: ExternalProfile) -> User:
    """
    Resolve a verified external profile to a local account.

    Creates an external-only account on first login. For a known account
    only an unset display name is filled in; credentials are never touched.
    """
    user = get_user_by_external_ref(session, profile.subject_id)
    if user is None:
        fallback = external_username(profile.subject_id)
        try:
            user = create_user(
                session,
                username=fallback,
                external_ref=profile.subject_id,
                display_name=profile.display_name or fallback,
                email=profile.email,
            )
        except (DuplicateExternalRefError, DuplicateUsernameError):
            # A concurrent first login for the same subject got there first
            user = get_user_by_external_ref(session, profile.subject_id)
            if user is None:
                raise
            return user
        logger.info("External account created", extra={"user_id": str(user.id)})
        return user

    if not user.display_name and profile.display_name:
        user = set_display_name(session, user, profile.display_name)
    return user


def change_password(
    session: Session, user: User, old_password: str, new_password: str
) -> User:
    """Change a local account's password after checking the old one."""
    _check_password(user, old_password)
    return update_credential(session, user.id, hash_password(new_password))
