"""User identity store.

Lookups and writes for user records. Password hashing lives in
``app.services.auth``; this module only ever stores hashes.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models.user import User

logger = logging.getLogger(__name__)


class DuplicateUsernameError(Exception):
    """Raised when the username is already in use."""
    pass


class DuplicateExternalRefError(Exception):
    """Raised when the external identity is already linked to an account."""
    pass


class UserNotFoundError(Exception):
    """Raised when a user id does not exist."""
    pass


def get_user_by_username(session: Session, username: str) -> User | None:
    """Get a user by exact (case-sensitive) username."""
    return session.exec(select(User).where(User.username == username)).first()


def get_user_by_id(session: Session, user_id: UUID) -> User | None:
    """Get a user by id."""
    return session.get(User, user_id)


def get_user_by_external_ref(session: Session, external_ref: str) -> User | None:
    """Get a user by the external identity provider's subject id."""
    return session.exec(select(User).where(User.external_ref == external_ref)).first()


def create_user(
    session: Session,
    username: str,
    password_hash: str | None = None,
    external_ref: str | None = None,
    display_name: str | None = None,
    email: str | None = None,
) -> User:
    """Create a new user identity.

    Args:
        session: Database session
        username: Unique username
        password_hash: bcrypt hash, None for external-only accounts
        external_ref: External provider subject id, if linked
        display_name: Human-readable name; shown as the username when unset
        email: Email reported by the external provider

    Returns:
        User: The created user

    Raises:
        ValueError: If neither a password hash nor an external ref is given
        DuplicateUsernameError: If the username is taken
        DuplicateExternalRefError: If the external ref is already linked
    """
    if not password_hash and not external_ref:
        raise ValueError("A user needs a password or an external identity")

    if get_user_by_username(session, username) is not None:
        raise DuplicateUsernameError(f"Username '{username}' already exists")
    if external_ref is not None and get_user_by_external_ref(session, external_ref) is not None:
        raise DuplicateExternalRefError("External identity already linked")

    user = User(
        username=username,
        password_hash=password_hash,
        external_ref=external_ref,
        display_name=display_name,
        email=email,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race against a concurrent insert
        session.rollback()
        if get_user_by_username(session, username) is not None:
            raise DuplicateUsernameError(f"Username '{username}' already exists")
        raise DuplicateExternalRefError("External identity already linked")
    session.refresh(user)

    logger.info(
        "User created",
        extra={"user_id": str(user.id), "external": external_ref is not None},
    )
    return user


def update_credential(session: Session, user_id: UUID, password_hash: str) -> User:
    """Replace a user's password hash."""
    user = get_user_by_id(session, user_id)
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found")

    user.password_hash = password_hash
    user.updated_at = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info("Password changed", extra={"user_id": str(user_id)})
    return user


def set_display_name(session: Session, user: User, display_name: str) -> User:
    """Update a user's display name."""
    user.display_name = display_name
    user.updated_at = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)
    return user
