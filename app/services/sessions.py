"""Login session management.

Sessions are rows in the ``sessions`` table with a fixed, non-sliding
expiry. Clients hold a JWT signed with the session secret that names the
row, so a tampered token is rejected before the database is consulted.
"""

import logging
import secrets
from datetime import datetime, timedelta
from uuid import UUID

from jose import JWTError, jwt
from sqlmodel import Session, select

from app.config import get_settings
from app.models.session import SessionToken, UserSession
from app.models.user import User

logger = logging.getLogger(__name__)


def _encode(session_id: str, user_id: UUID, expires_at: datetime) -> str:
    settings = get_settings()
    payload = {
        "sid": session_id,
        "sub": str(user_id),
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.JWT_ALGORITHM)


def _decode(token: str, verify_exp: bool = True) -> dict | None:
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": verify_exp},
        )
    except JWTError:
        return None


def create_session(
    session: Session, user_id: UUID, now: datetime | None = None
) -> SessionToken:
    """
    Start a session for ``user_id``.
    Returns the signed token and its expiry.
    """
    settings = get_settings()
    # Whole seconds, so the row and the token's exp claim expire together
    now = (now or datetime.utcnow()).replace(microsecond=0)
    record = UserSession(
        id=secrets.token_urlsafe(32),
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(hours=settings.SESSION_EXPIRATION_HOURS),
    )
    session.add(record)
    session.commit()
    session.refresh(record)

    logger.info("Session created", extra={"user_id": str(user_id)})
    return SessionToken(
        token=_encode(record.id, user_id, record.expires_at),
        user_id=user_id,
        expires_at=record.expires_at,
    )


def resolve_session(
    session: Session, token: str | None, now: datetime | None = None
) -> User | None:
    """
    Resolve a session token to its user.
    Returns None for a missing, forged, unknown or expired token.
    """
    if not token:
        return None
    payload = _decode(token)
    if payload is None:
        return None

    session_id = payload.get("sid")
    if not isinstance(session_id, str):
        return None
    record = session.get(UserSession, session_id)
    if record is None or str(record.user_id) != payload.get("sub"):
        return None

    now = now or datetime.utcnow()
    if now >= record.expires_at:
        session.delete(record)
        session.commit()
        return None

    return session.get(User, record.user_id)


def destroy_session(session: Session, token: str | None) -> None:
    """End the session named by ``token``. Unknown tokens are ignored."""
    if not token:
        return
    payload = _decode(token, verify_exp=False)
    if payload is None:
        return

    session_id = payload.get("sid")
    record = session.get(UserSession, session_id) if isinstance(session_id, str) else None
    if record is None:
        return
    user_id = record.user_id
    session.delete(record)
    session.commit()
    logger.info("Session destroyed", extra={"user_id": str(user_id)})


def purge_expired_sessions(session: Session, now: datetime | None = None) -> int:
    """Delete expired session rows. Returns how many were removed."""
    now = now or datetime.utcnow()
    expired = session.exec(
        select(UserSession).where(UserSession.expires_at <= now)
    ).all()
    if not expired:
        return 0

    for record in expired:
        session.delete(record)
    session.commit()
    logger.info("Expired sessions purged", extra={"count": len(expired)})
    return len(expired)
