"""Server-side login session model."""

from datetime import datetime
from uuid import UUID

from sqlmodel import Field, SQLModel


class UserSession(SQLModel, table=True):
    """Login session database model.

    The row is the source of truth for whether a session is alive; clients
    only hold a signed reference to its id.
    """

    __tablename__ = "sessions"

    id: str = Field(primary_key=True, max_length=64)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime = Field(index=True)


class SessionToken(SQLModel):
    """A freshly issued session: the signed token and its absolute expiry."""

    token: str
    user_id: UUID
    expires_at: datetime
