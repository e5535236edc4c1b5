"""User identity model and auth schemas."""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from pydantic import field_validator
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.task import Task

# Prefix reserved for accounts created through the external identity provider
EXTERNAL_USERNAME_PREFIX = "extid_"

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")

# bcrypt only accepts 72 bytes of input
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class PasswordCredential:
    """Account that signs in with a bcrypt-hashed password."""

    password_hash: str


@dataclass(frozen=True)
class ExternalCredential:
    """Account that signs in only through the external identity provider."""

    external_ref: str


@dataclass(frozen=True)
class NoCredential:
    """Account with no usable sign-in path."""


Credential = PasswordCredential | ExternalCredential | NoCredential


class User(SQLModel, table=True):
    """User identity database model."""

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    username: str = Field(max_length=255, unique=True, index=True)
    password_hash: str | None = Field(default=None, max_length=255)
    external_ref: str | None = Field(default=None, max_length=255, unique=True, index=True)
    display_name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    tasks: list["Task"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    @property
    def credential(self) -> Credential:
        """The sign-in path this account uses; a password wins over a link."""
        if self.password_hash:
            return PasswordCredential(self.password_hash)
        if self.external_ref:
            return ExternalCredential(self.external_ref)
        return NoCredential()

    @property
    def name(self) -> str:
        return self.display_name or self.username


def _check_username(value: str) -> str:
    if not USERNAME_PATTERN.match(value):
        raise ValueError(
            "Username must be 3-30 characters of letters, digits or underscore"
        )
    if value.startswith(EXTERNAL_USERNAME_PREFIX):
        raise ValueError(f"Usernames starting with '{EXTERNAL_USERNAME_PREFIX}' are reserved")
    return value


def _check_password_length(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return value


class UserCreate(SQLModel):
    """Schema for user registration."""

    username: str
    password: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _check_username(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password_length(value)


class UserLogin(SQLModel):
    """Schema for user login."""

    username: str
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password_length(value)


class PasswordChange(SQLModel):
    """Schema for changing the current user's password."""

    old_password: str
    new_password: str = Field(min_length=1)

    @field_validator("old_password", "new_password")
    @classmethod
    def validate_passwords(cls, value: str) -> str:
        return _check_password_length(value)


class UserResponse(SQLModel):
    """Schema for user response (no credentials)."""

    id: UUID
    username: str
    display_name: str
    external_user: bool
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            display_name=user.name,
            external_user=user.external_ref is not None,
            created_at=user.created_at,
        )


class AuthResponse(SQLModel):
    """Schema for authentication response.

    The session token itself travels only in the HttpOnly cookie.
    """

    user: UserResponse
    expires_at: datetime
