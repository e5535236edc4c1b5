"""Task entity model."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from pydantic import field_validator
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.user import User


class Priority(str, Enum):
    """Task priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    """Task status values."""
    PENDING = "pending"
    DONE = "done"


def _strip_title(value: str | None) -> str | None:
    return value.strip() if isinstance(value, str) else value


class TaskBase(SQLModel):
    """Base Task schema."""

    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)


class Task(TaskBase, table=True):
    """Task database model."""

    __tablename__ = "tasks"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    priority: Priority = Field(default=Priority.MEDIUM)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    deadline: date | None = Field(default=None)
    order: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    user: "User" = Relationship(back_populates="tasks")


class TaskCreate(SQLModel):
    """Schema for task creation."""

    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    priority: Priority = Priority.MEDIUM
    deadline: date | None = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value: str | None) -> str | None:
        return _strip_title(value)


class TaskUpdate(SQLModel):
    """Schema for task update. Only fields sent by the client are applied."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    priority: Priority | None = None
    status: TaskStatus | None = None
    deadline: date | None = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value: str | None) -> str | None:
        return _strip_title(value)


class TaskStatusUpdate(SQLModel):
    """Schema for a status change."""

    status: TaskStatus


class TaskReorder(SQLModel):
    """Schema for a drag-and-drop reorder: ids in their new order."""

    task_ids: list[UUID]


class TaskResponse(SQLModel):
    """Schema for task response."""

    id: UUID
    title: str
    description: str | None
    priority: Priority
    status: TaskStatus
    deadline: date | None
    order: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskListResponse(SQLModel):
    """Schema for task list response."""

    tasks: list[TaskResponse]
    total: int
