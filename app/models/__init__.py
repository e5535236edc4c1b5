"""SQLModel entities for the Task Tracker application."""

from app.models.session import SessionToken, UserSession
from app.models.task import Priority, Task, TaskStatus
from app.models.user import User

__all__ = [
    "User",
    "Task",
    "Priority",
    "TaskStatus",
    "UserSession",
    "SessionToken",
]
