"""Task service for ownership-scoped CRUD and reordering.

Every query filters on the owning user, so a task that belongs to someone
else behaves exactly like one that does not exist.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlmodel import Session, select

from app.models.task import Task, TaskCreate, TaskStatus, TaskUpdate

logger = logging.getLogger(__name__)


class TaskNotFoundError(Exception):
    """Raised when a task does not exist or is not owned by the user."""
    pass


class TaskValidationError(Exception):
    """Raised when task field validation fails."""
    pass


class TaskReorderForbiddenError(Exception):
    """Raised when a reorder names tasks the user does not own."""
    pass


def create_task(session: Session, user_id: UUID, task_data: TaskCreate) -> Task:
    """Create a new task for the specified user.

    New tasks start at order 0, ahead of any tasks that have been reordered.
    """
    task = Task(
        user_id=user_id,
        title=task_data.title,
        description=task_data.description,
        priority=task_data.priority,
        deadline=task_data.deadline,
    )
    session.add(task)
    session.commit()
    session.refresh(task)

    logger.info("Task created", extra={"task_id": str(task.id), "user_id": str(user_id)})
    return task


def list_tasks(
    session: Session,
    user_id: UUID,
    status: TaskStatus | None = None,
) -> list[Task]:
    """
    Get the user's tasks by position, then deadline (undated last).
    """
    query = select(Task).where(Task.user_id == user_id)
    if status is not None:
        query = query.where(Task.status == status)

    query = query.order_by(
        Task.order.asc(),
        Task.deadline.asc().nulls_last(),
        Task.created_at.asc(),
    )
    return list(session.exec(query).all())


def get_task(session: Session, user_id: UUID, task_id: UUID) -> Task:
    """Get a specific task owned by the user."""
    task = session.exec(
        select(Task).where(Task.id == task_id, Task.user_id == user_id)
    ).first()
    if task is None:
        raise TaskNotFoundError("Task not found")
    return task


def update_task(
    session: Session, user_id: UUID, task_id: UUID, task_data: TaskUpdate
) -> Task:
    """Apply the fields the client sent; everything else is left alone."""
    task = get_task(session, user_id, task_id)
    update_data = task_data.model_dump(exclude_unset=True)

    if "title" in update_data and not update_data["title"]:
        raise TaskValidationError("Title cannot be empty")
    for key in ("priority", "status"):
        if key in update_data and update_data[key] is None:
            raise TaskValidationError(f"{key.capitalize()} cannot be empty")

    for key, value in update_data.items():
        setattr(task, key, value)

    task.updated_at = datetime.utcnow()
    session.add(task)
    session.commit()
    session.refresh(task)

    logger.info(
        "Task updated",
        extra={"task_id": str(task_id), "fields": sorted(update_data)},
    )
    return task


def update_task_status(
    session: Session, user_id: UUID, task_id: UUID, status: TaskStatus
) -> Task:
    """Move a task between pending and done."""
    if not isinstance(status, TaskStatus):
        try:
            status = TaskStatus(status)
        except ValueError:
            raise TaskValidationError(f"Invalid status '{status}'")

    task = get_task(session, user_id, task_id)
    task.status = status
    task.updated_at = datetime.utcnow()
    session.add(task)
    session.commit()
    session.refresh(task)
    return task


def delete_task(session: Session, user_id: UUID, task_id: UUID) -> None:
    """Delete a task."""
    task = get_task(session, user_id, task_id)
    session.delete(task)
    session.commit()

    logger.info("Task deleted", extra={"task_id": str(task_id)})


def reorder_tasks(session: Session, user_id: UUID, task_ids: list[UUID]) -> None:
    """
    Set each task's order to its index in ``task_ids``.

    All ids must name distinct tasks owned by the user, otherwise nothing
    changes. The new positions are written in a single commit.
    """
    tasks = session.exec(
        select(Task).where(Task.id.in_(task_ids), Task.user_id == user_id)
    ).all()

    if len(tasks) != len(task_ids):
        logger.warning(
            "Reorder rejected",
            extra={"user_id": str(user_id), "requested": len(task_ids), "owned": len(tasks)},
        )
        raise TaskReorderForbiddenError("Some tasks not found or unauthorized")

    by_id = {task.id: task for task in tasks}
    now = datetime.utcnow()
    try:
        for index, task_id in enumerate(task_ids):
            task = by_id[task_id]
            task.order = index
            task.updated_at = now
            session.add(task)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Tasks reordered", extra={"user_id": str(user_id), "count": len(task_ids)})
