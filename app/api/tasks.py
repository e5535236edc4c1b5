"""Task API endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import CurrentUser, DBSession
from app.models.task import (
    TaskCreate,
    TaskListResponse,
    TaskReorder,
    TaskResponse,
    TaskStatus,
    TaskStatusUpdate,
    TaskUpdate,
)
from app.services.tasks import (
    TaskNotFoundError,
    TaskReorderForbiddenError,
    TaskValidationError,
    create_task,
    delete_task,
    get_task,
    list_tasks,
    reorder_tasks,
    update_task,
    update_task_status,
)

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Task not found",
    )


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    task_data: TaskCreate,
) -> TaskResponse:
    """Create a new task for the authenticated user."""
    task = create_task(session, current_user.id, task_data)
    return TaskResponse.model_validate(task)


@router.get("", response_model=TaskListResponse)
def list_tasks_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    task_status: TaskStatus | None = Query(
        default=None, alias="status", description="Filter by status"
    ),
) -> TaskListResponse:
    """List the authenticated user's tasks in display order."""
    tasks = list_tasks(session, current_user.id, task_status)
    return TaskListResponse(
        tasks=[TaskResponse.model_validate(t) for t in tasks],
        total=len(tasks),
    )


@router.post("/reorder")
def reorder_tasks_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    data: TaskReorder,
) -> dict[str, str]:
    """Persist a new task order after drag-and-drop."""
    try:
        reorder_tasks(session, current_user.id, data.task_ids)
    except TaskReorderForbiddenError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    return {"message": "Tasks reordered successfully"}


@router.get("/{task_id}", response_model=TaskResponse)
def get_task_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    task_id: UUID,
) -> TaskResponse:
    """Get a specific task by ID."""
    try:
        task = get_task(session, current_user.id, task_id)
    except TaskNotFoundError:
        raise _not_found()
    return TaskResponse.model_validate(task)


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    task_id: UUID,
    task_data: TaskUpdate,
) -> TaskResponse:
    """Update the given fields of a task."""
    try:
        task = update_task(session, current_user.id, task_id, task_data)
    except TaskNotFoundError:
        raise _not_found()
    except TaskValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/status", response_model=TaskResponse)
def update_status_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    task_id: UUID,
    data: TaskStatusUpdate,
) -> TaskResponse:
    """Mark a task done or pending."""
    try:
        task = update_task_status(session, current_user.id, task_id, data.status)
    except TaskNotFoundError:
        raise _not_found()
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    task_id: UUID,
) -> None:
    """Delete a task."""
    try:
        delete_task(session, current_user.id, task_id)
    except TaskNotFoundError:
        raise _not_found()
