"""Tasks router - task CRUD and lifecycle actions."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from genie.core.deps import get_current_user, get_db, require_csrf_header
from genie.schemas.auth import CurrentUser
from genie.schemas.common import Envelope, ok
from genie.schemas.task import (
    CompletedTaskRead,
    TaskCompletionRead,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from genie.services import task_service

router = APIRouter(tags=["tasks"])


@router.post(
    "/tasks",
    status_code=201,
    response_model=Envelope[TaskRead],
    dependencies=[Depends(require_csrf_header)],
)
async def create_task(
    body: TaskCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    task = task_service.create_task(db, body, user.user_id)
    return ok("Task created", TaskRead.model_validate(task))


@router.get("/tasks/me", response_model=Envelope[list[TaskRead]])
async def list_my_tasks(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Every task assigned to the caller, any status."""
    tasks = task_service.list_my_tasks(db, user.user_id)
    return ok("Tasks found", [TaskRead.model_validate(t) for t in tasks])


@router.get("/tasks/{task_id}", response_model=Envelope[TaskRead])
async def get_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    task = task_service.get_task(db, task_id, user.user_id)
    return ok("Task found", TaskRead.model_validate(task))


@router.patch(
    "/tasks/{task_id}",
    response_model=Envelope[TaskRead],
    dependencies=[Depends(require_csrf_header)],
)
async def update_task(
    task_id: UUID,
    body: TaskUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Partial update; may start the task or reassign it."""
    task = task_service.update_task(db, task_id, body, user.user_id)
    return ok("Task updated", TaskRead.model_validate(task))


@router.delete(
    "/tasks/{task_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_csrf_header)],
)
async def delete_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    task_service.delete_task(db, task_id, user.user_id)
    return ok("Task deleted")


@router.post(
    "/tasks/{task_id}/complete",
    response_model=Envelope[TaskCompletionRead],
    dependencies=[Depends(require_csrf_header)],
)
async def complete_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Complete an in-progress task and record the hours spent."""
    task, record = task_service.complete_task(db, task_id, user.user_id)
    return ok(
        "Task completed",
        TaskCompletionRead(
            task=TaskRead.model_validate(task),
            completion=CompletedTaskRead.model_validate(record),
        ),
    )


@router.get(
    "/organizations/{org_id}/projects/{project_id}/users/{user_id}/tasks",
    response_model=Envelope[list[TaskRead]],
)
async def list_user_tasks(
    org_id: UUID,
    project_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    tasks = task_service.list_user_tasks(db, org_id, project_id, user_id, user.user_id)
    return ok("Tasks found", [TaskRead.model_validate(t) for t in tasks])
