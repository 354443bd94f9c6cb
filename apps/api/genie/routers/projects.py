"""Project endpoints - project CRUD, membership and project task views."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from genie.core.deps import get_current_user, get_db, require_csrf_header
from genie.schemas.auth import CurrentUser
from genie.schemas.common import Envelope, ok
from genie.schemas.project import (
    ProjectMemberCreate,
    ProjectMemberRead,
    ProjectMemberRemove,
    ProjectRead,
    ProjectUpdate,
)
from genie.schemas.task import CompletedTaskRead, TaskRead
from genie.services import project_service, task_service

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/{project_id}", response_model=Envelope[ProjectRead])
async def get_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    project = project_service.read_project(db, project_id, user.user_id)
    return ok("Project found", ProjectRead.model_validate(project))


@router.patch(
    "/{project_id}",
    response_model=Envelope[ProjectRead],
    dependencies=[Depends(require_csrf_header)],
)
async def update_project(
    project_id: UUID,
    body: ProjectUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    project = project_service.update_project(
        db, project_id, user.user_id, name=body.name, description=body.description
    )
    return ok("Project updated", ProjectRead.model_validate(project))


@router.delete(
    "/{project_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_csrf_header)],
)
async def delete_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    project_service.delete_project(db, project_id, user.user_id)
    return ok("Project deleted")


# =============================================================================
# Members
# =============================================================================

@router.get("/{project_id}/members", response_model=Envelope[list[ProjectMemberRead]])
async def list_project_members(
    project_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    members = project_service.list_project_members(db, project_id, user.user_id)
    return ok("Members found", [ProjectMemberRead.model_validate(m) for m in members])


@router.post(
    "/{project_id}/members",
    status_code=201,
    response_model=Envelope[ProjectMemberRead],
    dependencies=[Depends(require_csrf_header)],
)
async def add_project_member(
    project_id: UUID,
    body: ProjectMemberCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    member = project_service.add_project_member(
        db, project_id, body.user_id, body.role, user.user_id
    )
    return ok("Member added", ProjectMemberRead.model_validate(member))


@router.delete(
    "/{project_id}/members",
    response_model=Envelope[None],
    dependencies=[Depends(require_csrf_header)],
)
async def remove_project_member(
    project_id: UUID,
    body: ProjectMemberRemove,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    project_service.remove_project_member(db, project_id, body.user_id, user.user_id)
    return ok("Member removed")


# =============================================================================
# Tasks
# =============================================================================

@router.get("/{project_id}/tasks", response_model=Envelope[list[TaskRead]])
async def list_project_tasks(
    project_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Open tasks of the project (completed ones excluded)."""
    tasks = task_service.list_project_tasks(db, project_id, user.user_id)
    return ok("Tasks found", [TaskRead.model_validate(t) for t in tasks])


@router.get("/{project_id}/tasks/completed", response_model=Envelope[list[CompletedTaskRead]])
async def list_completed_tasks(
    project_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    records = task_service.list_completed_tasks(db, project_id, user.user_id)
    return ok("Completed tasks found", [CompletedTaskRead.model_validate(r) for r in records])
