"""
Task service - task CRUD, lifecycle transitions and completion tracking.

Lifecycle: todo -> in-progress -> completed. Completed is terminal and
is only reached through complete_task, which writes exactly one
CompletedTask record.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from genie.core.access import (
    get_project_membership,
    require_project_access,
    require_project_member,
    require_task_modify,
)
from genie.core.exceptions import ForbiddenError, NotFoundError
from genie.core.structured_logging import build_log_context
from genie.db.enums import TaskStatus
from genie.db.models import CompletedTask, Organization, Task, User
from genie.schemas.task import TaskCreate, TaskUpdate
from genie.services import project_service

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600

# Fields copied verbatim from TaskUpdate; the rest drive the state machine.
_PLAIN_FIELDS = ("name", "description", "priority", "due_date", "difficulty")
_NON_NULLABLE_FIELDS = {"name", "priority"}


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def elapsed_hours(started: datetime, completed: datetime) -> int:
    """Whole hours between two instants, rounded down."""
    delta = abs(_as_utc(completed) - _as_utc(started))
    return int(delta.total_seconds() // SECONDS_PER_HOUR)


def _get_task_for_update(db: Session, task_id: UUID) -> Task:
    task = db.query(Task).filter(Task.id == task_id).with_for_update().first()
    if not task:
        raise NotFoundError("Task not found")
    return task


def _apply_plain_fields(task: Task, fields: dict) -> None:
    for field in _PLAIN_FIELDS:
        if field not in fields:
            continue
        value = fields[field]
        if value is None and field in _NON_NULLABLE_FIELDS:
            continue
        if field == "priority":
            value = value.value
        setattr(task, field, value)


# =============================================================================
# CRUD
# =============================================================================

def create_task(db: Session, data: TaskCreate, actor_id: UUID) -> Task:
    """
    Create a task in status todo.

    Raises:
        NotFoundError: Project or assignee user missing
        ForbiddenError: Actor or assignee is not a project member
    """
    project = project_service.get_project_or_404(db, data.project_id)
    require_project_member(db, project.id, actor_id)

    if not db.get(User, data.assignee_id):
        raise NotFoundError("Assignee not found")
    if not get_project_membership(db, project.id, data.assignee_id):
        raise ForbiddenError("Assignee is not a member of this project")

    task = Task(
        project_id=project.id,
        assignee_id=data.assignee_id,
        created_by=actor_id,
        name=data.name.strip(),
        description=data.description,
        priority=data.priority.value,
        due_date=data.due_date,
        difficulty=data.difficulty,
        status=TaskStatus.TODO.value,
        started_date=None,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info(
        "Task created",
        extra=build_log_context(user_id=actor_id, project_id=project.id, task_id=task.id),
    )
    return task


def get_task(db: Session, task_id: UUID, actor_id: UUID) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise NotFoundError("Task not found")
    require_project_member(db, task.project_id, actor_id)
    return task


def delete_task(db: Session, task_id: UUID, actor_id: UUID) -> None:
    """Assignee, creator or project owner may delete."""
    task = _get_task_for_update(db, task_id)
    require_task_modify(db, task, actor_id)
    db.delete(task)
    db.commit()
    logger.info(
        "Task deleted",
        extra=build_log_context(user_id=actor_id, task_id=task_id),
    )


# =============================================================================
# Lifecycle
# =============================================================================

def update_task(db: Session, task_id: UUID, data: TaskUpdate, actor_id: UUID) -> Task:
    """
    Apply a partial update and any requested status transition.

    Rules, in order:
    1. Completed tasks are frozen.
    2. Changing the assignee resets status to todo and clears
       started_date, whatever status was sent.
    3. Moving to in-progress stamps started_date (once); repeating it
       is rejected.
    4. Completion only happens through complete_task, and status never
       moves backwards.
    """
    task = _get_task_for_update(db, task_id)
    require_task_modify(db, task, actor_id)

    current_status = TaskStatus(task.status)
    if current_status == TaskStatus.COMPLETED:
        raise ForbiddenError("Task is already completed")

    fields = data.model_dump(exclude_unset=True)
    requested_status = fields.get("status")
    new_assignee_id = fields.get("assignee_id")

    if new_assignee_id is not None and new_assignee_id != task.assignee_id:
        if not get_project_membership(db, task.project_id, new_assignee_id):
            raise ForbiddenError("Assignee is not a member of this project")
        _apply_plain_fields(task, fields)
        task.assignee_id = new_assignee_id
        task.status = TaskStatus.TODO.value
        task.started_date = None
    elif requested_status == TaskStatus.IN_PROGRESS:
        if current_status == TaskStatus.IN_PROGRESS:
            raise ForbiddenError("Task is already in progress")
        _apply_plain_fields(task, fields)
        task.status = TaskStatus.IN_PROGRESS.value
        if task.started_date is None:
            task.started_date = datetime.now(timezone.utc)
    elif requested_status == TaskStatus.COMPLETED:
        raise ForbiddenError("Use the complete action to complete a task")
    elif requested_status == TaskStatus.TODO and current_status != TaskStatus.TODO:
        raise ForbiddenError("Task status cannot move backwards")
    else:
        _apply_plain_fields(task, fields)

    db.commit()
    db.refresh(task)
    return task


def complete_task(db: Session, task_id: UUID, actor_id: UUID) -> tuple[Task, CompletedTask]:
    """
    Complete an in-progress task and record the time spent.

    hours = floor(|now - started_date| / 1h). A completion under one
    hour flags the task as an exception but still succeeds.

    The status flip is a conditional UPDATE guarded on in-progress, and
    completed_tasks.task_id is unique, so racing completions cannot
    both succeed.

    Raises:
        NotFoundError: Task missing
        ForbiddenError: Not in progress, or actor may not modify it
    """
    task = _get_task_for_update(db, task_id)
    if task.status != TaskStatus.IN_PROGRESS.value:
        raise ForbiddenError("Task is not in progress")
    require_task_modify(db, task, actor_id)

    completed_at = datetime.now(timezone.utc)
    # Pre-existing rows may be in-progress without a start stamp
    started_at = _as_utc(task.started_date) if task.started_date else completed_at
    hours = elapsed_hours(started_at, completed_at)
    is_exception = hours == 0

    values = {"status": TaskStatus.COMPLETED.value, "updated_at": completed_at}
    if is_exception:
        values["exception"] = True
    result = db.execute(
        update(Task)
        .where(Task.id == task.id, Task.status == TaskStatus.IN_PROGRESS.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ForbiddenError("Task is not in progress")

    record = CompletedTask(
        task_id=task.id,
        user_id=actor_id,
        project_id=task.project_id,
        started_date=started_at,
        completed_date=completed_at,
        hours=hours,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ForbiddenError("Task is not in progress")

    db.refresh(task)
    db.refresh(record)
    log_context = build_log_context(user_id=actor_id, project_id=task.project_id, task_id=task.id)
    if is_exception:
        logger.warning("Task completed in under an hour; flagged", extra=log_context)
    else:
        logger.info("Task completed", extra=log_context)
    return task, record


# =============================================================================
# Queries
# =============================================================================

def list_project_tasks(db: Session, project_id: UUID, actor_id: UUID) -> list[Task]:
    """Open (non-completed) tasks, todo before in-progress, oldest first."""
    project = project_service.get_project_or_404(db, project_id)
    require_project_access(db, project, actor_id)
    return (
        db.query(Task)
        .filter(
            Task.project_id == project_id,
            Task.status != TaskStatus.COMPLETED.value,
        )
        .order_by(Task.status.desc(), Task.created_at.asc(), Task.id)
        .all()
    )


def list_my_tasks(db: Session, actor_id: UUID) -> list[Task]:
    """Every task assigned to the actor, any status."""
    return (
        db.query(Task)
        .filter(Task.assignee_id == actor_id)
        .order_by(Task.created_at.desc(), Task.id)
        .all()
    )


def list_user_tasks(
    db: Session,
    org_id: UUID,
    project_id: UUID,
    user_id: UUID,
    actor_id: UUID,
) -> list[Task]:
    """A given user's tasks within one project of one organization."""
    if not db.get(Organization, org_id):
        raise NotFoundError("Organization not found")
    project = project_service.get_project(db, project_id)
    if not project or project.organization_id != org_id:
        raise NotFoundError("Project not found")
    if not db.get(User, user_id):
        raise NotFoundError("User not found")
    require_project_access(db, project, actor_id)

    return (
        db.query(Task)
        .filter(Task.project_id == project_id, Task.assignee_id == user_id)
        .order_by(Task.created_at, Task.id)
        .all()
    )


def list_completed_tasks(db: Session, project_id: UUID, actor_id: UUID) -> list[CompletedTask]:
    project = project_service.get_project_or_404(db, project_id)
    require_project_access(db, project, actor_id)
    return (
        db.query(CompletedTask)
        .filter(CompletedTask.project_id == project_id)
        .order_by(CompletedTask.completed_date, CompletedTask.id)
        .all()
    )
