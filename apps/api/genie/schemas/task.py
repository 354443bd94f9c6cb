"""Pydantic schemas for tasks."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from genie.db.enums import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    """Request to create a task."""
    project_id: UUID
    assignee_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None
    difficulty: int | None = Field(None, ge=1, le=10)


class TaskUpdate(BaseModel):
    """
    Request to update a task (partial).

    Only explicitly provided fields are applied. Status changes are
    governed by the lifecycle rules in task_service.update_task.
    """
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    priority: TaskPriority | None = None
    due_date: date | None = None
    difficulty: int | None = Field(None, ge=1, le=10)
    assignee_id: UUID | None = None
    status: TaskStatus | None = None


class TaskRead(BaseModel):
    """Full task response."""
    id: UUID
    project_id: UUID
    assignee_id: UUID
    created_by: UUID
    name: str
    description: str | None
    priority: TaskPriority
    due_date: date | None
    difficulty: int | None
    status: TaskStatus
    started_date: datetime | None
    exception: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CompletedTaskRead(BaseModel):
    id: UUID
    task_id: UUID
    user_id: UUID
    project_id: UUID
    started_date: datetime
    completed_date: datetime
    hours: int

    model_config = {"from_attributes": True}


class TaskCompletionRead(BaseModel):
    """Completed task together with its time-tracking record."""
    task: TaskRead
    completion: CompletedTaskRead
