"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    false,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from genie.db.base import Base
from genie.db.enums import DEFAULT_TASK_PRIORITY, DEFAULT_TASK_STATUS

if TYPE_CHECKING:
    from genie.db.models import Project, User


class Task(Base):
    """
    Unit of work inside a project.

    Permissions:
    - Assignee, creator, project owner: edit/complete/delete
    - Any project member: view

    Lifecycle: todo -> in-progress -> completed (terminal).
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_project_status", "project_id", "status"),
        Index("idx_tasks_assignee", "assignee_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    assignee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(
        String(20),
        server_default=text(f"'{DEFAULT_TASK_PRIORITY.value}'"),
        default=DEFAULT_TASK_PRIORITY.value,
        nullable=False,
    )
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    difficulty: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        server_default=text(f"'{DEFAULT_TASK_STATUS.value}'"),
        default=DEFAULT_TASK_STATUS.value,
        nullable=False,
    )
    started_date: Mapped[datetime | None] = mapped_column(nullable=True)
    # Set when a task is completed suspiciously fast (under an hour)
    exception: Mapped[bool] = mapped_column(
        Boolean, server_default=false(), default=False, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    project: Mapped["Project"] = relationship(back_populates="tasks")
    assignee: Mapped["User"] = relationship(foreign_keys=[assignee_id])
    creator: Mapped["User"] = relationship(foreign_keys=[created_by])


class CompletedTask(Base):
    """
    Immutable completion record, written exactly once per task.

    UNIQUE(task_id) backs the exactly-once guarantee under concurrency.
    """

    __tablename__ = "completed_tasks"
    __table_args__ = (Index("idx_completed_tasks_project", "project_id", "completed_date"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    started_date: Mapped[datetime] = mapped_column(nullable=False)
    completed_date: Mapped[datetime] = mapped_column(nullable=False)
    hours: Mapped[int] = mapped_column(Integer, nullable=False)
