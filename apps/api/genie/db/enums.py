"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Membership roles, shared by organization and project memberships.

    - OWNER: manages members, invites and destructive actions
    - MEMBER: regular participant
    """

    OWNER = "owner"
    MEMBER = "member"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class TaskStatus(str, Enum):
    """
    Task lifecycle: todo -> in-progress -> completed.

    COMPLETED is terminal.
    """

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CandidateStatus(str, Enum):
    """Sign-up candidate state."""

    PENDING = "pending"
    COMPLETED = "completed"


DEFAULT_TASK_STATUS = TaskStatus.TODO
DEFAULT_TASK_PRIORITY = TaskPriority.MEDIUM
