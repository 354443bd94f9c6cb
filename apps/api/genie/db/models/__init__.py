"""SQLAlchemy ORM models, re-exported for `from genie.db.models import X`."""

from genie.db.models.auth import AuthSession, User, UserCandidate
from genie.db.models.organizations import Invite, Organization, OrganizationMember
from genie.db.models.projects import Project, ProjectMember
from genie.db.models.tasks import CompletedTask, Task

__all__ = [
    "AuthSession",
    "CompletedTask",
    "Invite",
    "Organization",
    "OrganizationMember",
    "Project",
    "ProjectMember",
    "Task",
    "User",
    "UserCandidate",
]
