"""
Authorization guard: membership and role resolution.

Every mutating service call resolves the actor's organization or
project membership through these helpers before touching state.
Organization roles and project roles are independent.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from genie.core.exceptions import ForbiddenError
from genie.db.enums import Role
from genie.db.models import OrganizationMember, Project, ProjectMember, Task


# =============================================================================
# Organization membership
# =============================================================================

def get_org_membership(
    db: Session, org_id: UUID, user_id: UUID
) -> OrganizationMember | None:
    return (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.user_id == user_id,
        )
        .first()
    )


def is_org_owner(db: Session, org_id: UUID, user_id: UUID) -> bool:
    membership = get_org_membership(db, org_id, user_id)
    return membership is not None and membership.role == Role.OWNER.value


def require_org_member(db: Session, org_id: UUID, user_id: UUID) -> OrganizationMember:
    """Raise ForbiddenError unless the user belongs to the organization."""
    membership = get_org_membership(db, org_id, user_id)
    if not membership:
        raise ForbiddenError("You are not a member of this organization")
    # Unknown role strings are a 403, not a 500
    if not Role.has_value(membership.role):
        raise ForbiddenError(f"Unknown role '{membership.role}'. Contact an owner.")
    return membership


def require_org_owner(db: Session, org_id: UUID, user_id: UUID) -> OrganizationMember:
    """Raise ForbiddenError unless the user owns the organization."""
    membership = get_org_membership(db, org_id, user_id)
    if not membership or membership.role != Role.OWNER.value:
        raise ForbiddenError("Only organization owners can perform this action")
    return membership


def lock_org_owners(db: Session, org_id: UUID) -> list[OrganizationMember]:
    """Owner rows of an organization, row-locked until the transaction ends."""
    return (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.role == Role.OWNER.value,
        )
        .with_for_update()
        .all()
    )


# =============================================================================
# Project membership
# =============================================================================

def get_project_membership(
    db: Session, project_id: UUID, user_id: UUID
) -> ProjectMember | None:
    return (
        db.query(ProjectMember)
        .filter(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
        .first()
    )


def require_project_member(db: Session, project_id: UUID, user_id: UUID) -> ProjectMember:
    membership = get_project_membership(db, project_id, user_id)
    if not membership:
        raise ForbiddenError("You are not a member of this project")
    return membership


def require_project_access(db: Session, project: Project, user_id: UUID) -> None:
    """Project members and owners of the parent organization may read a project."""
    if get_project_membership(db, project.id, user_id):
        return
    if is_org_owner(db, project.organization_id, user_id):
        return
    raise ForbiddenError("You do not have access to this project")


def require_project_manager(db: Session, project: Project, user_id: UUID) -> None:
    """Project owners and owners of the parent organization may manage a project."""
    membership = get_project_membership(db, project.id, user_id)
    if membership and membership.role == Role.OWNER.value:
        return
    if is_org_owner(db, project.organization_id, user_id):
        return
    raise ForbiddenError("Only project or organization owners can manage this project")


def lock_project_owners(db: Session, project_id: UUID) -> list[ProjectMember]:
    return (
        db.query(ProjectMember)
        .filter(
            ProjectMember.project_id == project_id,
            ProjectMember.role == Role.OWNER.value,
        )
        .with_for_update()
        .all()
    )


# =============================================================================
# Task permissions
# =============================================================================

def can_modify_task(task: Task, user_id: UUID, membership: ProjectMember | None) -> bool:
    """
    Check the three-way task rule.

    The actor must be a project member and additionally the assignee,
    the creator, or a project owner.
    """
    if membership is None:
        return False
    return (
        task.assignee_id == user_id
        or task.created_by == user_id
        or membership.role == Role.OWNER.value
    )


def require_task_modify(db: Session, task: Task, user_id: UUID) -> ProjectMember:
    membership = get_project_membership(db, task.project_id, user_id)
    if not can_modify_task(task, user_id, membership):
        raise ForbiddenError("You are not allowed to modify this task")
    return membership
