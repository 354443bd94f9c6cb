"""Membership service - organization member listing, role changes and removal."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from genie.core.access import (
    get_org_membership,
    get_project_membership,
    lock_org_owners,
    lock_project_owners,
    require_org_member,
    require_org_owner,
)
from genie.core.exceptions import BadRequestError, NotFoundError
from genie.db.enums import Role
from genie.db.models import OrganizationMember, Project, ProjectMember

logger = logging.getLogger(__name__)


def list_members(db: Session, org_id: UUID, actor_id: UUID) -> list[OrganizationMember]:
    """Members of an organization, visible to any member."""
    require_org_member(db, org_id, actor_id)
    return (
        db.query(OrganizationMember)
        .options(joinedload(OrganizationMember.user))
        .filter(OrganizationMember.organization_id == org_id)
        .order_by(OrganizationMember.created_at)
        .all()
    )


def get_own_membership(db: Session, org_id: UUID, actor_id: UUID) -> OrganizationMember:
    membership = get_org_membership(db, org_id, actor_id)
    if not membership:
        raise NotFoundError("You are not a member of this organization")
    return membership


def _is_last_owner(db: Session, membership: OrganizationMember) -> bool:
    if membership.role != Role.OWNER.value:
        return False
    # Concurrent removals or demotions of owners serialize on these locks
    return len(lock_org_owners(db, membership.organization_id)) <= 1


def _successor_id(db: Session, org_id: UUID, target_user_id: UUID, actor_id: UUID) -> UUID:
    """Organization owner who inherits projects the removed user owned alone."""
    if actor_id != target_user_id:
        return actor_id
    # Self-removal; the guard above ensured another owner exists
    return (
        db.query(OrganizationMember.user_id)
        .filter(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.role == Role.OWNER.value,
            OrganizationMember.user_id != target_user_id,
        )
        .order_by(OrganizationMember.created_at)
        .limit(1)
        .scalar()
    )


def _hand_over_sole_projects(
    db: Session, org_id: UUID, target_user_id: UUID, successor_id: UUID
) -> None:
    owned = (
        db.query(ProjectMember)
        .join(Project, Project.id == ProjectMember.project_id)
        .filter(
            Project.organization_id == org_id,
            ProjectMember.user_id == target_user_id,
            ProjectMember.role == Role.OWNER.value,
        )
        .all()
    )
    for member in owned:
        if len(lock_project_owners(db, member.project_id)) > 1:
            continue
        successor = get_project_membership(db, member.project_id, successor_id)
        if successor:
            successor.role = Role.OWNER.value
        else:
            db.add(
                ProjectMember(
                    project_id=member.project_id,
                    user_id=successor_id,
                    role=Role.OWNER.value,
                )
            )
        logger.info(
            "Project ownership handed over",
            extra={"project_id": str(member.project_id), "user_id": str(successor_id)},
        )


def remove_member(db: Session, org_id: UUID, target_user_id: UUID, actor_id: UUID) -> None:
    """
    Remove a user from an organization (owner only).

    Another owner may be removed; the last owner may not. The user's
    memberships in the organization's projects are dropped as well, and
    projects they owned alone pass to the acting owner (or, when owners
    remove themselves, to the longest-standing remaining owner).

    Raises:
        ForbiddenError: Actor is not an owner
        BadRequestError: Target not a member, or is the last owner
    """
    require_org_owner(db, org_id, actor_id)

    membership = get_org_membership(db, org_id, target_user_id)
    if not membership:
        raise BadRequestError("User is not a member of this organization")
    if _is_last_owner(db, membership):
        raise BadRequestError("Cannot remove the last owner of the organization")

    successor_id = _successor_id(db, org_id, target_user_id, actor_id)
    _hand_over_sole_projects(db, org_id, target_user_id, successor_id)

    project_ids = select(Project.id).where(Project.organization_id == org_id)
    db.query(ProjectMember).filter(
        ProjectMember.user_id == target_user_id,
        ProjectMember.project_id.in_(project_ids),
    ).delete(synchronize_session=False)
    db.delete(membership)
    db.commit()
    logger.info(
        "Organization member removed",
        extra={"org_id": str(org_id), "user_id": str(actor_id)},
    )


def update_member_role(
    db: Session,
    org_id: UUID,
    target_user_id: UUID,
    role: Role,
    actor_id: UUID,
) -> OrganizationMember:
    """
    Change a member's role (owner only).

    Raises:
        ForbiddenError: Actor is not an owner
        BadRequestError: Target not a member, or demoting the last owner
    """
    require_org_owner(db, org_id, actor_id)

    membership = get_org_membership(db, org_id, target_user_id)
    if not membership:
        raise BadRequestError("User is not a member of this organization")
    if role != Role.OWNER and _is_last_owner(db, membership):
        raise BadRequestError("Cannot demote the last owner of the organization")

    membership.role = Role(role).value
    db.commit()
    db.refresh(membership)
    return membership
