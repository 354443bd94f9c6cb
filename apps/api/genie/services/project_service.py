"""Project service - projects and project membership."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from genie.core.access import (
    get_org_membership,
    get_project_membership,
    lock_project_owners,
    require_org_member,
    require_project_access,
    require_project_manager,
)
from genie.core.exceptions import BadRequestError, ConflictError, NotFoundError
from genie.db.enums import Role
from genie.db.models import Project, ProjectMember

logger = logging.getLogger(__name__)


def get_project(db: Session, project_id: UUID) -> Project | None:
    return db.query(Project).filter(Project.id == project_id).first()


def get_project_or_404(db: Session, project_id: UUID) -> Project:
    project = get_project(db, project_id)
    if not project:
        raise NotFoundError("Project not found")
    return project


def create_project(
    db: Session,
    org_id: UUID,
    name: str,
    description: str | None,
    actor_id: UUID,
) -> Project:
    """Create a project inside an organization; the creator owns it."""
    require_org_member(db, org_id, actor_id)

    project = Project(organization_id=org_id, name=name.strip(), description=description)
    db.add(project)
    db.flush()
    db.add(
        ProjectMember(
            project_id=project.id,
            user_id=actor_id,
            role=Role.OWNER.value,
        )
    )
    db.commit()
    db.refresh(project)
    logger.info(
        "Project created",
        extra={"org_id": str(org_id), "project_id": str(project.id), "user_id": str(actor_id)},
    )
    return project


def list_projects(db: Session, org_id: UUID, actor_id: UUID) -> list[Project]:
    """
    Projects visible to the actor.

    Organization owners see every project; members see only the
    projects they belong to.
    """
    membership = require_org_member(db, org_id, actor_id)
    query = db.query(Project).filter(Project.organization_id == org_id)
    if membership.role != Role.OWNER.value:
        query = query.join(ProjectMember, ProjectMember.project_id == Project.id).filter(
            ProjectMember.user_id == actor_id
        )
    return query.order_by(Project.created_at, Project.id).all()


def read_project(db: Session, project_id: UUID, actor_id: UUID) -> Project:
    project = get_project_or_404(db, project_id)
    require_project_access(db, project, actor_id)
    return project


def update_project(
    db: Session,
    project_id: UUID,
    actor_id: UUID,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Project:
    project = get_project_or_404(db, project_id)
    require_project_manager(db, project, actor_id)

    if name is not None:
        project.name = name.strip()
    if description is not None:
        project.description = description
    db.commit()
    db.refresh(project)
    return project


def delete_project(db: Session, project_id: UUID, actor_id: UUID) -> None:
    """Delete a project with its memberships, tasks and completion records."""
    project = get_project_or_404(db, project_id)
    require_project_manager(db, project, actor_id)
    db.delete(project)
    db.commit()
    logger.info(
        "Project deleted",
        extra={"project_id": str(project_id), "user_id": str(actor_id)},
    )


def list_project_members(db: Session, project_id: UUID, actor_id: UUID) -> list[ProjectMember]:
    project = get_project_or_404(db, project_id)
    require_project_access(db, project, actor_id)
    return (
        db.query(ProjectMember)
        .options(joinedload(ProjectMember.user))
        .filter(ProjectMember.project_id == project_id)
        .order_by(ProjectMember.created_at)
        .all()
    )


def add_project_member(
    db: Session,
    project_id: UUID,
    user_id: UUID,
    role: Role,
    actor_id: UUID,
) -> ProjectMember:
    """
    Add an organization member to a project.

    Raises:
        ForbiddenError: Actor is neither project owner nor organization owner
        BadRequestError: Target is not in the project's organization
        ConflictError: Target is already a project member
    """
    project = get_project_or_404(db, project_id)
    require_project_manager(db, project, actor_id)

    if not get_org_membership(db, project.organization_id, user_id):
        raise BadRequestError("User is not a member of this organization")
    if get_project_membership(db, project_id, user_id):
        raise ConflictError("User is already a member of this project")

    member = ProjectMember(project_id=project_id, user_id=user_id, role=Role(role).value)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def remove_project_member(db: Session, project_id: UUID, user_id: UUID, actor_id: UUID) -> None:
    project = get_project_or_404(db, project_id)
    require_project_manager(db, project, actor_id)

    member = get_project_membership(db, project_id, user_id)
    if not member:
        raise BadRequestError("User is not a member of this project")
    if member.role == Role.OWNER.value and len(lock_project_owners(db, project_id)) <= 1:
        raise BadRequestError("Cannot remove the last owner of the project")

    db.delete(member)
    db.commit()
