"""Organization service - create, update, delete and list organizations."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from genie.core.access import require_org_owner
from genie.core.exceptions import NotFoundError
from genie.db.enums import Role
from genie.db.models import Organization, OrganizationMember

logger = logging.getLogger(__name__)


def get_org_by_id(db: Session, org_id: UUID) -> Organization | None:
    return db.query(Organization).filter(Organization.id == org_id).first()


def create_org(
    db: Session,
    name: str,
    description: str | None,
    creator_id: UUID,
) -> Organization:
    """Create an organization with the creator as its first owner."""
    org = Organization(name=name.strip(), description=description)
    db.add(org)
    db.flush()

    db.add(
        OrganizationMember(
            organization_id=org.id,
            user_id=creator_id,
            role=Role.OWNER.value,
        )
    )
    db.commit()
    db.refresh(org)
    logger.info(
        "Organization created",
        extra={"org_id": str(org.id), "user_id": str(creator_id)},
    )
    return org


def update_org(
    db: Session,
    org_id: UUID,
    actor_id: UUID,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Organization:
    """Owner-only partial update."""
    require_org_owner(db, org_id, actor_id)
    org = get_org_by_id(db, org_id)
    if not org:
        raise NotFoundError("Organization not found")

    if name is not None:
        org.name = name.strip()
    if description is not None:
        org.description = description
    db.commit()
    db.refresh(org)
    return org


def delete_org(db: Session, org_id: UUID, actor_id: UUID) -> None:
    """
    Owner-only delete.

    Memberships, invites, projects and their tasks go with it
    (ON DELETE CASCADE).
    """
    require_org_owner(db, org_id, actor_id)
    org = get_org_by_id(db, org_id)
    if not org:
        raise NotFoundError("Organization not found")

    db.delete(org)
    db.commit()
    logger.info(
        "Organization deleted",
        extra={"org_id": str(org_id), "user_id": str(actor_id)},
    )


def list_user_memberships(db: Session, user_id: UUID) -> list[OrganizationMember]:
    """The user's memberships, each with its organization loaded."""
    return (
        db.query(OrganizationMember)
        .options(joinedload(OrganizationMember.organization))
        .filter(OrganizationMember.user_id == user_id)
        .order_by(OrganizationMember.created_at)
        .all()
    )
