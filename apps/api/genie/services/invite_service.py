"""Invitation service - invite existing users into an organization."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from genie.core.access import get_org_membership, require_org_owner
from genie.core.exceptions import ConflictError, NotFoundError
from genie.core.security import generate_secret
from genie.db.enums import Role
from genie.db.models import Invite, Organization, OrganizationMember, User

logger = logging.getLogger(__name__)


def get_pending_invite(db: Session, org_id: UUID, user_id: UUID) -> Invite | None:
    return (
        db.query(Invite)
        .filter(Invite.organization_id == org_id, Invite.user_id == user_id)
        .first()
    )


def create_invite(db: Session, org_id: UUID, email: str, actor_id: UUID) -> Invite:
    """
    Invite an existing user by email (owner only).

    Raises:
        ForbiddenError: Actor is not an owner
        NotFoundError: No user with that email
        ConflictError: Already a member, or an invite is already pending
    """
    require_org_owner(db, org_id, actor_id)
    email = email.lower().strip()

    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise NotFoundError("No user with this email")
    if get_org_membership(db, org_id, user.id):
        raise ConflictError("User is already a member of this organization")
    if get_pending_invite(db, org_id, user.id):
        raise ConflictError("A pending invite already exists for this user")

    invite = Invite(
        organization_id=org_id,
        email=email,
        user_id=user.id,
        secret=generate_secret(),
        invited_by_user_id=actor_id,
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)
    logger.info(
        "Invite created",
        extra={"org_id": str(org_id), "user_id": str(actor_id)},
    )
    return invite


def list_pending_for_user(db: Session, user_id: UUID) -> list[tuple[Invite, str]]:
    """Invites addressed to the user, with the organization name."""
    return (
        db.query(Invite, Organization.name)
        .join(Organization, Organization.id == Invite.organization_id)
        .filter(Invite.user_id == user_id)
        .order_by(Invite.created_at.desc())
        .all()
    )


def _get_invite_for_actor(db: Session, secret: str, actor_id: UUID) -> Invite:
    invite = (
        db.query(Invite)
        .filter(Invite.secret == secret, Invite.user_id == actor_id)
        .with_for_update()
        .first()
    )
    if not invite:
        raise NotFoundError("Invitation not found")
    return invite


def accept_invite(db: Session, secret: str, actor_id: UUID) -> OrganizationMember:
    """
    Accept an invitation: join as member and consume the invite.

    If the actor became a member some other way, the invite is just
    consumed and the existing membership returned.
    """
    invite = _get_invite_for_actor(db, secret, actor_id)
    org_id = invite.organization_id

    membership = get_org_membership(db, org_id, actor_id)
    if not membership:
        membership = OrganizationMember(
            organization_id=org_id,
            user_id=actor_id,
            role=Role.MEMBER.value,
        )
        db.add(membership)
    db.delete(invite)
    db.commit()
    db.refresh(membership)
    logger.info(
        "Invite accepted",
        extra={"org_id": str(org_id), "user_id": str(actor_id)},
    )
    return membership


def reject_invite(db: Session, secret: str, actor_id: UUID) -> None:
    """Decline an invitation; the invite is deleted."""
    invite = _get_invite_for_actor(db, secret, actor_id)
    db.delete(invite)
    db.commit()
