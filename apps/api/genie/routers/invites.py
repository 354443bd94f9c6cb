"""Invitee-side invitation endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from genie.core.deps import get_current_user, get_db, require_csrf_header
from genie.schemas.auth import CurrentUser
from genie.schemas.common import Envelope, ok
from genie.schemas.invite import InviteAction, PendingInviteRead
from genie.schemas.org import OrgMemberRead
from genie.services import invite_service

router = APIRouter(prefix="/invites", tags=["invites"])


@router.get("", response_model=Envelope[list[PendingInviteRead]])
async def list_pending_invites(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Invitations addressed to the caller."""
    rows = invite_service.list_pending_for_user(db, user.user_id)
    return ok(
        "Invitations found",
        [
            PendingInviteRead(
                id=invite.id,
                organization_id=invite.organization_id,
                organization_name=org_name,
                secret=invite.secret,
                created_at=invite.created_at,
            )
            for invite, org_name in rows
        ],
    )


@router.post(
    "/accept",
    response_model=Envelope[OrgMemberRead],
    dependencies=[Depends(require_csrf_header)],
)
async def accept_invite(
    body: InviteAction,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    membership = invite_service.accept_invite(db, body.secret, user.user_id)
    return ok("Invitation accepted", OrgMemberRead.model_validate(membership))


@router.post(
    "/reject",
    response_model=Envelope[None],
    dependencies=[Depends(require_csrf_header)],
)
async def reject_invite(
    body: InviteAction,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    invite_service.reject_invite(db, body.secret, user.user_id)
    return ok("Invitation rejected")
