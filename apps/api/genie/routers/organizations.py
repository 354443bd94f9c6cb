"""Organization endpoints - CRUD, membership and invitations."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from genie.core.deps import get_current_user, get_db, require_csrf_header
from genie.schemas.auth import CurrentUser
from genie.schemas.common import Envelope, ok
from genie.schemas.invite import InviteRead
from genie.schemas.org import (
    InviteCreate,
    OrgCreate,
    OrgMemberRead,
    OrgMemberRemove,
    OrgMemberUpdate,
    OrgMembershipRead,
    OrgRead,
    OrgUpdate,
)
from genie.schemas.project import ProjectCreate, ProjectRead
from genie.services import (
    email_service,
    invite_service,
    membership_service,
    org_service,
    project_service,
)

router = APIRouter(prefix="/organizations", tags=["organizations"])


# =============================================================================
# Organizations
# =============================================================================

@router.post(
    "",
    status_code=201,
    response_model=Envelope[OrgRead],
    dependencies=[Depends(require_csrf_header)],
)
async def create_organization(
    body: OrgCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Create an organization; the caller becomes its owner."""
    org = org_service.create_org(db, body.name, body.description, user.user_id)
    return ok("Organization created", OrgRead.model_validate(org))


@router.get("", response_model=Envelope[list[OrgMembershipRead]])
async def list_organizations(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Organizations the caller belongs to, with the caller's role."""
    memberships = org_service.list_user_memberships(db, user.user_id)
    return ok(
        "Organizations found",
        [OrgMembershipRead.model_validate(m) for m in memberships],
    )


@router.patch(
    "/{org_id}",
    response_model=Envelope[OrgRead],
    dependencies=[Depends(require_csrf_header)],
)
async def update_organization(
    org_id: UUID,
    body: OrgUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    org = org_service.update_org(
        db, org_id, user.user_id, name=body.name, description=body.description
    )
    return ok("Organization updated", OrgRead.model_validate(org))


@router.delete(
    "/{org_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_csrf_header)],
)
async def delete_organization(
    org_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    org_service.delete_org(db, org_id, user.user_id)
    return ok("Organization deleted")


# =============================================================================
# Members
# =============================================================================

@router.get("/{org_id}/members", response_model=Envelope[list[OrgMemberRead]])
async def list_members(
    org_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    members = membership_service.list_members(db, org_id, user.user_id)
    return ok("Members found", [OrgMemberRead.model_validate(m) for m in members])


@router.get("/{org_id}/members/me", response_model=Envelope[OrgMemberRead])
async def get_my_membership(
    org_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    membership = membership_service.get_own_membership(db, org_id, user.user_id)
    return ok("Membership found", OrgMemberRead.model_validate(membership))


@router.patch(
    "/{org_id}/members",
    response_model=Envelope[OrgMemberRead],
    dependencies=[Depends(require_csrf_header)],
)
async def update_member(
    org_id: UUID,
    body: OrgMemberUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Change a member's role (owners only)."""
    membership = membership_service.update_member_role(
        db, org_id, body.user_id, body.role, user.user_id
    )
    return ok("Member updated", OrgMemberRead.model_validate(membership))


@router.delete(
    "/{org_id}/members",
    response_model=Envelope[None],
    dependencies=[Depends(require_csrf_header)],
)
async def remove_member(
    org_id: UUID,
    body: OrgMemberRemove,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Remove a member (owners only); the last owner cannot be removed."""
    membership_service.remove_member(db, org_id, body.user_id, user.user_id)
    return ok("Member removed")


# =============================================================================
# Invites
# =============================================================================

@router.post(
    "/{org_id}/invites",
    status_code=201,
    response_model=Envelope[InviteRead],
    dependencies=[Depends(require_csrf_header)],
)
async def invite_user(
    org_id: UUID,
    body: InviteCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Invite an existing user by email; the activation link is emailed after commit."""
    invite = invite_service.create_invite(db, org_id, body.email, user.user_id)
    org = org_service.get_org_by_id(db, org_id)
    background_tasks.add_task(
        email_service.dispatch_invite_email,
        invite.email,
        org.name,
        user.name,
        invite.secret,
    )
    return ok("Invitation sent", InviteRead.model_validate(invite))


# =============================================================================
# Projects
# =============================================================================

@router.post(
    "/{org_id}/projects",
    status_code=201,
    response_model=Envelope[ProjectRead],
    dependencies=[Depends(require_csrf_header)],
)
async def create_project(
    org_id: UUID,
    body: ProjectCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    project = project_service.create_project(
        db, org_id, body.name, body.description, user.user_id
    )
    return ok("Project created", ProjectRead.model_validate(project))


@router.get("/{org_id}/projects", response_model=Envelope[list[ProjectRead]])
async def list_projects(
    org_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    projects = project_service.list_projects(db, org_id, user.user_id)
    return ok("Projects found", [ProjectRead.model_validate(p) for p in projects])
