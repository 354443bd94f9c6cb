"""Tests for organization CRUD and membership management."""

import uuid

import pytest

from genie.core.exceptions import BadRequestError, ForbiddenError
from genie.db.enums import Role
from genie.db.models import Organization, OrganizationMember, Project, ProjectMember


def _role_of(db, org_id, user_id):
    db.expire_all()
    membership = (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.user_id == user_id,
        )
        .first()
    )
    return membership.role if membership else None


# =============================================================================
# Organizations
# =============================================================================

@pytest.mark.asyncio
async def test_create_organization_makes_creator_sole_owner(authed_client, db, test_user):
    response = await authed_client.post(
        "/organizations", json={"name": "Acme", "description": "Anvils"}
    )

    assert response.status_code == 201
    org_id = uuid.UUID(response.json()["data"]["id"])

    members = db.query(OrganizationMember).filter(
        OrganizationMember.organization_id == org_id
    ).all()
    assert len(members) == 1
    assert members[0].user_id == test_user.id
    assert members[0].role == Role.OWNER.value


@pytest.mark.asyncio
async def test_list_organizations_includes_role(authed_client, test_org):
    response = await authed_client.get("/organizations")

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data) == 1
    assert data[0]["role"] == "owner"
    assert data[0]["organization"]["name"] == "Test Organization"


@pytest.mark.asyncio
async def test_update_organization_owner_only(
    client, authed_client, test_org, make_user, add_org_member, login_as
):
    member = make_user(name="Member")
    add_org_member(test_org, member)
    member_auth = login_as(member)

    denied = await client.patch(
        f"/organizations/{test_org.id}", json={"name": "Hijacked"}, headers=member_auth.headers
    )
    assert denied.status_code == 403

    response = await authed_client.patch(f"/organizations/{test_org.id}", json={"name": "Renamed"})
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Renamed"
    assert response.json()["data"]["description"] == "For tests"


@pytest.mark.asyncio
async def test_delete_organization_cascades(authed_client, db, test_org, test_project):
    org_id = test_org.id

    response = await authed_client.delete(f"/organizations/{org_id}")

    assert response.status_code == 200
    db.expire_all()
    assert db.get(Organization, org_id) is None
    assert db.query(OrganizationMember).filter(OrganizationMember.organization_id == org_id).count() == 0
    assert db.query(Project).filter(Project.organization_id == org_id).count() == 0
    assert db.query(ProjectMember).count() == 0


@pytest.mark.asyncio
async def test_delete_organization_by_member_is_forbidden(
    client, test_org, make_user, add_org_member, login_as
):
    member = make_user(name="Member")
    add_org_member(test_org, member)

    response = await client.delete(
        f"/organizations/{test_org.id}", headers=login_as(member).headers
    )

    assert response.status_code == 403


# =============================================================================
# Members
# =============================================================================

@pytest.mark.asyncio
async def test_list_members_requires_membership(client, authed_client, test_org, make_user, login_as):
    outsider = make_user(name="Outsider")

    ok = await authed_client.get(f"/organizations/{test_org.id}/members")
    assert ok.status_code == 200
    assert ok.json()["data"][0]["user"]["name"] == "Owner User"

    denied = await client.get(
        f"/organizations/{test_org.id}/members", headers=login_as(outsider).headers
    )
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_get_my_membership(client, authed_client, test_org, make_user, login_as):
    response = await authed_client.get(f"/organizations/{test_org.id}/members/me")
    assert response.status_code == 200
    assert response.json()["data"]["role"] == "owner"

    outsider = make_user(name="Outsider")
    missing = await client.get(
        f"/organizations/{test_org.id}/members/me", headers=login_as(outsider).headers
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_remove_last_owner_is_rejected(authed_client, db, test_org, test_user):
    response = await authed_client.request(
        "DELETE",
        f"/organizations/{test_org.id}/members",
        json={"user_id": str(test_user.id)},
    )

    assert response.status_code == 400
    assert _role_of(db, test_org.id, test_user.id) == "owner"


@pytest.mark.asyncio
async def test_remove_non_member_is_bad_request(authed_client, test_org, make_user):
    stranger = make_user(name="Stranger")

    response = await authed_client.request(
        "DELETE",
        f"/organizations/{test_org.id}/members",
        json={"user_id": str(stranger.id)},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_owner_can_remove_another_owner(authed_client, db, test_org, make_user, add_org_member):
    co_owner = make_user(name="Co Owner")
    add_org_member(test_org, co_owner, Role.OWNER)

    response = await authed_client.request(
        "DELETE",
        f"/organizations/{test_org.id}/members",
        json={"user_id": str(co_owner.id)},
    )

    assert response.status_code == 200
    assert _role_of(db, test_org.id, co_owner.id) is None


@pytest.mark.asyncio
async def test_remove_member_drops_project_memberships(
    authed_client, db, test_org, test_project, make_user, add_project_member
):
    member = make_user(name="Member")
    add_project_member(test_project, member)

    response = await authed_client.request(
        "DELETE",
        f"/organizations/{test_org.id}/members",
        json={"user_id": str(member.id)},
    )

    assert response.status_code == 200
    db.expire_all()
    assert (
        db.query(ProjectMember)
        .filter(ProjectMember.project_id == test_project.id, ProjectMember.user_id == member.id)
        .count()
        == 0
    )


def _project_owners(db, project_id):
    db.expire_all()
    return {
        m.user_id
        for m in db.query(ProjectMember).filter(
            ProjectMember.project_id == project_id,
            ProjectMember.role == Role.OWNER.value,
        )
    }


def test_removed_sole_project_owner_hands_project_to_acting_owner(
    db, test_org, test_user, make_user, add_org_member
):
    from genie.services import membership_service, project_service

    member = make_user(name="Member")
    add_org_member(test_org, member)
    project = project_service.create_project(db, test_org.id, "Side Project", None, member.id)

    membership_service.remove_member(db, test_org.id, member.id, test_user.id)

    assert _project_owners(db, project.id) == {test_user.id}


def test_owner_leaving_hands_sole_projects_to_remaining_owner(
    db, test_org, test_user, make_user, add_org_member
):
    from genie.services import membership_service, project_service

    co_owner = make_user(name="Co Owner")
    add_org_member(test_org, co_owner, Role.OWNER)
    project = project_service.create_project(db, test_org.id, "Their Project", None, co_owner.id)

    membership_service.remove_member(db, test_org.id, co_owner.id, co_owner.id)

    assert _project_owners(db, project.id) == {test_user.id}
    assert _role_of(db, test_org.id, co_owner.id) is None


def test_shared_project_ownership_is_not_duplicated(
    db, test_org, test_project, test_user, make_user, add_project_member
):
    from genie.services import membership_service

    co_owner = make_user(name="Co Owner")
    add_project_member(test_project, co_owner, Role.OWNER)
    other = make_user(name="Other")
    add_project_member(test_project, other)

    membership_service.remove_member(db, test_org.id, co_owner.id, test_user.id)

    assert _project_owners(db, test_project.id) == {test_user.id}


@pytest.mark.asyncio
async def test_update_member_role(authed_client, db, test_org, make_user, add_org_member):
    member = make_user(name="Member")
    add_org_member(test_org, member)

    response = await authed_client.patch(
        f"/organizations/{test_org.id}/members",
        json={"user_id": str(member.id), "role": "owner"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["role"] == "owner"
    assert _role_of(db, test_org.id, member.id) == "owner"


@pytest.mark.asyncio
async def test_update_member_rejects_unknown_role(authed_client, test_org, test_user):
    response = await authed_client.patch(
        f"/organizations/{test_org.id}/members",
        json={"user_id": str(test_user.id), "role": "admin"},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_demoting_last_owner_is_rejected(authed_client, db, test_org, test_user):
    response = await authed_client.patch(
        f"/organizations/{test_org.id}/members",
        json={"user_id": str(test_user.id), "role": "member"},
    )

    assert response.status_code == 400
    assert _role_of(db, test_org.id, test_user.id) == "owner"


def test_member_cannot_change_roles(db, test_org, make_user, add_org_member):
    from genie.services import membership_service

    member = make_user(name="Member")
    add_org_member(test_org, member)

    with pytest.raises(ForbiddenError):
        membership_service.update_member_role(db, test_org.id, member.id, Role.OWNER, member.id)


def test_organization_never_reaches_zero_owners(db, test_org, test_user, make_user, add_org_member):
    from genie.services import membership_service

    co_owner = make_user(name="Co Owner")
    add_org_member(test_org, co_owner, Role.OWNER)

    membership_service.update_member_role(db, test_org.id, co_owner.id, Role.MEMBER, test_user.id)

    with pytest.raises(BadRequestError):
        membership_service.update_member_role(db, test_org.id, test_user.id, Role.MEMBER, test_user.id)
    with pytest.raises(BadRequestError):
        membership_service.remove_member(db, test_org.id, test_user.id, test_user.id)

    owners = db.query(OrganizationMember).filter(
        OrganizationMember.organization_id == test_org.id,
        OrganizationMember.role == Role.OWNER.value,
    ).count()
    assert owners == 1


def test_owner_guard_locks_owner_rows(db, test_org, test_user, make_user, add_org_member):
    from sqlalchemy import event
    from sqlalchemy.dialects import postgresql

    from genie.services import membership_service

    co_owner = make_user(name="Co Owner")
    add_org_member(test_org, co_owner, Role.OWNER)
    statements = []

    def capture(state):
        if state.is_select:
            statements.append(str(state.statement.compile(dialect=postgresql.dialect())))

    event.listen(db, "do_orm_execute", capture)
    try:
        membership_service.update_member_role(db, test_org.id, co_owner.id, Role.MEMBER, test_user.id)
    finally:
        event.remove(db, "do_orm_execute", capture)

    assert any(
        "organization_members" in sql and sql.rstrip().endswith("FOR UPDATE") for sql in statements
    )
