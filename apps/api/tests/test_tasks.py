"""Tests for the task lifecycle: CRUD, status transitions and completion."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from genie.core.exceptions import ForbiddenError
from genie.db.enums import Role, TaskStatus
from genie.db.models import CompletedTask, Task
from genie.schemas.task import TaskCreate, TaskUpdate
from genie.services import task_service


@pytest.fixture
def make_task(db, test_project, test_user):
    """Create a task through the service, assigned to test_user by default."""
    def _make(name: str = "Write docs", assignee=None, creator=None) -> Task:
        data = TaskCreate(
            project_id=test_project.id,
            assignee_id=(assignee or test_user).id,
            name=name,
        )
        return task_service.create_task(db, data, (creator or test_user).id)

    return _make


def _start_at(db, task: Task, started: datetime) -> None:
    """Put a task in progress as of a given instant."""
    db.query(Task).filter(Task.id == task.id).update(
        {"status": TaskStatus.IN_PROGRESS.value, "started_date": started}
    )
    db.commit()


# =============================================================================
# Create / read / delete
# =============================================================================

@pytest.mark.asyncio
async def test_create_task_starts_in_todo(authed_client, test_project, test_user):
    response = await authed_client.post(
        "/tasks",
        json={
            "project_id": str(test_project.id),
            "assignee_id": str(test_user.id),
            "name": "Design schema",
            "priority": "high",
            "difficulty": 3,
            "due_date": "2026-12-01",
        },
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "todo"
    assert data["started_date"] is None
    assert data["exception"] is False
    assert data["created_by"] == str(test_user.id)
    assert data["priority"] == "high"


@pytest.mark.asyncio
async def test_create_task_validates_difficulty_and_priority(authed_client, test_project, test_user):
    base = {"project_id": str(test_project.id), "assignee_id": str(test_user.id), "name": "X"}

    too_hard = await authed_client.post("/tasks", json={**base, "difficulty": 11})
    bad_priority = await authed_client.post("/tasks", json={**base, "priority": "urgent"})

    assert too_hard.status_code == 422
    assert bad_priority.status_code == 422


@pytest.mark.asyncio
async def test_create_task_assignee_must_be_project_member(authed_client, test_project, make_user):
    outsider = make_user(name="Outsider")

    response = await authed_client.post(
        "/tasks",
        json={"project_id": str(test_project.id), "assignee_id": str(outsider.id), "name": "X"},
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Assignee is not a member of this project"


@pytest.mark.asyncio
async def test_create_task_actor_must_be_project_member(client, test_project, test_user, make_user, login_as):
    outsider = make_user(name="Outsider")

    response = await client.post(
        "/tasks",
        json={"project_id": str(test_project.id), "assignee_id": str(test_user.id), "name": "X"},
        headers=login_as(outsider).headers,
    )

    assert response.status_code == 403
    assert response.json()["message"] == "You are not a member of this project"


@pytest.mark.asyncio
async def test_create_task_missing_project_or_assignee(authed_client, test_project, test_user):
    no_project = await authed_client.post(
        "/tasks",
        json={"project_id": str(uuid.uuid4()), "assignee_id": str(test_user.id), "name": "X"},
    )
    no_assignee = await authed_client.post(
        "/tasks",
        json={"project_id": str(test_project.id), "assignee_id": str(uuid.uuid4()), "name": "X"},
    )

    assert no_project.status_code == 404
    assert no_assignee.status_code == 404


@pytest.mark.asyncio
async def test_get_task_gate(client, authed_client, make_task, make_user, login_as):
    task = make_task()
    outsider = make_user(name="Outsider")

    ok = await authed_client.get(f"/tasks/{task.id}")
    denied = await client.get(f"/tasks/{task.id}", headers=login_as(outsider).headers)
    missing = await authed_client.get(f"/tasks/{uuid.uuid4()}")

    assert ok.status_code == 200
    assert denied.status_code == 403
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_task_three_way_rule(
    client, authed_client, db, test_project, make_task, make_user, add_project_member, login_as
):
    task = make_task()
    bystander = make_user(name="Bystander")
    add_project_member(test_project, bystander)

    denied = await client.delete(f"/tasks/{task.id}", headers=login_as(bystander).headers)
    assert denied.status_code == 403

    deleted = await authed_client.delete(f"/tasks/{task.id}")
    assert deleted.status_code == 200

    gone = await authed_client.get(f"/tasks/{task.id}")
    assert gone.status_code == 404


def test_project_owner_may_modify_others_tasks(db, test_project, test_user, make_user, add_project_member, make_task):
    worker = make_user(name="Worker")
    add_project_member(test_project, worker)
    task = make_task(assignee=worker, creator=worker)

    updated = task_service.update_task(db, task.id, TaskUpdate(name="Owner edit"), test_user.id)

    assert updated.name == "Owner edit"


# =============================================================================
# Status transitions
# =============================================================================

@pytest.mark.asyncio
async def test_start_task_sets_started_date_once(authed_client, make_task):
    task = make_task()

    started = await authed_client.patch(f"/tasks/{task.id}", json={"status": "in-progress"})
    assert started.status_code == 200
    assert started.json()["data"]["status"] == "in-progress"
    assert started.json()["data"]["started_date"] is not None

    repeated = await authed_client.patch(f"/tasks/{task.id}", json={"status": "in-progress"})
    assert repeated.status_code == 403
    assert repeated.json()["message"] == "Task is already in progress"


@pytest.mark.asyncio
async def test_update_cannot_complete_task(authed_client, make_task):
    task = make_task()

    response = await authed_client.patch(f"/tasks/{task.id}", json={"status": "completed"})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_status_never_moves_backwards(authed_client, db, make_task):
    task = make_task()
    _start_at(db, task, datetime.now(timezone.utc))

    response = await authed_client.patch(f"/tasks/{task.id}", json={"status": "todo"})

    assert response.status_code == 403
    db.expire_all()
    assert db.get(Task, task.id).status == "in-progress"


@pytest.mark.asyncio
async def test_reassign_resets_status_and_started_date(
    authed_client, db, test_project, make_task, make_user, add_project_member
):
    task = make_task()
    _start_at(db, task, datetime.now(timezone.utc) - timedelta(hours=2))
    other = make_user(name="Other")
    add_project_member(test_project, other)

    response = await authed_client.patch(
        f"/tasks/{task.id}",
        json={"assignee_id": str(other.id), "status": "in-progress", "name": "Handed over"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["assignee_id"] == str(other.id)
    assert data["status"] == "todo"
    assert data["started_date"] is None
    assert data["name"] == "Handed over"


@pytest.mark.asyncio
async def test_reassign_to_non_member_is_forbidden(authed_client, make_task, make_user):
    task = make_task()
    outsider = make_user(name="Outsider")

    response = await authed_client.patch(f"/tasks/{task.id}", json={"assignee_id": str(outsider.id)})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_plain_update_keeps_status(authed_client, make_task):
    task = make_task()

    response = await authed_client.patch(
        f"/tasks/{task.id}", json={"description": "More detail", "difficulty": None}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["description"] == "More detail"
    assert data["status"] == "todo"


# =============================================================================
# Completion
# =============================================================================

@pytest.mark.asyncio
async def test_complete_after_ninety_minutes(authed_client, db, make_task, test_user):
    task = make_task()
    _start_at(db, task, datetime.now(timezone.utc) - timedelta(minutes=90))

    response = await authed_client.post(f"/tasks/{task.id}/complete")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["task"]["status"] == "completed"
    assert data["task"]["exception"] is False
    assert data["completion"]["hours"] == 1
    assert data["completion"]["user_id"] == str(test_user.id)


@pytest.mark.asyncio
async def test_complete_after_ten_seconds_flags_exception(authed_client, db, make_task):
    task = make_task()
    _start_at(db, task, datetime.now(timezone.utc) - timedelta(seconds=10))

    response = await authed_client.post(f"/tasks/{task.id}/complete")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["task"]["status"] == "completed"
    assert data["task"]["exception"] is True
    assert data["completion"]["hours"] == 0


@pytest.mark.asyncio
async def test_complete_requires_in_progress(authed_client, make_task):
    task = make_task()

    response = await authed_client.post(f"/tasks/{task.id}/complete")

    assert response.status_code == 403
    assert response.json()["message"] == "Task is not in progress"


@pytest.mark.asyncio
async def test_second_completion_fails_and_records_once(authed_client, db, make_task):
    task = make_task()
    _start_at(db, task, datetime.now(timezone.utc) - timedelta(hours=3))

    first = await authed_client.post(f"/tasks/{task.id}/complete")
    second = await authed_client.post(f"/tasks/{task.id}/complete")

    assert first.status_code == 200
    assert second.status_code == 403
    assert db.query(CompletedTask).filter(CompletedTask.task_id == task.id).count() == 1


@pytest.mark.asyncio
async def test_completed_task_is_frozen(authed_client, db, make_task):
    task = make_task()
    _start_at(db, task, datetime.now(timezone.utc) - timedelta(hours=1))
    await authed_client.post(f"/tasks/{task.id}/complete")

    response = await authed_client.patch(f"/tasks/{task.id}", json={"name": "Too late"})

    assert response.status_code == 403
    assert response.json()["message"] == "Task is already completed"


def test_complete_by_bystander_is_forbidden(db, test_project, make_task, make_user, add_project_member):
    task = make_task()
    _start_at(db, task, datetime.now(timezone.utc) - timedelta(hours=1))
    bystander = make_user(name="Bystander")
    add_project_member(test_project, bystander)

    with pytest.raises(ForbiddenError):
        task_service.complete_task(db, task.id, bystander.id)

    db.expire_all()
    assert db.get(Task, task.id).status == TaskStatus.IN_PROGRESS.value
    assert db.query(CompletedTask).count() == 0


def test_completion_records_the_completing_user(db, test_user, test_project, make_task, make_user, add_project_member):
    worker = make_user(name="Worker")
    add_project_member(test_project, worker)
    task = make_task(assignee=worker)
    _start_at(db, task, datetime.now(timezone.utc) - timedelta(hours=2))

    _, record = task_service.complete_task(db, task.id, test_user.id)

    assert record.user_id == test_user.id
    assert record.hours == 2


def test_elapsed_hours_rounds_down_and_handles_naive_values():
    start = datetime(2026, 1, 1, 8, 0)
    end = datetime(2026, 1, 1, 10, 59, tzinfo=timezone.utc)

    assert task_service.elapsed_hours(start, end) == 2
    assert task_service.elapsed_hours(end, start) == 2


# =============================================================================
# Queries
# =============================================================================

@pytest.mark.asyncio
async def test_project_tasks_exclude_completed_and_order_todo_first(authed_client, db, test_project, make_task):
    started = make_task(name="Started")
    _start_at(db, started, datetime.now(timezone.utc))
    make_task(name="Todo")
    done = make_task(name="Done")
    _start_at(db, done, datetime.now(timezone.utc) - timedelta(hours=2))
    task_service.complete_task(db, done.id, done.assignee_id)

    response = await authed_client.get(f"/projects/{test_project.id}/tasks")

    assert response.status_code == 200
    assert [t["name"] for t in response.json()["data"]] == ["Todo", "Started"]

    completed = await authed_client.get(f"/projects/{test_project.id}/tasks/completed")
    assert [c["task_id"] for c in completed.json()["data"]] == [str(done.id)]


@pytest.mark.asyncio
async def test_my_tasks_lists_all_statuses(authed_client, db, make_task):
    task = make_task()
    _start_at(db, task, datetime.now(timezone.utc) - timedelta(hours=1))
    task_service.complete_task(db, task.id, task.assignee_id)
    make_task(name="Open")

    response = await authed_client.get("/tasks/me")

    assert response.status_code == 200
    assert {t["status"] for t in response.json()["data"]} == {"completed", "todo"}


@pytest.mark.asyncio
async def test_user_tasks_in_project(
    authed_client, db, test_org, test_project, make_task, make_user, add_project_member
):
    worker = make_user(name="Worker")
    add_project_member(test_project, worker)
    make_task(name="Mine")
    make_task(name="Theirs", assignee=worker)

    response = await authed_client.get(
        f"/organizations/{test_org.id}/projects/{test_project.id}/users/{worker.id}/tasks"
    )

    assert response.status_code == 200
    assert [t["name"] for t in response.json()["data"]] == ["Theirs"]


@pytest.mark.asyncio
async def test_user_tasks_project_must_belong_to_org(authed_client, db, test_project, test_user):
    from genie.services import org_service

    other_org = org_service.create_org(db, "Other", None, test_user.id)

    response = await authed_client.get(
        f"/organizations/{other_org.id}/projects/{test_project.id}/users/{test_user.id}/tasks"
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_project_tasks_visible_to_org_owner(client, db, test_org, make_user, add_org_member, login_as):
    from genie.services import project_service

    member = make_user(name="Member")
    add_org_member(test_org, member)
    project = project_service.create_project(db, test_org.id, "Members Only", None, member.id)
    co_owner = make_user(name="Co Owner")
    add_org_member(test_org, co_owner, Role.OWNER)

    response = await client.get(f"/projects/{project.id}/tasks", headers=login_as(co_owner).headers)

    assert response.status_code == 200
    assert response.json()["data"] == []
