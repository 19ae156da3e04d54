"""Tests for the checkout / check-in lock"""
import pytest
from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from termhub.models.project import Project
from termhub.services.project_service import ProjectService
from termhub.services.user_service import UserService
from conftest import befriend, create_project


async def _add_member(client, project, owner_headers, member):
    response = await client.post(
        f"/api/projects/{project['id']}/members",
        json={"friendId": member["id"]},
        headers=owner_headers,
    )
    assert response.status_code == 200, response.text


@pytest.mark.asyncio
async def test_checkout_by_owner(client, alice):
    """Test a member can take the lock on a checked-in project"""
    user, headers = alice
    project = await create_project(client, headers)

    response = await client.post(f"/api/projects/{project['id']}/checkout", headers=headers)

    assert response.status_code == 200
    data = response.json()["project"]
    assert data["checkoutStatus"] == "checked-out"
    assert data["checkedOutBy"]["id"] == user["id"]


@pytest.mark.asyncio
async def test_checkout_by_non_member_leaves_state_unchanged(client, alice, bob):
    """Test non-members are rejected and the project stays as it was"""
    user_a, headers_a = alice
    _, headers_b = bob
    project = await create_project(client, headers_a)
    await client.post(f"/api/projects/{project['id']}/checkout", headers=headers_a)

    response = await client.post(f"/api/projects/{project['id']}/checkout", headers=headers_b)

    assert response.status_code == 403
    detail = (await client.get(f"/api/projects/{project['id']}", headers=headers_a)).json()
    assert detail["project"]["checkoutStatus"] == "checked-out"
    assert detail["project"]["checkedOutBy"]["id"] == user_a["id"]
    assert [a["action"] for a in detail["activity"]] == ["checked-out", "created"]


@pytest.mark.asyncio
async def test_checkout_when_already_checked_out(client, alice, bob):
    """Test a second member cannot take a held lock"""
    await befriend(client, alice, bob)
    user_a, headers_a = alice
    user_b, headers_b = bob
    project = await create_project(client, headers_a)
    await _add_member(client, project, headers_a, user_b)
    await client.post(f"/api/projects/{project['id']}/checkout", headers=headers_a)

    response = await client.post(f"/api/projects/{project['id']}/checkout", headers=headers_b)

    assert response.status_code == 409
    assert response.json()["message"] == "Project is already checked out"
    detail = (await client.get(f"/api/projects/{project['id']}", headers=headers_b)).json()
    assert detail["project"]["checkedOutBy"]["id"] == user_a["id"]


@pytest.mark.asyncio
async def test_checkout_twice_by_holder(client, alice):
    _, headers = alice
    project = await create_project(client, headers)
    await client.post(f"/api/projects/{project['id']}/checkout", headers=headers)

    response = await client.post(f"/api/projects/{project['id']}/checkout", headers=headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_checkout_unknown_project(client, alice):
    _, headers = alice

    response = await client.post("/api/projects/missing/checkout", headers=headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_checkout_user_id_must_match_token(client, alice, bob):
    """Test a client-supplied userId cannot impersonate another user"""
    _, headers_a = alice
    user_b, _ = bob
    project = await create_project(client, headers_a)

    response = await client.post(
        f"/api/projects/{project['id']}/checkout",
        json={"userId": user_b["id"]},
        headers=headers_a,
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_checkin_updates_version_and_logs_message(client, alice):
    """Test check-in releases the lock, bumps the version and records the message"""
    user, headers = alice
    project = await create_project(client, headers)
    await client.post(f"/api/projects/{project['id']}/checkout", headers=headers)

    response = await client.post(
        f"/api/projects/{project['id']}/checkin",
        data={"message": "added feature", "version": "v1.1.0"},
        headers=headers,
    )

    assert response.status_code == 200
    data = response.json()["project"]
    assert data["version"] == "v1.1.0"
    assert data["checkoutStatus"] == "checked-in"
    assert data["checkedOutBy"] is None

    activity = (await client.get(f"/api/projects/{project['id']}/activity", headers=headers)).json()["activity"]
    assert activity[0]["action"] == "checked-in"
    assert activity[0]["message"] == "added feature"
    assert activity[0]["user"]["id"] == user["id"]
    assert len(activity) == 3


@pytest.mark.asyncio
async def test_checkin_with_files(client, alice):
    _, headers = alice
    project = await create_project(client, headers)
    await client.post(f"/api/projects/{project['id']}/checkout", headers=headers)

    response = await client.post(
        f"/api/projects/{project['id']}/checkin",
        data={"message": "new module", "version": "v1.2.0"},
        files=[("projectFiles", ("feature.py", b"def feature():\n    pass\n", "text/x-python"))],
        headers=headers,
    )

    assert response.status_code == 200
    files = response.json()["project"]["files"]
    assert [f["originalName"] for f in files] == ["feature.py"]
    assert files[0]["size"] == len(b"def feature():\n    pass\n")


@pytest.mark.asyncio
async def test_checkin_when_not_checked_out(client, alice):
    _, headers = alice
    project = await create_project(client, headers)

    response = await client.post(
        f"/api/projects/{project['id']}/checkin",
        data={"message": "nothing to see", "version": "v2.0.0"},
        headers=headers,
    )

    assert response.status_code == 409
    detail = (await client.get(f"/api/projects/{project['id']}", headers=headers)).json()
    assert detail["project"]["version"] == "v1.0.0"


@pytest.mark.asyncio
async def test_checkin_by_non_holder(client, alice, bob):
    """Test only the lock holder can check the project back in"""
    await befriend(client, alice, bob)
    user_a, headers_a = alice
    user_b, headers_b = bob
    project = await create_project(client, headers_a)
    await _add_member(client, project, headers_a, user_b)
    await client.post(f"/api/projects/{project['id']}/checkout", headers=headers_a)

    response = await client.post(
        f"/api/projects/{project['id']}/checkin",
        data={"message": "sneaky", "version": "v9.9.9"},
        headers=headers_b,
    )

    assert response.status_code == 403
    detail = (await client.get(f"/api/projects/{project['id']}", headers=headers_a)).json()
    assert detail["project"]["checkedOutBy"]["id"] == user_a["id"]
    assert detail["project"]["version"] == "v1.0.0"


@pytest.mark.asyncio
@pytest.mark.parametrize("form", [{"message": "", "version": "v1.1.0"}, {"message": "ok", "version": "  "}])
async def test_checkin_validation(client, alice, form):
    _, headers = alice
    project = await create_project(client, headers)
    await client.post(f"/api/projects/{project['id']}/checkout", headers=headers)

    response = await client.post(f"/api/projects/{project['id']}/checkin", data=form, headers=headers)

    assert response.status_code == 400
    detail = (await client.get(f"/api/projects/{project['id']}", headers=headers)).json()
    assert detail["project"]["checkoutStatus"] == "checked-out"


@pytest.mark.asyncio
async def test_lock_can_be_taken_again_after_checkin(client, alice, bob):
    """Test the lock cycles between members"""
    await befriend(client, alice, bob)
    _, headers_a = alice
    user_b, headers_b = bob
    project = await create_project(client, headers_a)
    await _add_member(client, project, headers_a, user_b)

    await client.post(f"/api/projects/{project['id']}/checkout", headers=headers_a)
    await client.post(
        f"/api/projects/{project['id']}/checkin",
        data={"message": "done", "version": "v1.1.0"},
        headers=headers_a,
    )
    response = await client.post(f"/api/projects/{project['id']}/checkout", headers=headers_b)

    assert response.status_code == 200
    assert response.json()["project"]["checkedOutBy"]["id"] == user_b["id"]


@pytest.mark.asyncio
async def test_checkout_from_stale_read_is_rejected(client, test_db, alice, monkeypatch):
    """Test the conditional update refuses a lock taken after the project was read"""
    user, headers = alice
    project = await create_project(client, headers)

    async with test_db() as session:
        stale = await ProjectService.require_project(session, project["id"])
        actor = await UserService.get_user(session, user["id"])
    assert stale.checkout_status == "checked-in"

    response = await client.post(f"/api/projects/{project['id']}/checkout", headers=headers)
    assert response.status_code == 200

    async def stale_read(session, project_id):
        return stale

    with monkeypatch.context() as patch:
        patch.setattr(ProjectService, "require_project", staticmethod(stale_read))
        async with test_db() as session:
            with pytest.raises(HTTPException) as exc_info:
                await ProjectService.checkout(session, actor, project["id"])

    assert exc_info.value.status_code == 409
    activity = (await client.get(f"/api/projects/{project['id']}/activity", headers=headers)).json()["activity"]
    assert [a["action"] for a in activity].count("checked-out") == 1


@pytest.mark.asyncio
async def test_database_rejects_lock_without_holder(client, test_db, alice):
    """Test a checked-out project must always name its holder"""
    _, headers = alice
    project = await create_project(client, headers)

    async with test_db() as session:
        with pytest.raises(IntegrityError):
            await session.execute(
                update(Project).where(Project.id == project["id"]).values(checkout_status="checked-out")
            )
        await session.rollback()
