"""Tests for the activity log and discussion board"""
from datetime import datetime

import pytest

from termhub.services.activity_service import ActivityService
from conftest import create_project


@pytest.mark.asyncio
async def test_messages_listed_newest_first(client, alice):
    """Test every posted message is listed, newest first"""
    _, headers = alice
    project = await create_project(client, headers)

    for n in range(5):
        response = await client.post(
            f"/api/projects/{project['id']}/messages",
            json={"message": f"note {n}"},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["activity"]["action"] == "message"

    response = await client.get(f"/api/projects/{project['id']}/activity", headers=headers)

    activity = response.json()["activity"]
    assert len(activity) == 6
    assert [a["message"] for a in activity[:5]] == [f"note {n}" for n in range(4, -1, -1)]
    assert activity[-1]["action"] == "created"
    created = [datetime.fromisoformat(a["createdAt"]) for a in activity]
    assert created == sorted(created, reverse=True)
    ids = [a["id"] for a in activity]
    assert ids == sorted(ids, reverse=True)


@pytest.mark.asyncio
async def test_activity_limit(client, alice):
    _, headers = alice
    project = await create_project(client, headers)
    for n in range(3):
        await client.post(f"/api/projects/{project['id']}/messages", json={"message": f"m{n}"}, headers=headers)

    response = await client.get(f"/api/projects/{project['id']}/activity", params={"limit": 2}, headers=headers)

    assert [a["message"] for a in response.json()["activity"]] == ["m2", "m1"]


@pytest.mark.asyncio
async def test_non_member_cannot_post_message(client, alice, bob):
    _, headers_a = alice
    _, headers_b = bob
    project = await create_project(client, headers_a)

    response = await client.post(
        f"/api/projects/{project['id']}/messages",
        json={"message": "let me in"},
        headers=headers_b,
    )

    assert response.status_code == 403
    activity = (await client.get(f"/api/projects/{project['id']}/activity", headers=headers_a)).json()["activity"]
    assert len(activity) == 1


@pytest.mark.asyncio
async def test_empty_message_rejected(client, alice):
    _, headers = alice
    project = await create_project(client, headers)

    response = await client.post(f"/api/projects/{project['id']}/messages", json={"message": ""}, headers=headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_message_on_unknown_project(client, alice):
    _, headers = alice

    response = await client.post("/api/projects/missing/messages", json={"message": "hello"}, headers=headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_discussion_oldest_first(client, alice, bob):
    """Test any signed-in user can join the discussion, listed in conversation order"""
    user_a, headers_a = alice
    user_b, headers_b = bob
    project = await create_project(client, headers_a)

    first = await client.post(f"/api/projects/{project['id']}/discussion", json={"message": "Looks great"}, headers=headers_b)
    second = await client.post(f"/api/projects/{project['id']}/discussion", json={"message": "Thanks!"}, headers=headers_a)

    assert first.status_code == 201
    assert first.json()["entry"]["user"]["id"] == user_b["id"]
    assert second.status_code == 201

    response = await client.get(f"/api/projects/{project['id']}/discussion", headers=headers_a)
    entries = response.json()["discussion"]
    assert [e["message"] for e in entries] == ["Looks great", "Thanks!"]
    assert [e["user"]["id"] for e in entries] == [user_b["id"], user_a["id"]]

    # Discussion entries stay out of the activity log
    activity = (await client.get(f"/api/projects/{project['id']}/activity", headers=headers_a)).json()["activity"]
    assert [a["action"] for a in activity] == ["created"]


@pytest.mark.asyncio
async def test_append_is_committed_by_caller(client, test_db, alice):
    """Test an appended entry is only visible once its transaction commits"""
    user, headers = alice
    project = await create_project(client, headers)

    async with test_db() as session:
        ActivityService.append(session, project["id"], user["id"], "message", "staged")
        await session.rollback()

    async with test_db() as session:
        entries = await ActivityService.list_for_project(session, project["id"])
    assert [e.action for e in entries] == ["created"]
