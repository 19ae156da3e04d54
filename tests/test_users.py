"""Tests for profile and friendship endpoints"""
import pytest

from conftest import befriend, create_project, signup


@pytest.mark.asyncio
async def test_get_profile_includes_projects(client, alice):
    """Test the profile page lists the user's projects"""
    user, headers = alice
    project = await create_project(client, headers)

    response = await client.get(f"/api/users/{user['id']}", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["username"] == "alice"
    assert [p["id"] for p in data["projects"]] == [project["id"]]


@pytest.mark.asyncio
async def test_get_profile_not_found(client, alice):
    _, headers = alice

    response = await client.get("/api/users/does-not-exist", headers=headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "User not found"}


@pytest.mark.asyncio
async def test_update_own_profile(client, alice):
    """Test profile fields are updated and languages accept a comma separated string"""
    user, headers = alice

    response = await client.put(
        f"/api/users/{user['id']}",
        json={
            "fullName": "Alice Terminal",
            "bio": "Green text on black",
            "location": "Cape Town",
            "company": "Retro Inc",
            "website": "https://alice.dev",
            "languages": "Python, C, Python",
        },
        headers=headers,
    )

    assert response.status_code == 200
    updated = response.json()["user"]
    assert updated["fullName"] == "Alice Terminal"
    assert updated["bio"] == "Green text on black"
    assert updated["languages"] == ["Python", "C"]


@pytest.mark.asyncio
async def test_update_password_allows_new_signin(client, alice):
    user, headers = alice

    response = await client.put(f"/api/users/{user['id']}", json={"password": "brand-new-pass"}, headers=headers)
    assert response.status_code == 200

    response = await client.post(
        "/api/auth/signin", json={"email": "alice@terminal.dev", "password": "brand-new-pass"}
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_update_other_profile_forbidden(client, alice, bob):
    """Test users cannot edit someone else's profile"""
    _, headers = alice
    other, _ = bob

    response = await client.put(f"/api/users/{other['id']}", json={"bio": "hacked"}, headers=headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_profile_username_taken(client, alice, bob):
    user, headers = alice

    response = await client.put(f"/api/users/{user['id']}", json={"username": "bob"}, headers=headers)

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_friend_request_accept_is_symmetric(client, alice, bob):
    """Test an accepted request makes both users friends of each other"""
    user_a, headers_a = alice
    user_b, headers_b = bob

    response = await client.post(f"/api/users/{user_b['id']}/friend-requests", headers=headers_a)
    assert response.status_code == 201
    assert response.json()["message"] == "Friend request sent"

    # Pending requests are only shown to their recipient
    own = (await client.get(f"/api/users/{user_b['id']}", headers=headers_b)).json()
    assert [u["id"] for u in own["pendingFriendRequests"]] == [user_a["id"]]
    seen_by_other = (await client.get(f"/api/users/{user_b['id']}", headers=headers_a)).json()
    assert seen_by_other["pendingFriendRequests"] == []

    response = await client.post(
        f"/api/users/{user_b['id']}/friend-requests/{user_a['id']}/accept", headers=headers_b
    )
    assert response.status_code == 200
    assert [f["id"] for f in response.json()["friends"]] == [user_a["id"]]
    assert response.json()["pendingFriendRequests"] == []

    friends_of_a = (await client.get(f"/api/users/{user_a['id']}/friends", headers=headers_a)).json()
    assert [f["id"] for f in friends_of_a["friends"]] == [user_b["id"]]


@pytest.mark.asyncio
async def test_friend_request_decline(client, alice, bob):
    user_a, headers_a = alice
    user_b, headers_b = bob
    await client.post(f"/api/users/{user_b['id']}/friend-requests", headers=headers_a)

    response = await client.post(
        f"/api/users/{user_b['id']}/friend-requests/{user_a['id']}/decline", headers=headers_b
    )

    assert response.status_code == 200
    assert response.json()["friends"] == []
    assert response.json()["pendingFriendRequests"] == []


@pytest.mark.asyncio
async def test_friend_request_mutual_is_accepted(client, alice, bob):
    """Test a request to someone who already asked you accepts theirs"""
    user_a, headers_a = alice
    user_b, headers_b = bob
    await client.post(f"/api/users/{user_b['id']}/friend-requests", headers=headers_a)

    response = await client.post(f"/api/users/{user_a['id']}/friend-requests", headers=headers_b)

    assert response.status_code == 201
    assert response.json()["message"] == "Friend request accepted"
    friends = (await client.get(f"/api/users/{user_b['id']}/friends", headers=headers_b)).json()["friends"]
    assert [f["id"] for f in friends] == [user_a["id"]]


@pytest.mark.asyncio
async def test_friend_request_errors(client, alice, bob):
    user_a, headers_a = alice
    user_b, headers_b = bob

    response = await client.post(f"/api/users/{user_a['id']}/friend-requests", headers=headers_a)
    assert response.status_code == 400

    response = await client.post("/api/users/missing/friend-requests", headers=headers_a)
    assert response.status_code == 404

    await client.post(f"/api/users/{user_b['id']}/friend-requests", headers=headers_a)
    response = await client.post(f"/api/users/{user_b['id']}/friend-requests", headers=headers_a)
    assert response.status_code == 409

    # Only the recipient may answer
    response = await client.post(
        f"/api/users/{user_b['id']}/friend-requests/{user_a['id']}/accept", headers=headers_a
    )
    assert response.status_code == 403

    response = await client.post(
        f"/api/users/{user_a['id']}/friend-requests/{user_b['id']}/accept", headers=headers_a
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_already_friends_conflict(client, alice, bob):
    await befriend(client, alice, bob)
    _, headers_a = alice
    user_b, _ = bob

    response = await client.post(f"/api/users/{user_b['id']}/friend-requests", headers=headers_a)

    assert response.status_code == 409
    assert response.json()["message"] == "Already friends"


@pytest.mark.asyncio
async def test_remove_friend(client, alice, bob):
    await befriend(client, alice, bob)
    user_a, headers_a = alice
    user_b, headers_b = bob

    response = await client.delete(f"/api/users/{user_a['id']}/friends/{user_b['id']}", headers=headers_a)

    assert response.status_code == 200
    assert response.json()["friends"] == []
    friends_of_b = (await client.get(f"/api/users/{user_b['id']}/friends", headers=headers_b)).json()
    assert friends_of_b["friends"] == []


@pytest.mark.asyncio
async def test_profile_lists_joined_projects(client, alice, bob):
    """Test projects a user was added to appear on their profile"""
    await befriend(client, alice, bob)
    _, headers_a = alice
    user_b, headers_b = bob
    project = await create_project(client, headers_a)
    await client.post(f"/api/projects/{project['id']}/members", json={"friendId": user_b["id"]}, headers=headers_a)

    response = await client.get(f"/api/users/{user_b['id']}", headers=headers_b)

    assert [p["id"] for p in response.json()["projects"]] == [project["id"]]


@pytest.mark.asyncio
async def test_signup_helper_users_are_distinct(client):
    first, _ = await signup(client, "first_user")
    second, _ = await signup(client, "second_user")

    assert first["id"] != second["id"]
