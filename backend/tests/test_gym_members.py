from __future__ import annotations

import pytest
from sqlalchemy import select

from gymhub.models.invitation import Invitation
from gymhub.models.workout import Workout


# ---------------------------------------------------------
# Invitations
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_owner_invites_trainer(client, gym, sessionmaker):
    r = await client.post(
        "/api/v1/gym/members/invite",
        json={"email": "New.Trainer@Example.com", "role": "TRAINER"},
        headers=gym.headers(gym.owner, gym.org),
    )
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Invitation sent"
    inv = body["invitation"]
    assert inv["email"] == "new.trainer@example.com"
    assert inv["role"] == "TRAINER"
    assert inv["status"] == "PENDING"
    assert inv["organizationId"] == gym.org.id
    assert inv["inviterId"] == gym.owner.id

    async with sessionmaker() as s:
        rows = (await s.execute(select(Invitation))).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_trainer_cannot_invite(client, gym):
    r = await client.post(
        "/api/v1/gym/members/invite",
        json={"email": "friend@example.com", "role": "USER"},
        headers=gym.headers(gym.trainer, gym.org),
    )
    assert r.status_code == 403
    assert r.json() == {"message": "Access denied. Required permission: INVITE_MEMBERS"}


@pytest.mark.asyncio
async def test_duplicate_pending_invite_conflicts(client, gym):
    headers = gym.headers(gym.owner, gym.org)
    payload = {"email": "twice@example.com", "role": "USER"}
    assert (await client.post("/api/v1/gym/members/invite", json=payload, headers=headers)).status_code == 201

    r = await client.post("/api/v1/gym/members/invite", json=payload, headers=headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_inviting_existing_member_conflicts(client, gym):
    r = await client.post(
        "/api/v1/gym/members/invite",
        json={"email": "user@example.com", "role": "USER"},
        headers=gym.headers(gym.owner, gym.org),
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "User is already a member of this organization"


@pytest.mark.asyncio
async def test_invite_rejects_unknown_role(client, gym):
    r = await client.post(
        "/api/v1/gym/members/invite",
        json={"email": "x@example.com", "role": "JANITOR"},
        headers=gym.headers(gym.owner, gym.org),
    )
    assert r.status_code == 422


# ---------------------------------------------------------
# Removal
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_owner_removes_user(client, gym):
    headers = gym.headers(gym.owner, gym.org)
    r = await client.delete(f"/api/v1/gym/members/{gym.user.id}", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Member removed successfully"}

    # the removed subject loses access on the next request
    r = await client.get("/api/v1/me/membership", headers=gym.headers(gym.user, gym.org))
    assert r.status_code == 403
    assert r.json()["message"] == "User is not a member of this organization"


@pytest.mark.asyncio
async def test_owner_can_remove_another_owner(client, factory, gym):
    co_owner = await factory.user("co-owner@example.com")
    await factory.member(gym.org, co_owner, "OWNER")
    await factory.commit()

    r = await client.delete(f"/api/v1/gym/members/{co_owner.id}", headers=gym.headers(gym.owner, gym.org))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_cannot_remove_yourself(client, gym):
    r = await client.delete(f"/api/v1/gym/members/{gym.owner.id}", headers=gym.headers(gym.owner, gym.org))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_remove_missing_member(client, gym):
    r = await client.delete(f"/api/v1/gym/members/{gym.outsider.id}", headers=gym.headers(gym.owner, gym.org))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_user_cannot_remove_members(client, gym):
    r = await client.delete(f"/api/v1/gym/members/{gym.trainer.id}", headers=gym.headers(gym.user, gym.org))
    assert r.status_code == 403
    assert r.json()["message"] == "Access denied. Required permission: REMOVE_MEMBERS"


# ---------------------------------------------------------
# Role changes
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_owner_promotes_user_to_trainer(client, gym):
    r = await client.patch(
        f"/api/v1/gym/members/{gym.user.id}/role",
        json={"role": "TRAINER"},
        headers=gym.headers(gym.owner, gym.org),
    )
    assert r.status_code == 200
    assert r.json()["member"] == {
        "subjectId": gym.user.id,
        "organizationId": gym.org.id,
        "role": "TRAINER",
    }

    # the promoted member now holds VIEW_MEMBERS
    r = await client.get("/api/v1/gym/members", headers=gym.headers(gym.user, gym.org))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_trainer_cannot_change_roles(client, gym):
    r = await client.patch(
        f"/api/v1/gym/members/{gym.user.id}/role",
        json={"role": "TRAINER"},
        headers=gym.headers(gym.trainer, gym.org),
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Access denied. Required permission: MANAGE_MEMBERS"


@pytest.mark.asyncio
async def test_cannot_change_own_role(client, gym):
    r = await client.patch(
        f"/api/v1/gym/members/{gym.owner.id}/role",
        json={"role": "USER"},
        headers=gym.headers(gym.owner, gym.org),
    )
    assert r.status_code == 400


# ---------------------------------------------------------
# Workouts
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_trainer_creates_workout_and_user_cannot(client, gym):
    r = await client.post(
        "/api/v1/gym/workouts",
        json={"title": "Leg day", "content": "5x5 squats"},
        headers=gym.headers(gym.trainer, gym.org),
    )
    assert r.status_code == 201
    body = r.json()
    assert body["title"] == "Leg day"
    assert body["user"]["id"] == gym.trainer.id
    assert body["organizationId"] == gym.org.id

    r = await client.post(
        "/api/v1/gym/workouts",
        json={"title": "Nap", "content": "zzz"},
        headers=gym.headers(gym.user, gym.org),
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Access denied. Required permission: CREATE_WORKOUTS"


@pytest.mark.asyncio
async def test_users_only_see_their_own_workouts(client, gym, db):
    db.add_all(
        [
            Workout(organization_id=gym.org.id, user_id=gym.trainer.id, title="Trainer plan", content="..."),
            Workout(organization_id=gym.org.id, user_id=gym.user.id, title="My plan", content="..."),
            Workout(organization_id=gym.other_org.id, user_id=gym.outsider.id, title="Rival plan", content="..."),
        ]
    )
    await db.commit()

    r = await client.get("/api/v1/gym/workouts", headers=gym.headers(gym.user, gym.org))
    assert r.status_code == 200
    assert [w["title"] for w in r.json()["workouts"]] == ["My plan"]

    r = await client.get("/api/v1/gym/workouts", headers=gym.headers(gym.trainer, gym.org))
    assert sorted(w["title"] for w in r.json()["workouts"]) == ["My plan", "Trainer plan"]


# ---------------------------------------------------------
# Analytics, settings, owner stats
# ---------------------------------------------------------
@pytest.mark.asyncio
async def test_analytics(client, gym):
    r = await client.get("/api/v1/gym/analytics", headers=gym.headers(gym.trainer, gym.org))
    assert r.status_code == 200
    analytics = r.json()["analytics"]
    assert analytics["memberCount"] == 3
    assert analytics["roleDistribution"] == [
        {"role": "OWNER", "count": 1},
        {"role": "TRAINER", "count": 1},
        {"role": "USER", "count": 1},
    ]

    r = await client.get("/api/v1/gym/analytics", headers=gym.headers(gym.user, gym.org))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_settings_read_and_update(client, gym):
    r = await client.get("/api/v1/gym/settings", headers=gym.headers(gym.user, gym.org))
    assert r.status_code == 200
    assert r.json()["organization"]["name"] == "Iron Temple"

    r = await client.put(
        "/api/v1/gym/settings",
        json={"name": "Hacked"},
        headers=gym.headers(gym.user, gym.org),
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Access denied. Required permission: MANAGE_SETTINGS"

    r = await client.put(
        "/api/v1/gym/settings",
        json={"name": "Iron Temple Downtown", "logo": "https://cdn.example.com/logo.png"},
        headers=gym.headers(gym.owner, gym.org),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Settings updated successfully"
    assert body["organization"]["name"] == "Iron Temple Downtown"
    assert body["organization"]["logo"] == "https://cdn.example.com/logo.png"


@pytest.mark.asyncio
async def test_settings_update_validates_logo_url(client, gym):
    r = await client.put(
        "/api/v1/gym/settings",
        json={"logo": "not a url"},
        headers=gym.headers(gym.owner, gym.org),
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_owner_stats(client, gym, db):
    db.add(Workout(organization_id=gym.org.id, user_id=gym.trainer.id, title="Plan", content="..."))
    await db.commit()

    r = await client.get("/api/v1/gym/admin/stats", headers=gym.headers(gym.owner, gym.org))
    assert r.status_code == 200
    assert r.json() == {"stats": {"totalMembers": 3, "totalWorkouts": 1}}
