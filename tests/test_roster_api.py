"""Roster tests — event catalogue, joining and leaving teams.

Learn: The seeded catalogue is the fixture. Event 2 ("Shuttlers") has
4 slots with 1 seeded member, min registration year 2021 and 1 year of
experience, which makes it the natural capacity test bed.
"""

import asyncio

import pytest

from conftest import bearer, register_and_login
from sportshub.auth.dependencies import CurrentIdentity
from sportshub.db.engine import async_session_factory
from sportshub.errors import JoinRejectedError, RejectionReason
from sportshub.services.locks import KeyedLock
from sportshub.services.roster_service import RosterService, parse_registration_year

JOIN_OK = {"userRegNumber": "2020CS123", "userExperience": 3}


async def _join(client, token, event_id=2, body=None):
    return await client.post(
        f"/api/events/{event_id}/join", json=body or JOIN_OK, headers=bearer(token)
    )


async def _roster(client, event_id):
    events = (await client.get("/api/events")).json()
    return next(e for e in events if e["id"] == event_id)["team"]["members"]


# ═══════════════════════════════════════════════════════════
# Catalogue
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_events_seeded_and_sorted(client):
    r = await client.get("/api/events")
    assert r.status_code == 200
    events = r.json()
    assert [e["id"] for e in events] == [1, 2, 3, 4]

    shuttlers = events[1]["team"]
    assert shuttlers["name"] == "Shuttlers"
    assert shuttlers["maxSlots"] == 4
    assert shuttlers["members"] == ["Rahul Patel"]
    assert shuttlers["requirements"] == {"minRegNumber": "2021", "minExperience": 1}


# ═══════════════════════════════════════════════════════════
# Join
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_join_adds_member_and_joined_team(client):
    s = await register_and_login(client, full_name="Kavya Iyer")
    r = await _join(client, s["accessToken"])
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Successfully joined Shuttlers!"
    assert body["memberCount"] == 2
    assert body["maxSlots"] == 4

    assert await _roster(client, 2) == ["Rahul Patel", "Kavya Iyer"]

    profile = (await client.get("/api/profile", headers=bearer(s["accessToken"]))).json()
    assert [t["teamName"] for t in profile["joinedTeams"]] == ["Shuttlers"]
    assert profile["joinedTeams"][0]["eventId"] == 2


@pytest.mark.asyncio
async def test_join_requires_auth(client):
    r = await client.post("/api/events/2/join", json=JOIN_OK)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_join_unknown_event_is_404(client, student):
    r = await _join(client, student["accessToken"], event_id=999)
    assert r.status_code == 404
    assert r.json()["detail"] == "Event not found."


@pytest.mark.asyncio
async def test_join_twice_is_rejected(client, student):
    assert (await _join(client, student["accessToken"])).status_code == 200
    r = await _join(client, student["accessToken"])
    assert r.status_code == 400
    assert r.json()["detail"] == "You are already a member of this team."
    assert r.json()["code"] == "already_member"


@pytest.mark.asyncio
async def test_seeded_name_counts_as_member(client):
    """Registering under a seeded roster name inherits the membership."""
    s = await register_and_login(client, full_name="Rahul Patel")
    r = await _join(client, s["accessToken"])
    assert r.status_code == 400
    assert r.json()["code"] == "already_member"

    profile = (await client.get("/api/profile", headers=bearer(s["accessToken"]))).json()
    assert [t["teamName"] for t in profile["joinedTeams"]] == ["Shuttlers"]


@pytest.mark.asyncio
async def test_join_malformed_registration_number(client, student):
    r = await _join(
        client, student["accessToken"], body={"userRegNumber": "CS2020", "userExperience": 5}
    )
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_registration_number"


@pytest.mark.asyncio
async def test_join_registration_year_too_recent(client, student):
    r = await _join(
        client, student["accessToken"], body={"userRegNumber": "2023CS001", "userExperience": 5}
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Application rejected. Minimum registration year is 2021."


@pytest.mark.asyncio
async def test_join_registration_year_boundary_is_accepted(client, student):
    r = await _join(
        client, student["accessToken"], body={"userRegNumber": "2021XY9", "userExperience": 1}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_join_insufficient_experience(client, student):
    r = await _join(
        client, student["accessToken"], body={"userRegNumber": "2020CS1", "userExperience": 0.5}
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Application rejected. Minimum 1 years of experience required."
    assert r.json()["code"] == "insufficient_experience"


@pytest.mark.asyncio
async def test_year_is_checked_before_experience(client, student):
    r = await _join(
        client, student["accessToken"], body={"userRegNumber": "2024CS1", "userExperience": 0}
    )
    assert r.status_code == 400
    assert r.json()["code"] == "registration_year"


@pytest.mark.asyncio
async def test_team_fills_then_rejects(client):
    for i in range(3):
        s = await register_and_login(client, full_name=f"Player {i}")
        r = await _join(client, s["accessToken"])
        assert r.status_code == 200, r.text
    assert r.json()["memberCount"] == 4

    late = await register_and_login(client, full_name="Late Comer")
    r = await _join(client, late["accessToken"])
    assert r.status_code == 400
    assert r.json()["detail"] == "Sorry, this team is full."
    assert r.json()["code"] == "team_full"

    roster = await _roster(client, 2)
    assert len(roster) == 4
    assert "Late Comer" not in roster


@pytest.mark.asyncio
async def test_rejected_join_leaves_roster_unchanged(client, student):
    before = await _roster(client, 2)
    await _join(
        client, student["accessToken"], body={"userRegNumber": "2030AB1", "userExperience": 9}
    )
    assert await _roster(client, 2) == before


@pytest.mark.asyncio
async def test_concurrent_joins_never_exceed_capacity(client):
    students = [
        await register_and_login(client, full_name=f"Racer {i}") for i in range(6)
    ]
    results = await asyncio.gather(
        *(_join(client, s["accessToken"]) for s in students)
    )
    codes = sorted(r.status_code for r in results)
    assert codes == [200, 200, 200, 400, 400, 400]
    assert all(
        r.json()["code"] == "team_full" for r in results if r.status_code == 400
    )
    assert len(await _roster(client, 2)) == 4


@pytest.mark.asyncio
async def test_conditional_update_caps_unserialised_writers(client):
    """Writers with private locks (separate processes) still stop at max_slots."""
    students = [
        await register_and_login(client, full_name=f"Loner {i}") for i in range(6)
    ]

    async def attempt(body):
        identity = CurrentIdentity(
            user_id=body["user"]["id"],
            email=body["user"]["email"],
            full_name=body["user"]["fullName"],
        )
        async with async_session_factory() as db:
            try:
                await RosterService(db, KeyedLock()).join(2, identity, "2020CS123", 3)
            except JoinRejectedError as e:
                return e.reason
            return "ok"

    outcomes = await asyncio.gather(*(attempt(s) for s in students))
    assert outcomes.count("ok") == 3
    assert outcomes.count(RejectionReason.TEAM_FULL) == 3
    assert len(await _roster(client, 2)) == 4


# ═══════════════════════════════════════════════════════════
# Leave
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_leave_team(client, student):
    await _join(client, student["accessToken"])
    r = await client.post(
        "/api/teams/leave",
        json={"teamName": "Shuttlers"},
        headers=bearer(student["accessToken"]),
    )
    assert r.status_code == 200
    assert r.json()["message"] == "You have left Shuttlers."
    assert await _roster(client, 2) == ["Rahul Patel"]

    # The freed slot is usable again
    again = await _join(client, student["accessToken"])
    assert again.json()["memberCount"] == 2


@pytest.mark.asyncio
async def test_leave_unknown_team_is_404(client, student):
    r = await client.post(
        "/api/teams/leave",
        json={"teamName": "Nobody FC"},
        headers=bearer(student["accessToken"]),
    )
    assert r.status_code == 404
    assert r.json()["detail"] == "Team not found."


@pytest.mark.asyncio
async def test_leave_team_not_joined(client, student):
    r = await client.post(
        "/api/teams/leave",
        json={"teamName": "Warriors"},
        headers=bearer(student["accessToken"]),
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "You were not a member of this team."


@pytest.mark.asyncio
async def test_profile_rename_carries_roster_rows(client, student):
    await _join(client, student["accessToken"])
    r = await client.post(
        "/api/profile/update",
        json={"fullName": "Renamed Player", "mobileNumber": "98765 43210"},
        headers=bearer(student["accessToken"]),
    )
    assert r.status_code == 200
    assert r.json()["user"]["mobileNumber"] == "98765 43210"
    assert "Renamed Player" in await _roster(client, 2)
    assert [t["teamName"] for t in r.json()["user"]["joinedTeams"]] == ["Shuttlers"]


@pytest.mark.asyncio
async def test_token_issued_before_rename_still_identifies_member(client):
    s = await register_and_login(client, full_name="Old Name")
    token = s["accessToken"]
    await _join(client, token)
    r = await client.post(
        "/api/profile/update", json={"fullName": "New Name"}, headers=bearer(token)
    )
    assert r.status_code == 200

    # The token still carries fullName "Old Name"
    again = await _join(client, token)
    assert again.status_code == 400
    assert again.json()["code"] == "already_member"
    assert await _roster(client, 2) == ["Rahul Patel", "New Name"]

    profile = (await client.get("/api/profile", headers=bearer(token))).json()
    assert [t["teamName"] for t in profile["joinedTeams"]] == ["Shuttlers"]

    r = await client.post(
        "/api/teams/leave", json={"teamName": "Shuttlers"}, headers=bearer(token)
    )
    assert r.status_code == 200
    assert await _roster(client, 2) == ["Rahul Patel"]


# ═══════════════════════════════════════════════════════════
# Registration number parsing
# ═══════════════════════════════════════════════════════════


def test_parse_registration_year():
    assert parse_registration_year("2021CS001") == 2021
    assert parse_registration_year("  2019") == 2019
    assert parse_registration_year(2020123) == 2020
    assert parse_registration_year("CS2021") is None
    assert parse_registration_year("20a1") is None
    assert parse_registration_year("") is None
