"""Notification tests — bounded logs, target selectors, live delivery, history.

Learn: Live delivery is observed with a stand-in socket registered on
app.state.realtime: anything with `client_state` and an async
`send_text` satisfies ClientConnection.
"""

import json
import uuid

import pytest
from starlette.websockets import WebSocketState

from conftest import bearer, register_and_login
from sportshub.main import app
from sportshub.realtime.registry import ClientConnection
from sportshub.services.notification_service import (
    NotificationPayload,
    NotificationService,
    split_bulk_emails,
)


class RecordingSocket:
    """Minimal websocket double that records outgoing frames."""

    def __init__(self):
        self.client_state = WebSocketState.CONNECTED
        self.frames: list[dict] = []

    async def send_text(self, data: str) -> None:
        self.frames.append(json.loads(data))


def _send_body(target="all", **extra):
    return {
        "title": "Practice moved",
        "message": "Nets start at 7 AM tomorrow.",
        "icon": "📢",
        "target": target,
        **extra,
    }


async def _send(client, admin_headers, target="all", **extra):
    return await client.post(
        "/api/admin/notifications/send",
        json=_send_body(target, **extra),
        headers=admin_headers,
    )


async def _titles(client, token):
    profile = (await client.get("/api/profile", headers=bearer(token))).json()
    return [n["title"] for n in profile["notifications"]]


# ═══════════════════════════════════════════════════════════
# Bounded log
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_log_keeps_newest_ten(client, student, db_session):
    svc = NotificationService(db_session)
    user_id = student["user"]["id"]
    for i in range(15):
        await svc.push_to_users(
            [uuid.UUID(user_id)], NotificationPayload(title=f"n{i}", body="b")
        )
    await db_session.commit()

    titles = await _titles(client, student["accessToken"])
    assert titles == [f"n{i}" for i in range(5, 15)]


@pytest.mark.asyncio
async def test_mark_all_read(client, student):
    r = await client.post(
        "/api/notifications/mark-read", headers=bearer(student["accessToken"])
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Notifications marked as read"

    profile = (
        await client.get("/api/profile", headers=bearer(student["accessToken"]))
    ).json()
    assert profile["notifications"]
    assert all(n["read"] for n in profile["notifications"])


# ═══════════════════════════════════════════════════════════
# Targets
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_send_to_all(client, admin_headers):
    a = await register_and_login(client)
    b = await register_and_login(client)

    r = await _send(client, admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Notification sent successfully!"
    assert body["sentCount"] == 2
    assert body["realTimeDelivered"] == 0

    for s in (a, b):
        assert (await _titles(client, s["accessToken"]))[-1] == "Practice moved"


@pytest.mark.asyncio
async def test_team_member_targets(client, admin_headers):
    joined = await register_and_login(client, full_name="On A Team")
    await client.post(
        "/api/events/2/join",
        json={"userRegNumber": "2020AB1", "userExperience": 2},
        headers=bearer(joined["accessToken"]),
    )
    # Matches the seeded Warriors roster entry by name
    seeded = await register_and_login(client, full_name="Aditya Kumar")
    loner = await register_and_login(client, full_name="No Team")

    r = await _send(client, admin_headers, target="team-members")
    assert r.json()["sentCount"] == 2
    assert (await _titles(client, joined["accessToken"]))[-1] == "Practice moved"
    assert (await _titles(client, seeded["accessToken"]))[-1] == "Practice moved"
    assert "Practice moved" not in await _titles(client, loner["accessToken"])

    r = await _send(client, admin_headers, target="non-team-members")
    assert r.json()["sentCount"] == 1
    assert (await _titles(client, loner["accessToken"]))[-1] == "Practice moved"


@pytest.mark.asyncio
async def test_send_to_specific_user(client, admin_headers):
    target = await register_and_login(client)
    other = await register_and_login(client)

    r = await _send(
        client, admin_headers, target="specific", specificEmail=target["user"]["email"]
    )
    assert r.json()["sentCount"] == 1
    assert "Practice moved" in await _titles(client, target["accessToken"])
    assert "Practice moved" not in await _titles(client, other["accessToken"])


@pytest.mark.asyncio
async def test_specific_without_email_is_400(client, admin_headers):
    r = await _send(client, admin_headers, target="specific")
    assert r.status_code == 400
    assert r.json()["detail"] == "Specific user email is required."


@pytest.mark.asyncio
async def test_send_bulk(client, admin_headers):
    a = await register_and_login(client)
    b = await register_and_login(client)
    c = await register_and_login(client)

    emails = f" {a['user']['email']} ,{b['user']['email']},, ghost@college.edu"
    r = await _send(client, admin_headers, target="bulk", bulkEmails=emails)
    assert r.json()["sentCount"] == 2
    assert "Practice moved" not in await _titles(client, c["accessToken"])

    history = (
        await client.get("/api/admin/notifications/history", headers=admin_headers)
    ).json()
    assert history["notifications"][0]["targetUsers"] == [
        a["user"]["email"],
        b["user"]["email"],
        "ghost@college.edu",
    ]


@pytest.mark.asyncio
async def test_unknown_target_is_400(client, admin_headers):
    r = await _send(client, admin_headers, target="everyone")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_students_cannot_send(client, student):
    r = await client.post(
        "/api/admin/notifications/send",
        json=_send_body(),
        headers=bearer(student["accessToken"]),
    )
    assert r.status_code == 403


def test_split_bulk_emails():
    assert split_bulk_emails("a@x, b@x ,,c@x ") == ["a@x", "b@x", "c@x"]
    assert split_bulk_emails(" , ") == []
    assert split_bulk_emails("a@x, b@x, a@x") == ["a@x", "b@x"]


# ═══════════════════════════════════════════════════════════
# Live delivery
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_realtime_delivery_is_counted(client, admin_headers):
    online = await register_and_login(client)
    await register_and_login(client)

    socket = RecordingSocket()
    app.state.realtime.register_notifications(
        online["user"]["email"], ClientConnection(socket)
    )

    r = await _send(client, admin_headers)
    assert r.json()["sentCount"] == 2
    assert r.json()["realTimeDelivered"] == 1

    assert len(socket.frames) == 1
    frame = socket.frames[0]
    assert frame["type"] == "notification"
    assert frame["notification"]["title"] == "Practice moved"
    assert frame["notification"]["read"] is False


@pytest.mark.asyncio
async def test_closed_socket_is_not_counted(client, admin_headers):
    online = await register_and_login(client)
    socket = RecordingSocket()
    socket.client_state = WebSocketState.DISCONNECTED
    app.state.realtime.register_notifications(
        online["user"]["email"], ClientConnection(socket)
    )

    r = await _send(client, admin_headers)
    assert r.json()["realTimeDelivered"] == 0
    assert socket.frames == []


@pytest.mark.asyncio
async def test_repeated_bulk_address_is_delivered_once(client, admin_headers):
    online = await register_and_login(client)
    email = online["user"]["email"]
    socket = RecordingSocket()
    app.state.realtime.register_notifications(email, ClientConnection(socket))

    r = await _send(
        client, admin_headers, target="bulk", bulkEmails=f"{email}, {email},{email}"
    )
    assert r.json()["sentCount"] == 1
    assert r.json()["realTimeDelivered"] == 1
    assert len(socket.frames) == 1

    history = (
        await client.get("/api/admin/notifications/history", headers=admin_headers)
    ).json()
    assert history["notifications"][0]["targetUsers"] == [email]


# ═══════════════════════════════════════════════════════════
# Scheduling + history
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_scheduled_send_is_dispatched_now(client, admin_headers, student):
    r = await _send(
        client,
        admin_headers,
        scheduled=True,
        scheduleDateTime="2030-01-05T09:30:00",
    )
    assert r.status_code == 200
    assert r.json()["sentCount"] == 1

    profile = (
        await client.get("/api/profile", headers=bearer(student["accessToken"]))
    ).json()
    assert profile["notifications"][-1]["timestamp"].startswith("2030-01-05T09:30:00")

    history = (
        await client.get("/api/admin/notifications/history", headers=admin_headers)
    ).json()
    assert history["notifications"][0]["scheduledFor"].startswith("2030-01-05T09:30:00")


@pytest.mark.asyncio
async def test_scheduled_without_time_is_400(client, admin_headers):
    r = await _send(client, admin_headers, scheduled=True)
    assert r.status_code == 400
    assert r.json()["detail"] == "Schedule date and time are required."


@pytest.mark.asyncio
async def test_history_pagination(client, admin_headers):
    for i in range(5):
        await client.post(
            "/api/admin/notifications/send",
            json={**_send_body(), "title": f"Notice {i}"},
            headers=admin_headers,
        )

    r = await client.get(
        "/api/admin/notifications/history",
        params={"page": 1, "limit": 2},
        headers=admin_headers,
    )
    assert r.status_code == 200
    page = r.json()
    assert page["pagination"] == {"page": 1, "limit": 2, "total": 5, "pages": 3}
    assert [n["title"] for n in page["notifications"]] == ["Notice 4", "Notice 3"]
    assert page["notifications"][0]["sentBy"] == "SportsHub Administrator"

    last = (
        await client.get(
            "/api/admin/notifications/history",
            params={"page": 3, "limit": 2},
            headers=admin_headers,
        )
    ).json()
    assert [n["title"] for n in last["notifications"]] == ["Notice 0"]
