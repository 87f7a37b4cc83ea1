"""Auth tests — registration, login, token refresh/rotation, logout.

Learn: Tests cover:
1. Registration + duplicate email/student ID prevention
2. Login → profile + token pair, welcome notifications
3. Refresh rotation is single use
4. Logout and admin password reset kill refresh tokens
5. Access-token failure codes (missing / expired / invalid / wrong role)
"""

import pytest

from conftest import DEFAULT_PASSWORD, bearer, register_and_login
from sportshub.auth.jwt import create_access_token, create_refresh_token


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    r = await client.post(
        "/api/register",
        json={
            "fullName": "Meera Shah",
            "studentID": "2021CS001",
            "email": "meera@college.edu",
            "password": "pw-123456",
        },
    )
    assert r.status_code == 201
    assert r.json()["message"] == "User registered successfully!"


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    """Same email, different student ID → 400 naming the email."""
    body = {
        "fullName": "A",
        "studentID": "S-1",
        "email": "a@x.edu",
        "password": "pw-123456",
    }
    assert (await client.post("/api/register", json=body)).status_code == 201

    r = await client.post("/api/register", json={**body, "studentID": "S-2"})
    assert r.status_code == 400
    assert r.json()["detail"] == "User with this email already exists."
    assert r.json()["code"] == "conflict"


@pytest.mark.asyncio
async def test_register_duplicate_student_id(client):
    body = {
        "fullName": "B",
        "studentID": "S-9",
        "email": "b1@x.edu",
        "password": "pw-123456",
    }
    assert (await client.post("/api/register", json=body)).status_code == 201

    r = await client.post("/api/register", json={**body, "email": "b2@x.edu"})
    assert r.status_code == 400
    assert r.json()["detail"] == "User with this student ID already exists."


@pytest.mark.asyncio
async def test_register_missing_field_is_400(client):
    r = await client.post(
        "/api/register",
        json={"fullName": "C", "email": "c@x.edu", "password": "pw-123456"},
    )
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_returns_profile_and_tokens(client):
    body = await register_and_login(client, full_name="Nikhil Rao")

    assert body["message"] == "Login successful!"
    assert body["accessToken"] and body["refreshToken"]
    user = body["user"]
    assert user["fullName"] == "Nikhil Rao"
    assert "studentID" in user
    assert "passwordHash" not in user
    assert user["joinedTeams"] == []

    titles = [n["title"] for n in user["notifications"]]
    assert titles == ["Welcome Nikhil Rao!", "Welcome back, Nikhil Rao!"]
    assert all(n["read"] is False for n in user["notifications"])


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    body = await register_and_login(client)
    r = await client.post(
        "/api/login",
        json={"email": body["user"]["email"], "password": "not-the-password"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid credentials."


@pytest.mark.asyncio
async def test_login_unknown_email(client):
    r = await client.post(
        "/api/login", json={"email": "nobody@college.edu", "password": "whatever"}
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid credentials."


# ═══════════════════════════════════════════════════════════
# Refresh
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_refresh_returns_new_pair(client, student):
    r = await client.post(
        "/api/auth/refresh", json={"refreshToken": student["refreshToken"]}
    )
    assert r.status_code == 200
    pair = r.json()
    assert pair["refreshToken"] != student["refreshToken"]

    # The new access token works
    r = await client.get("/api/profile", headers=bearer(pair["accessToken"]))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_refresh_token_is_single_use(client, student):
    old = student["refreshToken"]
    r1 = await client.post("/api/auth/refresh", json={"refreshToken": old})
    assert r1.status_code == 200

    r2 = await client.post("/api/auth/refresh", json={"refreshToken": old})
    assert r2.status_code == 403
    assert r2.json()["code"] == "REFRESH_TOKEN_NOT_FOUND"

    # The rotated-in token is still good
    r3 = await client.post(
        "/api/auth/refresh", json={"refreshToken": r1.json()["refreshToken"]}
    )
    assert r3.status_code == 200


@pytest.mark.asyncio
async def test_refresh_missing_token_is_401(client):
    r = await client.post("/api/auth/refresh", json={})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_refresh_garbage_token_is_403(client):
    r = await client.post("/api/auth/refresh", json={"refreshToken": "not-a-jwt"})
    assert r.status_code == 403
    assert r.json()["code"] == "INVALID_REFRESH_TOKEN"


@pytest.mark.asyncio
async def test_access_token_cannot_refresh(client, student):
    r = await client.post(
        "/api/auth/refresh", json={"refreshToken": student["accessToken"]}
    )
    assert r.status_code == 403
    assert r.json()["code"] == "INVALID_REFRESH_TOKEN"


@pytest.mark.asyncio
async def test_signed_but_unstored_refresh_token_is_rejected(client, student):
    """A validly signed token with no allow-list record is refused."""
    forged = create_refresh_token(student["user"]["id"], 0)
    r = await client.post("/api/auth/refresh", json={"refreshToken": forged})
    assert r.status_code == 403
    assert r.json()["code"] == "REFRESH_TOKEN_NOT_FOUND"


@pytest.mark.asyncio
async def test_password_reset_invalidates_refresh_tokens(client, student, admin_headers):
    user_id = student["user"]["id"]
    r = await client.post(
        f"/api/admin/users/{user_id}/reset-password", headers=admin_headers
    )
    assert r.status_code == 200

    r = await client.post(
        "/api/auth/refresh", json={"refreshToken": student["refreshToken"]}
    )
    assert r.status_code == 403
    assert r.json()["code"] == "TOKEN_VERSION_MISMATCH"


@pytest.mark.asyncio
async def test_deleting_user_removes_refresh_tokens(client, admin_headers):
    other = await register_and_login(client)
    r = await client.delete(
        f"/api/admin/users/{other['user']['id']}", headers=admin_headers
    )
    assert r.status_code == 200
    r = await client.post(
        "/api/auth/refresh", json={"refreshToken": other["refreshToken"]}
    )
    assert r.status_code == 403
    assert r.json()["code"] == "REFRESH_TOKEN_NOT_FOUND"


# ═══════════════════════════════════════════════════════════
# Logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(client, student):
    r = await client.post(
        "/api/logout",
        json={"refreshToken": student["refreshToken"]},
        headers=bearer(student["accessToken"]),
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Logged out successfully"

    r = await client.post(
        "/api/auth/refresh", json={"refreshToken": student["refreshToken"]}
    )
    assert r.status_code == 403
    assert r.json()["code"] == "REFRESH_TOKEN_NOT_FOUND"


@pytest.mark.asyncio
async def test_logout_requires_access_token(client, student):
    r = await client.post("/api/logout", json={"refreshToken": student["refreshToken"]})
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Access tokens
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_missing_access_token_is_401(client):
    r = await client.get("/api/profile")
    assert r.status_code == 401
    assert r.json()["detail"] == "Access token required"


@pytest.mark.asyncio
async def test_expired_access_token_is_401_token_expired(client, student):
    user = student["user"]
    expired = create_access_token(
        user["id"], user["email"], user["fullName"], "user", expires_minutes=-1
    )
    r = await client.get("/api/profile", headers=bearer(expired))
    assert r.status_code == 401
    assert r.json()["code"] == "TOKEN_EXPIRED"


@pytest.mark.asyncio
async def test_invalid_access_token_is_403(client):
    r = await client.get("/api/profile", headers=bearer("garbage.token.here"))
    assert r.status_code == 403
    assert r.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token(client, student):
    r = await client.get("/api/profile", headers=bearer(student["refreshToken"]))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_student_cannot_use_admin_routes(client, student):
    r = await client.get("/api/admin/users", headers=bearer(student["accessToken"]))
    assert r.status_code == 403
    assert r.json()["code"] == "ADMIN_REQUIRED"


@pytest.mark.asyncio
async def test_temporary_password_logs_in(client, student, admin_headers):
    r = await client.post(
        f"/api/admin/users/{student['user']['id']}/reset-password",
        headers=admin_headers,
    )
    temp = r.json()["tempPassword"]
    assert temp.startswith("temp") and len(temp) == 10

    email = student["user"]["email"]
    old = await client.post("/api/login", json={"email": email, "password": DEFAULT_PASSWORD})
    assert old.status_code == 400
    new = await client.post("/api/login", json={"email": email, "password": temp})
    assert new.status_code == 200
