"""Auth and admin management routes — login, approval, bearer checks, password reset.

Invariants:
    - Errors use the {"error": {...}} envelope
    - Request validation failures answer 400, not 422
    - Unapproved admins are refused even with a valid token
"""

from bson import ObjectId

from backstage.infrastructure.security import create_access_token

PASSWORD = "correct-horse-9"


async def test_register_creates_pending_admin(client):
    res = await client.post("/api/v1/auth/register", json={
        "name": "Nova", "email": "Nova@Example.com",
        "password": "long-enough", "confirmPassword": "long-enough",
    })
    assert res.status_code == 201
    body = res.json()
    assert body["email"] == "nova@example.com"
    assert body["approved"] is False
    assert "password" not in body


async def test_register_mismatched_passwords_is_400(client):
    res = await client.post("/api/v1/auth/register", json={
        "name": "Nova", "email": "nova@example.com",
        "password": "long-enough", "confirmPassword": "different!",
    })
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_register_duplicate_is_409(client, admin):
    res = await client.post("/api/v1/auth/register", json={
        "name": "Copy", "email": admin["email"],
        "password": "long-enough", "confirmPassword": "long-enough",
    })
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "CONFLICT"


async def test_login_then_me(client, admin):
    res = await client.post("/api/v1/auth/login", json={"email": admin["email"], "password": PASSWORD})
    assert res.status_code == 200
    body = res.json()
    assert body["token_type"] == "bearer"
    assert body["admin"]["id"] == str(admin["_id"])

    me = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["email"] == admin["email"]


async def test_login_wrong_password_is_401(client, admin):
    res = await client.post("/api/v1/auth/login", json={"email": admin["email"], "password": "nope"})
    assert res.status_code == 401


async def test_login_pending_admin_is_403(client, pending_admin):
    res = await client.post(
        "/api/v1/auth/login", json={"email": pending_admin["email"], "password": PASSWORD},
    )
    assert res.status_code == 403


async def test_me_without_token_is_401(client):
    assert (await client.get("/api/v1/auth/me")).status_code == 401


async def test_me_with_garbage_token_is_401(client):
    res = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


async def test_token_for_missing_admin_is_401(client, settings):
    token = create_access_token(str(ObjectId()), "admin", settings)
    res = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


async def test_token_with_non_object_id_subject_is_401(client, settings):
    token = create_access_token("not-an-id", "admin", settings)
    res = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


async def test_token_for_pending_admin_is_403(client, settings, pending_admin):
    token = create_access_token(str(pending_admin["_id"]), "admin", settings)
    res = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 403


async def test_forgot_password_answers_the_same_for_unknown_email(client, mailer, admin):
    known = await client.post("/api/v1/auth/forgot-password", json={"email": admin["email"]})
    unknown = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert len(mailer.sent) == 1


async def test_reset_password_with_bad_token_is_400(client):
    res = await client.post("/api/v1/auth/forgot-password/reset", json={
        "token": "missing", "password": "long-enough", "confirmPassword": "long-enough",
    })
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_RESET_TOKEN"


async def test_admin_management_requires_super_admin(client, admin_headers):
    res = await client.get("/api/v1/admins", headers=admin_headers)
    assert res.status_code == 403


async def test_super_admin_lists_and_approves(client, super_headers, pending_admin):
    pending = await client.get("/api/v1/admins?status=pending", headers=super_headers)
    assert [a["email"] for a in pending.json()["data"]] == [pending_admin["email"]]

    res = await client.patch(f"/api/v1/admins/{pending_admin['_id']}/approve", headers=super_headers)
    assert res.status_code == 200
    assert res.json()["approved"] is True

    login = await client.post(
        "/api/v1/auth/login", json={"email": pending_admin["email"], "password": PASSWORD},
    )
    assert login.status_code == 200


async def test_super_admin_cannot_delete_self(client, super_headers, super_admin):
    res = await client.delete(f"/api/v1/admins/{super_admin['_id']}", headers=super_headers)
    assert res.status_code == 400


async def test_super_admin_deletes_other_admin(client, super_headers, admin):
    res = await client.delete(f"/api/v1/admins/{admin['_id']}", headers=super_headers)
    assert res.status_code == 200
    again = await client.delete(f"/api/v1/admins/{admin['_id']}", headers=super_headers)
    assert again.status_code == 404
