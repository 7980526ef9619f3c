import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from conftest import login_headers


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "OK"


@pytest.mark.asyncio
async def test_first_admin_is_super_admin(client):
    resp = await client.post("/admin_register", json={"email": "first@pharmacy.com", "password": "firstpass123"})
    assert resp.status_code == 201
    first = resp.json()["admin"]
    assert first["role"] == "Super Admin"
    assert first["name"] == "Admin"
    assert "password" not in first

    resp = await client.post(
        "/admin_register",
        json={"email": "second@pharmacy.com", "password": "secondpass123", "name": "Dana", "phone": "555"},
    )
    assert resp.status_code == 201
    second = resp.json()["admin"]
    assert second["role"] == "Admin"
    assert second["name"] == "Dana"
    assert second["phone"] == "555"


@pytest.mark.asyncio
async def test_duplicate_admin_email_conflicts(client):
    payload = {"email": "dup@pharmacy.com", "password": "duppass123"}
    resp = await client.post("/admin_register", json=payload)
    assert resp.status_code == 201

    resp = await client.post("/admin_register", json=payload)
    assert resp.status_code == 409
    assert resp.json()["message"] == "Account already exists"


@pytest.mark.asyncio
async def test_admin_register_requires_email(client):
    resp = await client.post("/admin_register", json={"password": "nopass123"})
    assert resp.status_code == 400
    assert "email" in resp.json()["error"]


@pytest.mark.asyncio
async def test_admin_login_token_carries_identity(client, settings):
    resp = await client.post("/admin_register", json={"email": "boss@pharmacy.com", "password": "bosspass123"})
    admin_id = resp.json()["admin"]["id"]

    resp = await client.post("/admin_login", json={"email": "boss@pharmacy.com", "password": "bosspass123"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"] == {"id": admin_id, "name": "Admin", "email": "boss@pharmacy.com", "role": "Super Admin"}

    claims = jwt.decode(body["token"], settings.secret_key, algorithms=[settings.algorithm])
    assert claims["id"] == admin_id
    assert claims["email"] == "boss@pharmacy.com"
    assert claims["role"] == "Super Admin"

    resp = await client.post("/admin_login", json={"email": "boss@pharmacy.com", "password": "wrongpass"})
    assert resp.status_code == 401

    resp = await client.post("/admin_login", json={"email": "nobody@pharmacy.com", "password": "bosspass123"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_customer_register_and_login(client, settings):
    payload = {"name": "Sam", "email": "sam@pharmacy.com", "phone": "0123", "password": "sampass123"}
    resp = await client.post("/customer_register", json=payload)
    assert resp.status_code == 201

    resp = await client.post("/customer_register", json=payload)
    assert resp.status_code == 409

    resp = await client.post("/customer_login", json={"email": "sam@pharmacy.com", "password": "sampass123"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["customer"]["name"] == "Sam"
    claims = jwt.decode(body["token"], settings.secret_key, algorithms=[settings.algorithm])
    assert claims["role"] == "customer"
    assert claims["email"] == "sam@pharmacy.com"

    resp = await client.post("/customer_login", json={"email": "sam@pharmacy.com", "password": "nope"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_checks(client, super_admin_headers):
    # no token
    resp = await client.get("/api/admin/profile")
    assert resp.status_code == 403

    # garbage token
    resp = await client.get("/api/admin/profile", headers={"Authorization": "not-a-token"})
    assert resp.status_code == 401

    # raw token and Bearer form are both accepted
    resp = await client.get("/api/admin/profile", headers=super_admin_headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "root@pharmacy.com"

    bearer = {"Authorization": f"Bearer {super_admin_headers['Authorization']}"}
    resp = await client.get("/api/admin/profile", headers=bearer)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_super_admin_manages_admins(client, super_admin_headers):
    resp = await client.post("/admin_register", json={"email": "staff@pharmacy.com", "password": "staffpass123"})
    staff_id = resp.json()["admin"]["id"]

    resp = await client.get("/api/admins", headers=super_admin_headers)
    assert resp.status_code == 200
    admins = resp.json()
    assert [a["email"] for a in admins] == ["root@pharmacy.com", "staff@pharmacy.com"]
    assert all("password" not in a for a in admins)

    # a plain admin is refused
    staff_headers = await login_headers(client, "/admin_login", "staff@pharmacy.com", "staffpass123")
    resp = await client.get("/api/admins", headers=staff_headers)
    assert resp.status_code == 403

    resp = await client.delete(f"/api/admins/{staff_id}", headers=super_admin_headers)
    assert resp.status_code == 200

    resp = await client.delete(f"/api/admins/{staff_id}", headers=super_admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_super_admin_cannot_be_deleted(client, super_admin_headers):
    resp = await client.get("/api/admin/profile", headers=super_admin_headers)
    root_id = resp.json()["id"]

    resp = await client.delete(f"/api/admins/{root_id}", headers=super_admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot delete Super Admin"

    resp = await client.get("/api/admins", headers=super_admin_headers)
    assert len(resp.json()) == 1


@pytest.mark.asyncio
async def test_customer_token_cannot_reach_admin_routes(client, super_admin_headers):
    await client.post(
        "/customer_register",
        json={"name": "Cy", "email": "cy@pharmacy.com", "phone": "1", "password": "cypass123"},
    )
    headers = await login_headers(client, "/customer_login", "cy@pharmacy.com", "cypass123")

    resp = await client.get("/api/admin/profile", headers=headers)
    assert resp.status_code == 403
    resp = await client.get("/api/admins", headers=headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_profile_update(client, super_admin_headers):
    resp = await client.put(
        "/api/admin/profile",
        json={"name": "Root", "phone": "999"},
        headers=super_admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["admin"]["name"] == "Root"
    assert resp.json()["admin"]["phone"] == "999"

    resp = await client.put("/api/admin/profile", json={"newPassword": "fresh123"}, headers=super_admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Current password is required"

    resp = await client.put(
        "/api/admin/profile",
        json={"currentPassword": "wrong", "newPassword": "fresh123"},
        headers=super_admin_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Incorrect current password"

    resp = await client.put(
        "/api/admin/profile",
        json={"currentPassword": "rootpass123", "newPassword": "fresh123"},
        headers=super_admin_headers,
    )
    assert resp.status_code == 200

    resp = await client.post("/admin_login", json={"email": "root@pharmacy.com", "password": "fresh123"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_customer_profile_update(client):
    await client.post(
        "/customer_register",
        json={"name": "Lee", "email": "lee@pharmacy.com", "phone": "1", "password": "leepass123"},
    )
    await client.post(
        "/customer_register",
        json={"name": "Kim", "email": "kim@pharmacy.com", "phone": "2", "password": "kimpass123"},
    )
    headers = await login_headers(client, "/customer_login", "lee@pharmacy.com", "leepass123")

    resp = await client.put("/api/customer/profile", json={"phone": "777"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["customer"]["phone"] == "777"

    resp = await client.put("/api/customer/profile", json={"email": "kim@pharmacy.com"}, headers=headers)
    assert resp.status_code == 409

    resp = await client.put("/api/customer/profile", json={"phone": "777"})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_login_with_unknown_identifier_is_unauthorized(client):
    resp = await client.post("/admin_login", json={"email": "nobody", "password": "whatever"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid Credentials"

    resp = await client.post("/customer_login", json={"email": "nobody", "password": "whatever"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_register_accepts_local_domains(client):
    resp = await client.post("/admin_register", json={"email": "ops@pharmacy.local", "password": "opspass123"})
    assert resp.status_code == 201
    assert resp.json()["admin"]["email"] == "ops@pharmacy.local"

    resp = await client.post(
        "/customer_register",
        json={"name": "Ops", "email": "ops@pharmacy.local", "phone": "1", "password": "opspass123"},
    )
    assert resp.status_code == 201

    resp = await client.post("/admin_login", json={"email": "ops@pharmacy.local", "password": "opspass123"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_concurrent_first_registration_falls_back_to_admin(client, app, super_admin_headers, monkeypatch):
    # simulate a registration that counted zero admins before the Super Admin row landed
    async def no_admins(*criteria):
        return 0

    monkeypatch.setattr(app.state.store.admins, "count", no_admins)

    resp = await client.post("/admin_register", json={"email": "late@pharmacy.com", "password": "latepass123"})
    assert resp.status_code == 201
    assert resp.json()["admin"]["role"] == "Admin"

    monkeypatch.undo()
    resp = await client.get("/api/admins", headers=super_admin_headers)
    roles = {a["email"]: a["role"] for a in resp.json()}
    assert roles == {"root@pharmacy.com": "Super Admin", "late@pharmacy.com": "Admin"}


@pytest.mark.asyncio
async def test_unexpected_error_returns_server_error(app, monkeypatch):
    async def broken_find(*criteria, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(app.state.store.medicines, "find", broken_find)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        resp = await client.get("/api/medicines")

    assert resp.status_code == 500
    assert resp.json() == {"message": "Server Error", "error": "database unavailable"}
