from datetime import timedelta

from sqlalchemy import update

from purchasing.domain.factories import utcnow
from purchasing.infrastructure.db_schema import access_tokens_tbl


async def test_login_returns_token_and_user(client, password, seeded):
    response = await client.post("/api/login_check", json={"email": "admin@example.com", "password": password})

    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["user"] == {
        "id": seeded["admin"],
        "email": "admin@example.com",
        "roles": ["ROLE_USER", "ROLE_ADMIN"],
    }


async def test_login_with_wrong_password(client):
    response = await client.post("/api/login_check", json={"email": "admin@example.com", "password": "bad"})

    assert response.status_code == 401


async def test_authenticated_returns_current_user(client, alice_headers, seeded):
    response = await client.get("/api/authenticated", headers=alice_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == seeded["alice"]
    assert data["firstName"] == "Alice"
    assert "password" not in data and "passwordHash" not in data


async def test_expired_token_is_rejected(client, alice_headers, session_factory):
    async with session_factory() as session:
        await session.execute(update(access_tokens_tbl).values(expires_at=utcnow() - timedelta(minutes=1)))
        await session.commit()

    response = await client.get("/api/authenticated", headers=alice_headers)

    assert response.status_code == 401


async def test_user_management_is_admin_only(client, admin_headers, alice_headers, seeded):
    assert (await client.get("/api/users", headers=alice_headers)).status_code == 403
    assert (await client.get(f"/api/users/{seeded['bob']}", headers=alice_headers)).status_code == 403
    assert (await client.get(f"/api/users/{seeded['alice']}", headers=alice_headers)).status_code == 200

    users = (await client.get("/api/users", headers=admin_headers)).json()
    assert [user["email"] for user in users] == ["admin@example.com", "alice@example.com", "bob@example.com"]


async def test_admin_creates_user_who_can_log_in(client, admin_headers):
    body = {
        "email": "carol@example.com",
        "password": "pa55",
        "firstName": "Carol",
        "lastName": "Petit",
        "roles": [],
    }
    created = await client.post("/api/users", json=body, headers=admin_headers)

    assert created.status_code == 201
    assert created.json()["roles"] == ["ROLE_USER"]
    assert created.json()["isActive"] is True

    login = await client.post("/api/login_check", json={"email": "carol@example.com", "password": "pa55"})
    assert login.status_code == 200

    duplicate = await client.post("/api/users", json=body, headers=admin_headers)
    assert duplicate.status_code == 409


async def test_create_user_requires_fields(client, admin_headers):
    response = await client.post("/api/users", json={"email": "dave@example.com"}, headers=admin_headers)

    assert response.status_code == 422


async def test_deactivated_user_loses_access(client, admin_headers, bob_headers, password, seeded):
    response = await client.patch(f"/api/users/{seeded['bob']}", json={"isActive": False}, headers=admin_headers)
    assert response.status_code == 200

    assert (await client.get("/api/orders", headers=bob_headers)).status_code == 401
    login = await client.post("/api/login_check", json={"email": "bob@example.com", "password": password})
    assert login.status_code == 401


async def test_deleted_user_is_hidden(client, admin_headers, seeded):
    assert (await client.delete(f"/api/users/{seeded['bob']}", headers=admin_headers)).status_code == 204
    assert (await client.get(f"/api/users/{seeded['bob']}", headers=admin_headers)).status_code == 404
    assert (await client.delete(f"/api/users/{seeded['admin']}", headers=admin_headers)).status_code == 403


async def test_health(client):
    response = await client.get("/health")

    assert response.json() == {"status": "healthy"}
