"""
User API tests - registration, login, profile and nominations over HTTP.
"""

import pytest
from httpx import AsyncClient

from lendhub.db.models import Role


@pytest.mark.asyncio
async def test_register_login_me(client: AsyncClient):
    payload = {"email": "ada@example.com", "nickname": "Ada", "password": "s3cret", "latitude": 52.0, "longitude": 4.0}
    registered = await client.post("/api/v1/users/register", json=payload)
    assert registered.status_code == 201
    body = registered.json()
    assert body["email"] == "ada@example.com"
    assert "password" not in body and "hashed_password" not in body

    duplicate = await client.post("/api/v1/users/register", json=payload)
    assert duplicate.status_code == 409

    bad = await client.post("/api/v1/users/login", json={"email": "ada@example.com", "password": "wrong"})
    assert bad.status_code == 403

    login = await client.post("/api/v1/users/login", json={"email": "ada@example.com", "password": "s3cret"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == body["id"]
    assert (me.json()["latitude"], me.json()["longitude"]) == (52.0, 4.0)


@pytest.mark.asyncio
async def test_me_rejects_garbage_token(client: AsyncClient):
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_update_location_moves_items(client: AsyncClient, make_user, make_legacy_item, headers_for):
    user = await make_user(location=(52.0, 4.0))
    await make_legacy_item(user, "Bike", ["Outdoor"])

    response = await client.patch(
        "/api/v1/users/me", headers=headers_for(user), json={"latitude": 51.5, "longitude": 3.5}
    )
    assert response.status_code == 200

    items = (await client.get(f"/api/v1/items/by-user/{user.id}")).json()
    assert [(i["latitude"], i["longitude"]) for i in items] == [(51.5, 3.5)]


@pytest.mark.asyncio
async def test_update_requires_latitude_with_longitude(client: AsyncClient, make_user, headers_for):
    user = await make_user()
    response = await client.patch("/api/v1/users/me", headers=headers_for(user), json={"latitude": 51.5})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_nominate_exchange_point(client: AsyncClient, make_user, make_legacy_item, headers_for):
    point = await make_user("Library", role=Role.EXCHANGE_POINT)
    user = await make_user()
    item = await make_legacy_item(user, "Dune", ["Books"])

    response = await client.patch(
        "/api/v1/users/me", headers=headers_for(user), json={"exchange_point_ids": [point.id]}
    )
    assert response.status_code == 200
    assert response.json()["exchange_point_ids"] == [point.id]

    points = (await client.get("/api/v1/exchange-points")).json()
    assert [p["id"] for p in points] == [point.id]
    items = (await client.get(f"/api/v1/exchange-points/{point.id}/items")).json()
    assert [i["id"] for i in items] == [item.id]
    categories = (await client.get(f"/api/v1/exchange-points/{point.id}/categories")).json()
    assert categories["counts"] == {"Books": 1}

    rejected = await client.patch(
        "/api/v1/users/me", headers=headers_for(user), json={"exchange_point_ids": [user.id + 1000]}
    )
    assert rejected.status_code == 422


@pytest.mark.asyncio
async def test_user_snapshot_is_cached_until_update(client: AsyncClient, make_user, headers_for, user_cache):
    user = await make_user("Before")
    assert (await client.get(f"/api/v1/users/{user.id}")).json()["nickname"] == "Before"
    assert user.id in user_cache

    await client.patch("/api/v1/users/me", headers=headers_for(user), json={"nickname": "After"})

    assert user.id not in user_cache
    assert (await client.get(f"/api/v1/users/{user.id}")).json()["nickname"] == "After"
