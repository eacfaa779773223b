import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def create(async_client, auth_headers, **overrides):
    payload = {"type": "task_assigned", "title": "New task", "message": "Prepare the quarterly audit"}
    payload.update(overrides)
    resp = await async_client.post("/api/notifications", json=payload, headers=auth_headers)
    assert resp.status_code == 201
    return resp.json()


async def test_requires_authentication(async_client: AsyncClient):
    resp = await async_client.get("/api/notifications")
    assert resp.status_code == 401

    resp = await async_client.get("/api/notifications", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_get_notifications_empty(async_client: AsyncClient, auth_headers: dict):
    """Initially empty list for the test user."""
    resp = await async_client.get("/api/notifications", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json() == []


async def test_create_notification_defaults_to_caller(async_client: AsyncClient, auth_headers: dict, test_user, notifications_store):
    created = await create(async_client, auth_headers, task_id="task-7")

    assert created["user_id"] == test_user["id"]
    assert created["type"] == "task_assigned"
    assert created["read"] is False
    assert created["task_id"] == "task-7"
    assert len(notifications_store.docs) == 1
    assert notifications_store.docs[0]["id"] == created["id"]


async def test_create_rejects_unknown_kind(async_client: AsyncClient, auth_headers: dict):
    resp = await async_client.post(
        "/api/notifications",
        json={"type": "task_archived", "title": "x", "message": "y"},
        headers=auth_headers,
    )
    assert resp.status_code == 422


async def test_create_pushes_to_live_stream(async_client: AsyncClient, auth_headers: dict, live_broadcaster):
    queue = live_broadcaster.register("other_user_id")

    created = await create(async_client, auth_headers, user_id="other_user_id")

    frame = queue.get_nowait()
    assert frame["type"] == "notification"
    assert frame["notification"]["id"] == created["id"]
    assert frame["notification"]["user_id"] == "other_user_id"


async def test_list_is_scoped_and_newest_first(async_client: AsyncClient, auth_headers: dict, other_auth_headers: dict):
    first = await create(async_client, auth_headers, title="First")
    second = await create(async_client, auth_headers, title="Second")
    await create(async_client, other_auth_headers, title="Someone else's")

    resp = await async_client.get("/api/notifications", headers=auth_headers)
    ids = [n["id"] for n in resp.json()]
    assert set(ids) == {first["id"], second["id"]}
    assert all("_id" not in n for n in resp.json())


async def test_unread_count_and_mark_as_read(async_client: AsyncClient, auth_headers: dict):
    created = await create(async_client, auth_headers)
    still_unread = await create(async_client, auth_headers)

    resp = await async_client.get("/api/notifications/unread-count", headers=auth_headers)
    assert resp.json() == {"count": 2}

    resp = await async_client.patch(f"/api/notifications/{created['id']}/read", headers=auth_headers)
    assert resp.status_code == 200

    resp = await async_client.get("/api/notifications/unread-count", headers=auth_headers)
    assert resp.json() == {"count": 1}

    resp = await async_client.get("/api/notifications", params={"unread_only": True}, headers=auth_headers)
    assert [n["id"] for n in resp.json()] == [still_unread["id"]]


async def test_mark_nonexistent_notification(async_client: AsyncClient, auth_headers: dict):
    """Marking a non-existent notification as read returns 404."""
    resp = await async_client.patch(
        "/api/notifications/fake_id/read",
        headers=auth_headers,
    )
    assert resp.status_code == 404


async def test_cannot_mark_another_users_notification(async_client: AsyncClient, auth_headers: dict, other_auth_headers: dict):
    theirs = await create(async_client, other_auth_headers)
    resp = await async_client.patch(f"/api/notifications/{theirs['id']}/read", headers=auth_headers)
    assert resp.status_code == 404


async def test_mark_all_read(async_client: AsyncClient, auth_headers: dict):
    """Mark all read succeeds even when no notifications exist."""
    resp = await async_client.patch(
        "/api/notifications/mark-all-read",
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["updated"] == 0

    await create(async_client, auth_headers)
    await create(async_client, auth_headers)
    resp = await async_client.patch("/api/notifications/mark-all-read", headers=auth_headers)
    assert resp.json()["updated"] == 2

    resp = await async_client.get("/api/notifications/unread-count", headers=auth_headers)
    assert resp.json() == {"count": 0}


async def test_delete_notification(async_client: AsyncClient, auth_headers: dict, notifications_store):
    created = await create(async_client, auth_headers)

    resp = await async_client.delete(f"/api/notifications/{created['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert notifications_store.docs == []

    resp = await async_client.delete(f"/api/notifications/{created['id']}", headers=auth_headers)
    assert resp.status_code == 404


async def test_bulk_delete(async_client: AsyncClient, auth_headers: dict, other_auth_headers: dict, notifications_store):
    mine = [await create(async_client, auth_headers) for _ in range(3)]
    theirs = await create(async_client, other_auth_headers)

    resp = await async_client.request(
        "DELETE",
        "/api/notifications/bulk",
        json={"ids": [mine[0]["id"], mine[1]["id"], theirs["id"]]},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["deleted"] == 2
    assert {d["id"] for d in notifications_store.docs} == {mine[2]["id"], theirs["id"]}


async def test_bulk_delete_requires_ids(async_client: AsyncClient, auth_headers: dict):
    resp = await async_client.request("DELETE", "/api/notifications/bulk", json={"ids": []}, headers=auth_headers)
    assert resp.status_code == 422
