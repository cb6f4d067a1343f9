import re

import pytest
from httpx import AsyncClient

from constants import PENDING_SYNC_MESSAGE

pytestmark = pytest.mark.asyncio

PAYLOAD = {
    "clientId": "acme",
    "date": "2025-03-01",
    "platforms": ["instagram"],
    "type": "reel",
    "concept": "Launch Promo",
    "caption": "Big news coming",
    "notes": "Use the blue logo",
    "status": "draft",
}


async def test_create_writes_a_tagged_task(async_client: AsyncClient, auth_headers: dict, fake_erp):
    resp = await async_client.post("/api/content", json=PAYLOAD, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["pending_sync"] is False
    assert body["item"]["id"].startswith("TASK-")

    task = fake_erp.all("Task")[0]
    assert task["subject"] == "Launch Promo"
    assert task["description"].startswith("[TYPE: reel]\n[PLATFORMS: instagram]")
    assert task["status"] == "Open"
    assert task["customer"] == "acme"
    assert task["exp_end_date"] == "2025-03-01"

    listing = await async_client.get("/api/content?clientId=acme", headers=auth_headers)
    assert listing.status_code == 200
    data = listing.json()
    assert data["source"] == "erpnext"
    item = data["items"][0]
    assert item["status"] == "draft"
    assert item["type"] == "reel"
    assert item["platforms"] == ["instagram"]
    assert item["caption"] == "Big news coming"
    assert item["notes"] == "Use the blue logo"


async def test_listing_skips_deliverable_tasks(async_client: AsyncClient, auth_headers: dict, fake_erp):
    fake_erp.seed("Task", {"subject": "Post", "customer": "acme", "description": "[TYPE: post]"})
    fake_erp.seed("Task", {"subject": "Logo v1", "customer": "acme", "description": '{"url": "https://x/logo.png"}'})
    fake_erp.seed("Task", {"subject": "Other client", "customer": "globex", "description": "[TYPE: post]"})

    resp = await async_client.get("/api/content?clientId=acme", headers=auth_headers)
    assert [i["concept"] for i in resp.json()["items"]] == ["Post"]


async def test_hand_typed_task_decodes_with_defaults(async_client: AsyncClient, auth_headers: dict, fake_erp):
    fake_erp.seed("Task", {"subject": "Typed in ERP", "customer": "acme", "description": "just text", "status": "Completed"})

    item = (await async_client.get("/api/content?clientId=acme", headers=auth_headers)).json()["items"][0]
    assert item["type"] == "post"
    assert item["platforms"] == ["instagram"]
    assert item["caption"] == "just text"
    assert item["status"] == "approved"


async def test_offline_create_then_sync(async_client: AsyncClient, auth_headers: dict, fake_erp, store):
    fake_erp.down = True
    resp = await async_client.post("/api/content", json=PAYLOAD, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    local_id = body["item"]["id"]
    assert re.fullmatch(r"LOCAL-\d+", local_id)
    assert body["pending_sync"] is True
    assert body["message"] == PENDING_SYNC_MESSAGE

    listing = (await async_client.get("/api/content?clientId=acme", headers=auth_headers)).json()
    assert listing["source"] == "erpnext-error"
    assert "error" in listing
    assert [i["id"] for i in listing["items"]] == [local_id]
    assert listing["items"][0]["pending_sync"] is True

    fake_erp.down = False
    synced = await async_client.post(f"/api/content/{local_id}/sync", headers=auth_headers)
    assert synced.status_code == 200
    assert synced.json()["item"]["id"].startswith("TASK-")
    assert synced.json()["pending_sync"] is False
    assert await store.content_grid.list() == []
    assert fake_erp.all("Task")[0]["subject"] == "Launch Promo"


async def test_offline_update_is_overlaid_until_synced(async_client: AsyncClient, auth_headers: dict, fake_erp, store):
    task = fake_erp.seed("Task", {"subject": "Old concept", "customer": "acme", "description": "[TYPE: post]", "status": "Open"})

    fake_erp.fail("PUT", "Task", status=500, message="Server busy")
    update = {**PAYLOAD, "concept": "New concept", "status": "pending_approval"}
    resp = await async_client.put(f"/api/content/{task['name']}", json=update, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["pending_sync"] is True

    item = (await async_client.get("/api/content?clientId=acme", headers=auth_headers)).json()["items"][0]
    assert item["concept"] == "New concept"
    assert item["status"] == "pending_approval"
    assert item["pending_sync"] is True

    fake_erp.failures.clear()
    synced = await async_client.post(f"/api/content/{task['name']}/sync", headers=auth_headers)
    assert synced.status_code == 200
    assert fake_erp.doc("Task", task["name"])["status"] == "Pending Review"
    assert await store.content_grid.get(task["name"]) is None


async def test_update_of_missing_task_is_404(async_client: AsyncClient, auth_headers: dict, store):
    resp = await async_client.put("/api/content/TASK-2025-99999", json=PAYLOAD, headers=auth_headers)
    assert resp.status_code == 404
    assert await store.content_grid.get("TASK-2025-99999") is None


async def test_delete_removes_remote_task(async_client: AsyncClient, auth_headers: dict, fake_erp):
    task = fake_erp.seed("Task", {"subject": "Bye", "customer": "acme", "description": "[TYPE: post]"})
    resp = await async_client.delete(f"/api/content/{task['name']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["remote_deleted"] is True
    assert fake_erp.all("Task") == []


async def test_sync_without_pending_changes_is_404(async_client: AsyncClient, auth_headers: dict):
    resp = await async_client.post("/api/content/TASK-2025-00001/sync", headers=auth_headers)
    assert resp.status_code == 404


async def test_client_id_is_required(async_client: AsyncClient, auth_headers: dict):
    resp = await async_client.get("/api/content", headers=auth_headers)
    assert resp.status_code == 422


async def test_content_requires_auth(async_client: AsyncClient):
    resp = await async_client.get("/api/content?clientId=acme")
    assert resp.status_code == 401
