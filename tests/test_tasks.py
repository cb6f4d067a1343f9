import json
import re

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def test_create_and_list_team_tasks(async_client: AsyncClient, auth_headers: dict, fake_erp):
    payload = {
        "title": "Prepare monthly report",
        "description": "Numbers for March",
        "priority": "High",
        "dueDate": "2025-03-31",
        "assignedTo": ["ana@lumen.test"],
    }
    resp = await async_client.post("/api/tasks", json=payload, headers=auth_headers)
    assert resp.status_code == 200
    task = resp.json()["task"]
    assert task["title"] == "Prepare monthly report"
    assert task["assignedTo"] == ["ana@lumen.test"]

    stored = fake_erp.doc("Task", task["id"])
    assert stored["priority"] == "High"
    assert json.loads(stored["_assign"]) == ["ana@lumen.test"]

    listing = (await async_client.get("/api/tasks", headers=auth_headers)).json()
    assert listing["source"] == "erpnext"
    assert [t["id"] for t in listing["tasks"]] == [task["id"]]


async def test_board_excludes_content_and_deliverables(async_client: AsyncClient, auth_headers: dict, fake_erp):
    fake_erp.seed("Task", {"subject": "Team work", "description": "Plain text"})
    fake_erp.seed("Task", {"subject": "Reel", "description": "[TYPE: reel]\n[PLATFORMS: instagram]"})
    fake_erp.seed("Task", {"subject": "Logo", "description": '{"url": "https://x"}'})

    resp = await async_client.get("/api/tasks", headers=auth_headers)
    assert [t["title"] for t in resp.json()["tasks"]] == ["Team work"]


async def test_partial_update_only_sends_given_fields(async_client: AsyncClient, auth_headers: dict, fake_erp):
    task = fake_erp.seed("Task", {"subject": "Edit me", "description": "Keep this", "status": "Open", "priority": "Low"})

    resp = await async_client.put("/api/tasks", json={"id": task["name"], "status": "Working"}, headers=auth_headers)
    assert resp.status_code == 200
    assert fake_erp.calls("PUT", "Task")[-1]["json"] == {"status": "Working"}
    stored = fake_erp.doc("Task", task["name"])
    assert stored["status"] == "Working"
    assert stored["description"] == "Keep this"


async def test_empty_update_is_400(async_client: AsyncClient, auth_headers: dict, fake_erp):
    task = fake_erp.seed("Task", {"subject": "Edit me"})
    resp = await async_client.put("/api/tasks", json={"id": task["name"]}, headers=auth_headers)
    assert resp.status_code == 400


async def test_offline_task_is_created_locally(async_client: AsyncClient, auth_headers: dict, fake_erp):
    fake_erp.down = True
    resp = await async_client.post("/api/tasks", json={"title": "Offline"}, headers=auth_headers)
    body = resp.json()
    assert re.fullmatch(r"LOCAL-\d+", body["task"]["id"])
    assert body["pending_sync"] is True

    listing = (await async_client.get("/api/tasks", headers=auth_headers)).json()
    assert listing["source"] == "erpnext-error"
    assert listing["tasks"][0]["title"] == "Offline"


async def test_comments(async_client: AsyncClient, auth_headers: dict, fake_erp):
    task = fake_erp.seed("Task", {"subject": "Discuss"})

    resp = await async_client.post(f"/api/tasks/{task['name']}/comments", json={"content": "On it"}, headers=auth_headers)
    assert resp.status_code == 200
    comment = resp.json()["comment"]
    assert comment["content"] == "On it"
    assert comment["author"] == "admin"

    listing = (await async_client.get(f"/api/tasks/{task['name']}/comments", headers=auth_headers)).json()
    assert [c["content"] for c in listing["comments"]] == ["On it"]


async def test_comments_on_local_task(async_client: AsyncClient, auth_headers: dict):
    listing = await async_client.get("/api/tasks/LOCAL-1/comments", headers=auth_headers)
    assert listing.json() == {"comments": []}

    resp = await async_client.post("/api/tasks/LOCAL-1/comments", json={"content": "x"}, headers=auth_headers)
    assert resp.status_code == 400


async def test_comments_fail_loudly_when_erp_down(async_client: AsyncClient, auth_headers: dict, fake_erp):
    fake_erp.down = True
    resp = await async_client.get("/api/tasks/TASK-2025-00001/comments", headers=auth_headers)
    assert resp.status_code == 502


async def test_member_can_use_the_board(async_client: AsyncClient, member_auth_headers: dict):
    resp = await async_client.get("/api/tasks", headers=member_auth_headers)
    assert resp.status_code == 200
