import json

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

TOKEN = "acm-portal-1a2b3c4d5e6f"


@pytest.fixture
def portal_data(fake_erp):
    fake_erp.seed("Customer", {"name": "Acme", "customer_name": "Acme", "industry": "Retail"})
    fake_erp.seed("Comment", {
        "reference_doctype": "Customer",
        "reference_name": "Acme",
        "comment_type": "Comment",
        "content": f"Instagram: acme\nRubro: Retail\nTeléfono: +54 11\nPortal Token: {TOKEN}",
    })
    deliverable = fake_erp.seed("Task", {
        "subject": "Logo",
        "customer": "Acme",
        "status": "Open",
        "description": json.dumps({"url": "https://cdn/logo.png", "clientName": "Acme", "app_status": "pending"}),
    })
    fake_erp.seed("Task", {"subject": "Launch reel", "customer": "Acme", "status": "Open", "description": "[TYPE: reel]\n[PLATFORMS: instagram]"})
    fake_erp.seed("Customer", {"name": "Globex", "customer_name": "Globex"})
    other = fake_erp.seed("Task", {
        "subject": "Globex banner",
        "customer": "Globex",
        "status": "Open",
        "description": json.dumps({"url": "https://cdn/banner.png"}),
    })
    return {"deliverable": deliverable["name"], "other": other["name"]}


async def test_portal_home_shows_only_the_clients_work(async_client: AsyncClient, portal_data):
    resp = await async_client.get(f"/api/portal/{TOKEN}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["client"] == {"name": "Acme", "erpId": "Acme", "instagram": "acme", "industry": "Retail"}
    assert [d["title"] for d in body["deliverables"]] == ["Logo"]
    assert [c["concept"] for c in body["content"]] == ["Launch reel"]
    assert body["source"] == "erpnext"


async def test_unknown_token_is_404(async_client: AsyncClient, portal_data):
    resp = await async_client.get("/api/portal/not-a-token")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Portal link not found"


async def test_portal_review_is_authored_by_the_client(async_client: AsyncClient, portal_data, fake_erp, relay, webhooks):
    resp = await async_client.put(
        f"/api/portal/{TOKEN}/deliverables/{portal_data['deliverable']}",
        json={"status": "changes_requested", "feedback": {"comment": "Make it bigger", "author": "team"}},
    )
    assert resp.status_code == 200
    deliverable = resp.json()["deliverable"]
    assert deliverable["status"] == "changes_requested"

    entry = json.loads(fake_erp.doc("Task", portal_data["deliverable"])["description"])["feedback"][0]
    assert entry["author"] == "client"
    assert entry["authorName"] == "Acme"
    assert entry["comment"] == "Make it bigger"

    await relay.drain()
    assert webhooks.events() == ["deliverable.changes_requested"]


async def test_portal_cannot_review_another_clients_deliverable(async_client: AsyncClient, portal_data, fake_erp):
    before = fake_erp.doc("Task", portal_data["other"])["description"]
    resp = await async_client.put(
        f"/api/portal/{TOKEN}/deliverables/{portal_data['other']}",
        json={"status": "approved"},
    )
    assert resp.status_code == 404
    assert fake_erp.doc("Task", portal_data["other"])["description"] == before


async def test_portal_with_erp_down_is_502(async_client: AsyncClient, portal_data, fake_erp):
    fake_erp.down = True
    resp = await async_client.get(f"/api/portal/{TOKEN}")
    assert resp.status_code == 502
    assert resp.json()["source"] == "erpnext-error"
