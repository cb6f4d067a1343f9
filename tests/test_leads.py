import re

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

FORM = {
    "nombre": "María Gómez",
    "email": "maria@colegiosanjose.edu.ar",
    "whatsapp": "+54 9 11 5555 1234",
    "institucion": "Colegio San José",
    "tipoInstitucion": "Colegio",
    "instagram": "@colegiosj",
    "necesidad": "Gestión de redes",
}


async def test_contact_form_creates_lead_with_note(async_client: AsyncClient, fake_erp, relay, webhooks):
    resp = await async_client.post("/api/create-lead", json=FORM)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["existing"] is False
    assert body["pending_sync"] is False
    assert body["lead"].startswith("CRM-LEAD-")

    lead = fake_erp.doc("Lead", body["lead"])
    assert lead["lead_name"] == "María Gómez"
    assert lead["email_id"] == FORM["email"]
    assert lead["status"] == "Lead"
    note = fake_erp.all("Comment")[0]
    assert note["reference_doctype"] == "Lead"
    assert note["reference_name"] == body["lead"]
    assert "Necesidad: Gestión de redes" in note["content"]

    await relay.drain()
    assert webhooks.events() == ["lead.created"]
    assert "María Gómez" in webhooks.telegram()[0]["text"]


async def test_repeat_submission_reuses_the_lead(async_client: AsyncClient, fake_erp):
    first = (await async_client.post("/api/create-lead", json=FORM)).json()
    second = (await async_client.post("/api/create-lead", json={**FORM, "necesidad": "Sitio web"})).json()

    assert second["existing"] is True
    assert second["lead"] == first["lead"]
    assert len(fake_erp.all("Lead")) == 1
    assert len(fake_erp.all("Comment")) == 2


async def test_contact_form_offline_then_sync(async_client: AsyncClient, auth_headers: dict, fake_erp, store):
    fake_erp.down = True
    first = (await async_client.post("/api/create-lead", json=FORM)).json()
    assert re.fullmatch(r"LOCAL-\d+", first["lead"])
    assert first["pending_sync"] is True

    again = (await async_client.post("/api/create-lead", json=FORM)).json()
    assert again["existing"] is True
    assert again["lead"] == first["lead"]
    assert len((await store.leads.get(first["lead"]))["notes"]) == 2

    fake_erp.down = False
    synced = await async_client.post(f"/api/leads/{first['lead']}/sync", headers=auth_headers)
    assert synced.status_code == 200
    name = synced.json()["lead"]["name"]
    assert name.startswith("CRM-LEAD-")
    assert [c["reference_name"] for c in fake_erp.all("Comment")] == [name, name]
    assert await store.leads.list() == []


async def test_contact_form_validates_email(async_client: AsyncClient):
    resp = await async_client.post("/api/create-lead", json={**FORM, "email": "not-an-email"})
    assert resp.status_code == 422


async def test_list_leads_with_statuses(async_client: AsyncClient, auth_headers: dict, fake_erp):
    fake_erp.seed("Lead", {"lead_name": "Ana", "status": "Open"})
    fake_erp.seed("Lead", {"lead_name": "Beto", "status": "Converted"})

    resp = await async_client.get("/api/leads", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["source"] == "erpnext"
    assert {l["lead_name"]: l["status"] for l in body["leads"]} == {"Ana": "Open", "Beto": "Lead"}
    assert [s["id"] for s in body["statuses"]][0] == "Lead"


async def test_update_status(async_client: AsyncClient, auth_headers: dict, fake_erp, relay, webhooks):
    lead = fake_erp.seed("Lead", {"lead_name": "Ana", "status": "Lead"})

    resp = await async_client.put("/api/leads", json={"name": lead["name"], "status": "Opportunity"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["lead"]["status"] == "Opportunity"
    assert fake_erp.doc("Lead", lead["name"])["status"] == "Opportunity"

    await relay.drain()
    assert webhooks.events() == ["lead.updated"]


async def test_move_lead_across_pipeline(async_client: AsyncClient, auth_headers: dict, fake_erp, relay, webhooks):
    lead = fake_erp.seed("Lead", {"lead_name": "Ana", "status": "Lead"})

    resp = await async_client.put(
        f"/api/leads/{lead['name']}/position",
        json={"pipelineId": "prospectos", "columnId": "contactado", "status": "Replied"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["position"]["columnId"] == "contactado"
    assert fake_erp.doc("Lead", lead["name"])["status"] == "Replied"

    listed = (await async_client.get("/api/leads", headers=auth_headers)).json()["leads"][0]
    assert listed["pipelineId"] == "prospectos"
    assert listed["columnId"] == "contactado"

    await relay.drain()
    moved = [r["json"] for r in webhooks.requests if r["json"].get("event") == "lead.stage_changed"][0]
    assert moved["data"]["from"] is None
    assert moved["data"]["to"] == {"pipelineId": "prospectos", "columnId": "contactado"}


async def test_move_to_unknown_column_is_400(async_client: AsyncClient, auth_headers: dict, fake_erp):
    lead = fake_erp.seed("Lead", {"lead_name": "Ana"})
    resp = await async_client.put(
        f"/api/leads/{lead['name']}/position",
        json={"pipelineId": "prospectos", "columnId": "nowhere"},
        headers=auth_headers,
    )
    assert resp.status_code == 400


async def test_lead_detail_and_notes(async_client: AsyncClient, auth_headers: dict, fake_erp):
    lead = fake_erp.seed("Lead", {"lead_name": "Ana", "status": "Open"})
    fake_erp.seed("Communication", {
        "reference_name": lead["name"],
        "subject": "Llamada",
        "content": "Interesada en el plan anual",
        "communication_date": "2025-02-01",
        "sender": "sales@lumen.test",
    })

    resp = await async_client.post(f"/api/leads/{lead['name']}/notes", json={"note": "Enviar propuesta"}, headers=auth_headers)
    assert resp.status_code == 200
    created = fake_erp.all("Communication")[-1]
    assert created["content"] == "Enviar propuesta"
    assert created["sender"] == "admin"
    assert created["reference_doctype"] == "Lead"

    detail = (await async_client.get(f"/api/leads/{lead['name']}", headers=auth_headers)).json()
    assert detail["lead"]["lead_name"] == "Ana"
    assert {t["subject"] for t in detail["timeline"]} == {"Llamada", "Nota Interna"}


async def test_notes_on_local_lead_are_rejected(async_client: AsyncClient, auth_headers: dict, fake_erp):
    fake_erp.down = True
    local = (await async_client.post("/api/create-lead", json=FORM)).json()["lead"]

    resp = await async_client.post(f"/api/leads/{local}/notes", json={"note": "x"}, headers=auth_headers)
    assert resp.status_code == 400


async def test_pipelines(async_client: AsyncClient, auth_headers: dict):
    resp = await async_client.get("/api/leads/pipelines", headers=auth_headers)
    assert resp.status_code == 200
    assert [p["id"] for p in resp.json()["pipelines"]] == ["prospectos", "clientes-activos", "en-pausa"]
