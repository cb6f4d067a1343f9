import asyncio
from datetime import date, datetime, timezone
from typing import Optional

from constants import DEFAULT_PIPELINES, Doctypes, WebhookEvents
from erp.errors import ValidationError
from logging_config import get_logger
from models.erp import ErpCommunication, ErpLead, parse_doc, parse_docs
from models.lead import InboundLead, LeadModel, LeadPositionUpdate, TimelineEntry
from sync.base import (
    DocumentSync,
    PENDING_CREATE,
    ReadResult,
    WriteOutcome,
    is_local_id,
    require_gateway,
)
from utils.email import send_lead_confirmation_email, send_team_lead_notification_email
from automations.notify import lead_received_message

logger = get_logger("sync.leads")

LEAD_FIELDS = ["name", "lead_name", "title", "mobile_no", "email_id", "status", "creation"]


def find_column(pipeline_id: str, column_id: str) -> Optional[dict]:
    pipeline = next((p for p in DEFAULT_PIPELINES if p["id"] == pipeline_id), None)
    if pipeline is None:
        return None
    return next((c for c in pipeline["columns"] if c["id"] == column_id), None)


def inbound_note(lead: InboundLead) -> str:
    return (
        f"Institución: {lead.institucion or 'No especificado'} ({lead.tipoInstitucion or 'No especificado'})\n"
        f"Instagram: {lead.instagram or 'No especificado'}\n"
        f"Necesidad: {lead.necesidad or 'No especificado'}"
    )


class LeadSync(DocumentSync):
    doctype = Doctypes.LEAD
    entity = "Lead"

    def __init__(self, gateway, repo, positions, relay=None):
        super().__init__(gateway, repo)
        self.positions = positions
        self.relay = relay

    def decode(self, doc: dict) -> Optional[dict]:
        lead = parse_doc(ErpLead, doc)
        if lead is None:
            return None
        return LeadModel(
            name=lead.name,
            lead_name=lead.lead_name or "",
            title=lead.title,
            mobile_no=lead.mobile_no,
            email_id=lead.email_id,
            status=lead.status,
            creation=lead.creation,
            pending_sync=bool(doc.get("pending_sync")),
        ).model_dump()

    async def _with_positions(self, leads):
        positions = {p["name"]: p for p in await self.positions.list()}
        for lead in leads:
            position = positions.get(lead["name"])
            if position:
                lead["pipelineId"] = position["pipelineId"]
                lead["columnId"] = position["columnId"]
        return leads

    async def list(self) -> ReadResult:
        result = await self.listing(
            await self.repo.list(),
            fields=LEAD_FIELDS,
            order_by="creation desc",
            limit=50,
        )
        result.items = await self._with_positions(result.items)
        return result

    async def detail(self, name: str) -> dict:
        doc = await self.fetch(name)
        lead = (await self._with_positions([self.decode(doc)]))[0]
        timeline = []
        if not is_local_id(name):
            result = await self.gateway.list(
                Doctypes.COMMUNICATION,
                filters=[["reference_name", "=", name]],
                fields=["name", "subject", "content", "communication_date", "sender"],
                order_by="communication_date desc",
            )
            if result.ok:
                timeline = [
                    TimelineEntry(**c.model_dump(include={"name", "subject", "content", "communication_date", "sender"})).model_dump()
                    for c in parse_docs(ErpCommunication, result.data)
                ]
            else:
                logger.warning(f"Timeline unavailable for lead {name}", extra={"data": {"error": result.error.message}})
        return {"lead": lead, "timeline": timeline}

    async def update_status(self, name: str, status: str) -> WriteOutcome:
        outcome = await self.update_doc(name, {"status": status})
        if self.relay is not None:
            self.relay.notify(WebhookEvents.LEAD_UPDATED, {"name": name, "status": status})
        return outcome

    async def add_note(self, name: str, note: str, sender: str) -> dict:
        if is_local_id(name):
            raise ValidationError("Sync the lead to ERPNext before adding notes")
        gateway = require_gateway(self.gateway)
        result = await gateway.create(Doctypes.COMMUNICATION, {
            "subject": "Nota Interna",
            "content": note,
            "communication_date": date.today().isoformat(),
            "communication_type": "Comment",
            "reference_doctype": Doctypes.LEAD,
            "reference_name": name,
            "status": "Open",
            "sent_or_received": "Sent",
            "sender": sender,
        })
        return result.unwrap()

    async def move(self, name: str, payload: LeadPositionUpdate) -> dict:
        if find_column(payload.pipelineId, payload.columnId) is None:
            raise ValidationError(f"Unknown pipeline column {payload.pipelineId}/{payload.columnId}")
        previous = await self.positions.get(name)
        position = {
            "name": name,
            "pipelineId": payload.pipelineId,
            "columnId": payload.columnId,
            "updatedAt": datetime.now(timezone.utc).isoformat(),
        }
        await self.positions.put(name, position)

        outcome = None
        if payload.status:
            outcome = await self.update_doc(name, {"status": payload.status})

        if self.relay is not None:
            self.relay.notify(WebhookEvents.LEAD_STAGE_CHANGED, {
                "name": name,
                "from": {k: previous[k] for k in ("pipelineId", "columnId")} if previous else None,
                "to": {"pipelineId": payload.pipelineId, "columnId": payload.columnId},
                "status": payload.status,
            })
        return {
            "success": True,
            "position": position,
            "pending_sync": bool(outcome and outcome.pending_sync),
        }

    # --- Website contact form ---

    async def _find_by_email(self, email: str) -> Optional[str]:
        for doc in await self.repo.list(email_id=email):
            if doc.get("pending_kind") == PENDING_CREATE:
                return doc["name"]
        if self.gateway is None:
            return None
        result = await self.gateway.list(
            Doctypes.LEAD,
            filters=[["email_id", "=", email]],
            fields=["name"],
            limit=1,
        )
        if not result.ok:
            # Duplicate check is advisory; creation is still attempted
            logger.warning("Lead duplicate check failed", extra={"data": {"error": result.error.message}})
            return None
        return result.data[0].get("name") if result.data else None

    async def _attach_note(self, name: str, content: str) -> bool:
        result = await self.gateway.create(Doctypes.COMMENT, {
            "reference_doctype": Doctypes.LEAD,
            "reference_name": name,
            "content": content,
            "comment_type": "Comment",
        })
        if not result.ok:
            logger.warning(f"Could not attach note to lead {name}", extra={"data": {"error": result.error.message}})
        return result.ok

    async def create_inbound(self, payload: InboundLead) -> dict:
        email = str(payload.email)
        note = inbound_note(payload)
        existing = await self._find_by_email(email)

        pending_sync = False
        if existing:
            name = existing
            logger.info(f"Lead already exists: {name}, adding a new note")
        else:
            outcome = await self.create_doc({
                "lead_name": payload.nombre,
                "email_id": email,
                "mobile_no": payload.whatsapp,
                "status": "Lead",
                "title": payload.institucion,
            })
            name = outcome.record["name"]
            pending_sync = outcome.pending_sync

        if is_local_id(name):
            doc = await self.repo.get(name)
            doc["notes"] = list(doc.get("notes") or []) + [note]
            await self.repo.put(name, doc)
            pending_sync = True
        else:
            await self._attach_note(name, note)

        if self.relay is not None:
            form = payload.model_dump(mode="json")
            self.relay.notify_telegram(lead_received_message(form, name), event=WebhookEvents.LEAD_CREATED)
            self.relay.notify(WebhookEvents.LEAD_CREATED, {"name": name, "existing": bool(existing), **form})
            self.relay.notify_email(send_lead_confirmation_email, event="lead.confirmation", to_email=email, nombre=payload.nombre)
            self.relay.notify_email(send_team_lead_notification_email, event="lead.team_notification", lead=form, lead_id=name)

        return {"success": True, "lead": name, "existing": bool(existing), "pending_sync": pending_sync}

    async def sync(self, name: str) -> WriteOutcome:
        doc = await self.repo.get(name)
        notes = list((doc or {}).get("notes") or [])
        if doc is not None and notes:
            # notes are pushed after the lead exists remotely
            doc.pop("notes")
            await self.repo.put(name, doc)
        outcome = await self.sync_doc(name)
        if notes and not outcome.pending_sync:
            new_name = outcome.record["name"]
            results = await asyncio.gather(*(self._attach_note(new_name, n) for n in notes))
            logger.info(f"Pushed {sum(results)}/{len(notes)} notes for lead {new_name}")
        elif notes:
            doc["notes"] = notes
            await self.repo.put(name, doc)
        return outcome
