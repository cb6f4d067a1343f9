"""
Clients: ERPNext Customers plus an extras note.

Instagram, industry, phone and the portal token do not fit the Customer
doctype, so they are written as a `Label: value` Comment on the customer and
read back from the most recent one. Locally the encoded note rides along in
the pending doc under `note` and is pushed after the Customer itself.
"""

import asyncio
import hashlib
import hmac
import re
import secrets
from datetime import datetime, timezone
from typing import Optional

from config import config
from constants import Doctypes, WebhookEvents
from erp.codec import decode_client_note, encode_client_note
from erp.errors import NotFoundError
from logging_config import get_logger
from models.client import ClientCreate, ClientModel, ClientUpdate
from models.erp import ErpCustomer, parse_doc
from automations.notify import client_created_message
from sync.base import (
    DocumentSync,
    PENDING_CREATE,
    PENDING_UPDATE,
    ReadResult,
    WriteOutcome,
    is_local_id,
    local_id,
    log_fallback,
    merge_pending,
    pending_doc,
    remote_fields,
    require_gateway,
)

logger = get_logger("sync.clients")

CUSTOMER_FIELDS = ["name", "customer_name", "customer_type", "industry", "mobile_no", "creation"]

NEW_CUSTOMER_DEFAULTS = {
    "customer_type": "Company",
    "customer_group": "All Customer Groups",
    "territory": "All Territories",
}


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", name.lower())[:20]


def new_portal_token(name: str) -> str:
    prefix = re.sub(r"[^a-z]", "x", name.lower()[:3])
    return f"{prefix}-portal-{secrets.token_hex(6)}"


def derived_token(erp_id: str, secret_key: Optional[str] = None) -> str:
    """Stable token for customers that never got a token note."""
    key = (secret_key or config.SECRET_KEY).encode()
    digest = hmac.new(key, erp_id.encode(), hashlib.sha256).hexdigest()
    return f"erp-{digest[:16]}"


class ClientSync(DocumentSync):
    doctype = Doctypes.CUSTOMER
    entity = "Client"

    def __init__(self, gateway, repo, relay=None, secret_key: Optional[str] = None):
        super().__init__(gateway, repo)
        self.relay = relay
        self.secret_key = secret_key

    def decode(self, doc: dict) -> Optional[dict]:
        customer = parse_doc(ErpCustomer, doc)
        if customer is None:
            return None
        extras = decode_client_note(doc.get("note"))
        name = customer.customer_name or customer.name
        return ClientModel(
            id=slugify(name),
            name=name,
            erpId=customer.name,
            token=extras["token"] or derived_token(customer.name, self.secret_key),
            instagram=extras["instagram"],
            industry=customer.industry or extras["industry"],
            contactPhone=extras["contactPhone"] or customer.mobile_no,
            createdAt=customer.creation,
            pending_sync=bool(doc.get("pending_sync")),
        ).model_dump()

    # --- Extras note ---

    async def _latest_note(self, erp_id: str):
        return await self.gateway.list(
            Doctypes.COMMENT,
            filters=[
                ["reference_doctype", "=", Doctypes.CUSTOMER],
                ["reference_name", "=", erp_id],
                ["comment_type", "=", "Comment"],
            ],
            fields=["content"],
            order_by="creation desc",
            limit=1,
        )

    async def _note_text(self, erp_id: str) -> Optional[str]:
        result = await self._latest_note(erp_id)
        if not result.ok:
            logger.warning(f"Notes unavailable for customer {erp_id}", extra={"data": {"error": result.error.message}})
            return None
        row = result.data[0] if result.data else None
        return row.get("content") if isinstance(row, dict) else None

    async def _post_note(self, erp_id: str, note: str):
        result = await self.gateway.create(Doctypes.COMMENT, {
            "reference_doctype": Doctypes.CUSTOMER,
            "reference_name": erp_id,
            "content": note,
            "comment_type": "Comment",
        })
        if not result.ok:
            logger.warning(f"Could not write note for customer {erp_id}", extra={"data": {"error": result.error.message}})
        return result

    async def _keep_note(self, erp_id: str, note: str):
        await self.repo.put(erp_id, pending_doc(erp_id, {"note": note}, PENDING_UPDATE))

    # --- Reads ---

    async def list(self) -> ReadResult:
        local_docs = await self.repo.list()
        creates = [d for d in local_docs if d.get("pending_kind") == PENDING_CREATE]
        if self.gateway is None:
            return ReadResult.local_only(self.decode_all(merge_pending([], creates)))

        result = await self.gateway.list(
            Doctypes.CUSTOMER,
            fields=CUSTOMER_FIELDS,
            order_by="creation desc",
            limit=100,
        )
        if not result.ok:
            return ReadResult.failed(self.decode_all(merge_pending([], creates)), result.error)

        rows = [r for r in result.data if isinstance(r, dict) and r.get("name")]
        notes = await asyncio.gather(*(self._note_text(r["name"]) for r in rows))
        rows = [{**row, "note": note} for row, note in zip(rows, notes)]
        return ReadResult.remote(self.decode_all(merge_pending(rows, local_docs)))

    async def get(self, erp_id: str) -> dict:
        doc = await self.fetch(erp_id)
        if not is_local_id(erp_id) and not doc.get("note"):
            doc["note"] = await self._note_text(erp_id)
        return self.decode(doc)

    async def find_by_token(self, token: str) -> dict:
        result = await self.list()
        client = next((c for c in result.items if c["token"] == token), None)
        if client is not None:
            return client
        if result.error is not None:
            raise result.error
        raise NotFoundError("Portal link not found")

    # --- Writes ---

    async def create(self, payload: ClientCreate) -> WriteOutcome:
        token = new_portal_token(payload.name)
        note = encode_client_note({
            "instagram": payload.instagram,
            "industry": payload.industry,
            "contactPhone": payload.contactPhone,
            "token": token,
        })
        fields = {"customer_name": payload.name, **NEW_CUSTOMER_DEFAULTS}

        error = None
        if self.gateway is not None:
            result = await self.gateway.create(Doctypes.CUSTOMER, fields)
            if result.ok:
                erp_id = result.data["name"]
                pending = not (await self._post_note(erp_id, note)).ok
                if pending:
                    await self._keep_note(erp_id, note)
                outcome = WriteOutcome(self.decode({**fields, **result.data, "note": note, "pending_sync": pending}), pending)
                self._announce_created(outcome.record)
                return outcome
            error = result.error

        doc = pending_doc(local_id(), {
            **fields,
            "note": note,
            "creation": datetime.now(timezone.utc).isoformat(),
        }, PENDING_CREATE)
        await self.repo.put(doc["name"], doc)
        log_fallback(self.entity, "create", doc["name"], error)
        outcome = WriteOutcome(self.decode(doc), True, error)
        self._announce_created(outcome.record)
        return outcome

    async def update(self, payload: ClientUpdate) -> WriteOutcome:
        erp_id = payload.erpId
        fields = {"industry": payload.industry, "mobile_no": payload.contactPhone}
        if payload.name:
            fields["customer_name"] = payload.name

        current = await self._current_token(erp_id)
        note = encode_client_note({
            "instagram": payload.instagram,
            "industry": payload.industry,
            "contactPhone": payload.contactPhone,
            "token": current,
        })

        if is_local_id(erp_id):
            outcome = await self.update_doc(erp_id, {**fields, "note": note})
        else:
            outcome = await self._update_remote(erp_id, fields, note)

        if self.relay is not None:
            self.relay.notify(WebhookEvents.CLIENT_UPDATED, outcome.record)
        return outcome

    async def _current_token(self, erp_id: str) -> str:
        pending = await self.repo.get(erp_id)
        if pending is None and is_local_id(erp_id):
            raise NotFoundError(f"Client {erp_id} not found")
        note = (pending or {}).get("note")
        if note is None and not is_local_id(erp_id) and self.gateway is not None:
            note = await self._note_text(erp_id)
        return decode_client_note(note)["token"] or derived_token(erp_id, self.secret_key)

    async def _update_remote(self, erp_id: str, fields: dict, note: str) -> WriteOutcome:
        error = None
        if self.gateway is not None:
            result = await self.gateway.update(Doctypes.CUSTOMER, erp_id, fields)
            if result.not_found:
                raise result.error
            if result.ok:
                base = {**fields, **(result.data or {}), "name": erp_id, "note": note}
                if (await self._post_note(erp_id, note)).ok:
                    await self.repo.delete(erp_id)
                    return WriteOutcome(self.decode(base))
                await self._keep_note(erp_id, note)
                return WriteOutcome(self.decode({**base, "pending_sync": True}), True)
            error = result.error

        doc = pending_doc(erp_id, {**fields, "note": note}, PENDING_UPDATE)
        await self.repo.put(erp_id, doc)
        log_fallback(self.entity, "update", erp_id, error)
        return WriteOutcome(self.decode(doc), True, error)

    async def delete(self, erp_id: str) -> dict:
        body = await self.delete_doc(erp_id)
        if self.relay is not None:
            self.relay.notify(WebhookEvents.CLIENT_DELETED, {"erpId": erp_id, "remote_deleted": body["remote_deleted"]})
        return body

    async def sync(self, erp_id: str) -> WriteOutcome:
        """Push a pending client: the Customer first, then its extras note."""
        doc = await self.repo.get(erp_id)
        if doc is None:
            raise NotFoundError(f"No pending changes for {self.entity} {erp_id}")
        gateway = require_gateway(self.gateway)
        fields = remote_fields(doc)
        note = fields.pop("note", None)

        if doc.get("pending_kind") == PENDING_CREATE:
            result = await gateway.create(Doctypes.CUSTOMER, fields)
            if not result.ok:
                return WriteOutcome(self.decode(doc), True, result.error)
            await self.repo.delete(erp_id)
            name = result.data["name"]
            logger.info(f"Client {erp_id} linked to ERPNext", extra={"data": {"erp_name": name}})
            base = {**fields, **result.data, "note": note}
        else:
            name = erp_id
            base = {**fields, "name": name, "note": note}
            if fields:
                result = await gateway.update(Doctypes.CUSTOMER, name, fields)
                if result.not_found:
                    await self.repo.delete(name)
                    raise result.error
                if not result.ok:
                    return WriteOutcome(self.decode(doc), True, result.error)
                base.update(result.data or {})

        if note and not (await self._post_note(name, note)).ok:
            await self._keep_note(name, note)
            return WriteOutcome(self.decode({**base, "pending_sync": True}), True)
        await self.repo.delete(name)
        return WriteOutcome(self.decode(base))

    def _announce_created(self, client: dict):
        if self.relay is None:
            return
        self.relay.notify(WebhookEvents.CLIENT_CREATED, client)
        self.relay.notify_telegram(client_created_message(client), event=WebhookEvents.CLIENT_CREATED)


def portal_link(client: dict) -> str:
    return f"/portal/{client['token']}"
