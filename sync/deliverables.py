"""
Deliverables: ERPNext Tasks whose description is a JSON metadata object.

The client-facing status (pending / approved / changes_requested) lives in
`metadata.app_status`. The Task status is only Completed (approved) or Open.
Feedback and versions are append-only lists inside the metadata.
"""

from typing import Any, Callable, Dict, List, Optional

from constants import Doctypes, WebhookEvents
from erp.codec import decode_metadata, encode_metadata, is_metadata
from erp.status import deliverable_to_remote, resolve_deliverable_status
from logging_config import get_logger
from models.deliverable import (
    DeliverableCreate,
    DeliverableModel,
    DeliverableReview,
    DeliverableVersion,
    DeliverableVersionCreate,
    FeedbackEntry,
    utc_now_iso,
)
from models.erp import ErpTask, parse_doc
from sync.base import DocumentSync, PENDING_CREATE, ReadResult, WriteOutcome
from utils.email import send_deliverable_status_email

logger = get_logger("sync.deliverables")

TASK_FIELDS = ["name", "subject", "description", "status", "creation", "customer"]

STATUS_EVENTS = {
    "approved": WebhookEvents.DELIVERABLE_APPROVED,
    "changes_requested": WebhookEvents.DELIVERABLE_CHANGES_REQUESTED,
}


def metadata_of(description: Optional[str]) -> Dict[str, Any]:
    """Metadata for a rewrite. Plain-text descriptions are kept as the url."""
    metadata = decode_metadata(description)
    metadata.setdefault("feedback", [])
    return metadata


# Metadata can be edited by hand in ERPNext; every value is checked before use.

def text_or_none(value) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def int_or_default(value, default: Optional[int]) -> Optional[int]:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return default


def dict_entries(value) -> List[dict]:
    return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []


def text_list(value) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [v for v in value if isinstance(v, str)]


def appendable(metadata: Dict[str, Any], key: str) -> list:
    """
    The stored list under `key`, copied so new entries can be appended.
    A non-list value is moved aside to `<key>Legacy` untouched.
    """
    value = metadata.get(key)
    if isinstance(value, list):
        return list(value)
    if value is not None:
        logger.warning(f"Deliverable {key} is not a list, keeping it under {key}Legacy")
        metadata.setdefault(f"{key}Legacy", value)
    return []


class DeliverableSync(DocumentSync):
    doctype = Doctypes.TASK
    entity = "Deliverable"

    def __init__(self, gateway, repo, relay=None):
        super().__init__(gateway, repo)
        self.relay = relay

    def decode(self, doc: dict) -> Optional[dict]:
        task = parse_doc(ErpTask, doc)
        if task is None:
            return None
        metadata = decode_metadata(task.description)
        return DeliverableModel(
            id=task.name,
            title=task.subject or "",
            clientId=task.customer or text_or_none(metadata.get("clientId")),
            clientName=text_or_none(metadata.get("clientName")) or "Cliente",
            type=text_or_none(metadata.get("type")) or "image",
            url=text_or_none(metadata.get("url")) or "",
            carouselUrls=text_list(metadata.get("carouselUrls")),
            status=resolve_deliverable_status(metadata, task.status),
            createdAt=task.creation,
            feedback=dict_entries(metadata.get("feedback")),
            description=text_or_none(metadata.get("userDescription")),
            currentVersion=int_or_default(metadata.get("currentVersion"), 1),
            versions=dict_entries(metadata.get("versions")),
            deadline=text_or_none(metadata.get("deadline")),
            priority=text_or_none(metadata.get("priority")),
            assignedTo=text_or_none(metadata.get("assignedTo")),
            approvedAt=text_or_none(metadata.get("approvedAt")),
            approvedVersion=int_or_default(metadata.get("approvedVersion"), None),
            pending_sync=bool(doc.get("pending_sync")),
        ).model_dump()

    # --- Reads ---

    async def list(self, client_id: Optional[str] = None) -> ReadResult:
        filters = [["status", "!=", "Cancelled"]]
        local_docs = await self.repo.list()
        if client_id:
            filters.insert(0, ["customer", "=", client_id])
            local_docs = [
                d for d in local_docs
                if d.get("pending_kind") != PENDING_CREATE or d.get("customer") == client_id
            ]
        result = await self.listing(
            local_docs,
            # Content grid items share the Task doctype; only JSON metadata marks a deliverable
            keep=lambda row: is_metadata(row.get("description")),
            filters=filters,
            fields=TASK_FIELDS,
            order_by="creation desc",
        )
        if client_id:
            result.items = [d for d in result.items if d["clientId"] == client_id]
        return result

    async def get(self, deliverable_id: str) -> dict:
        return self.decode(await self.fetch(deliverable_id))

    # --- Writes ---

    async def create(self, payload: DeliverableCreate, created_by: Optional[str] = None) -> WriteOutcome:
        now = utc_now_iso()
        first_version = DeliverableVersion(
            version=1,
            url=payload.url,
            carouselUrls=payload.carouselUrls,
            createdAt=now,
            createdBy=created_by,
        )
        metadata = {
            "url": payload.url,
            "type": payload.type,
            "carouselUrls": payload.carouselUrls,
            "clientId": payload.clientId,
            "clientName": payload.clientName,
            "userDescription": payload.description,
            "feedback": [],
            "app_status": "pending",
            "currentVersion": 1,
            "versions": [first_version.model_dump(exclude_none=True)],
            "deadline": payload.deadline,
            "priority": payload.priority,
            "assignedTo": payload.assignedTo,
        }
        fields = {
            "subject": payload.title,
            "status": deliverable_to_remote("pending"),
            "priority": "Medium",
            "description": encode_metadata(metadata),
        }
        if payload.clientId:
            fields["customer"] = payload.clientId
        if payload.deadline:
            fields["exp_end_date"] = payload.deadline[:10]

        outcome = await self.create_doc(fields)
        if self.relay is not None:
            self.relay.notify(WebhookEvents.DELIVERABLE_CREATED, outcome.record)
        return outcome

    async def _rewrite(self, deliverable_id: str, change: Callable[[Dict[str, Any]], str]) -> WriteOutcome:
        """
        Read the current doc, let `change` edit its metadata in place and return
        the new app status, then write description + derived Task status.
        """
        doc = await self.fetch(deliverable_id)
        metadata = metadata_of(doc.get("description"))
        if not is_metadata(doc.get("description")):
            logger.info(
                "Deliverable description was not metadata, converting",
                extra={"data": {"id": deliverable_id}}
            )
        app_status = change(metadata)
        fields = {
            "description": encode_metadata(metadata),
            "status": deliverable_to_remote(app_status),
        }
        return await self.update_doc(deliverable_id, fields, base=doc)

    async def review(self, deliverable_id: str, payload: DeliverableReview, author_name: Optional[str] = None) -> WriteOutcome:
        def change(metadata):
            current_version = int_or_default(metadata.get("currentVersion"), 1)
            metadata["app_status"] = payload.status
            if payload.feedback is not None:
                entry = FeedbackEntry(
                    comment=payload.feedback.comment,
                    author=payload.feedback.author,
                    authorName=payload.feedback.authorName or author_name,
                    version=current_version,
                )
                metadata["feedback"] = appendable(metadata, "feedback") + [entry.model_dump(exclude_none=True)]
            if payload.status == "approved":
                metadata["approvedAt"] = utc_now_iso()
                metadata["approvedVersion"] = current_version
            return payload.status

        outcome = await self._rewrite(deliverable_id, change)
        self._announce_review(outcome.record, payload)
        return outcome

    async def add_version(self, deliverable_id: str, payload: DeliverableVersionCreate, created_by: Optional[str] = None) -> WriteOutcome:
        def change(metadata):
            versions = appendable(metadata, "versions")
            original_url = text_or_none(metadata.get("url"))
            if not versions and original_url:
                # Deliverables created before versioning: keep the original upload as v1
                versions.append({"version": 1, "url": original_url, "createdAt": text_or_none(metadata.get("createdAt")) or utc_now_iso()})
            known = [int_or_default(v.get("version"), 0) for v in versions if isinstance(v, dict)]
            next_version = max(known + [int_or_default(metadata.get("currentVersion"), 0)]) + 1
            version = DeliverableVersion(
                version=next_version,
                url=payload.url,
                carouselUrls=payload.carouselUrls,
                createdBy=created_by,
                notes=payload.notes,
            )
            metadata["versions"] = versions + [version.model_dump(exclude_none=True)]
            metadata["currentVersion"] = next_version
            metadata["url"] = payload.url
            if payload.carouselUrls is not None:
                metadata["carouselUrls"] = payload.carouselUrls
            metadata["app_status"] = "pending"
            return "pending"

        return await self._rewrite(deliverable_id, change)

    async def delete(self, deliverable_id: str) -> dict:
        return await self.delete_doc(deliverable_id)

    async def sync(self, deliverable_id: str) -> WriteOutcome:
        return await self.sync_doc(deliverable_id)

    def _announce_review(self, deliverable: dict, payload: DeliverableReview):
        event = STATUS_EVENTS.get(payload.status)
        if event is None or self.relay is None:
            return
        self.relay.notify(event, {
            "id": deliverable["id"],
            "title": deliverable["title"],
            "clientId": deliverable["clientId"],
            "clientName": deliverable["clientName"],
            "status": payload.status,
            "feedback": payload.feedback.comment if payload.feedback else None,
        })
        self.relay.notify_email(
            send_deliverable_status_email,
            event=event,
            client_name=deliverable["clientName"],
            title=deliverable["title"],
            status=payload.status,
            deliverable_id=deliverable["id"],
            feedback=payload.feedback.comment if payload.feedback else None,
        )
