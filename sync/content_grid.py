from typing import Optional

from constants import Doctypes
from erp.codec import decode_tags, encode_tags, is_metadata
from erp.status import content_from_remote, content_to_remote
from models.content import ContentGridItemCreate, ContentGridItemModel, ContentGridItemUpdate
from models.erp import ErpTask, parse_doc
from sync.base import DocumentSync, PENDING_CREATE, ReadResult, WriteOutcome

TASK_FIELDS = ["name", "subject", "description", "status", "exp_end_date", "priority", "customer"]


class ContentGridSync(DocumentSync):
    """Content grid items stored as ERPNext Tasks with a tag-block description."""

    doctype = Doctypes.TASK
    entity = "Content item"

    @staticmethod
    def to_remote(item: dict) -> dict:
        fields = {
            "subject": item["concept"],
            "description": encode_tags(item),
            "status": content_to_remote(item.get("status")),
            "exp_end_date": item.get("date"),
        }
        if item.get("clientId"):
            fields["customer"] = item["clientId"]
        return fields

    def decode(self, doc: dict) -> Optional[dict]:
        task = parse_doc(ErpTask, doc)
        if task is None:
            return None
        return ContentGridItemModel(
            id=task.name,
            clientId=task.customer or "",
            date=task.exp_end_date,
            status=content_from_remote(task.status),
            concept=task.subject or "",
            pending_sync=bool(doc.get("pending_sync")),
            **decode_tags(task.description),
        ).model_dump()

    async def list_for_client(self, client_id: str) -> ReadResult:
        local_docs = [
            d for d in await self.repo.list()
            if d.get("pending_kind") != PENDING_CREATE or d.get("customer") == client_id
        ]
        return await self.listing(
            local_docs,
            # Deliverables share the Task doctype; they carry JSON metadata instead of tags
            keep=lambda row: not is_metadata(row.get("description")),
            filters=[["customer", "=", client_id]],
            fields=TASK_FIELDS,
            limit=100,
        )

    async def create(self, payload: ContentGridItemCreate) -> WriteOutcome:
        fields = self.to_remote(payload.model_dump())
        fields["priority"] = "Medium"
        return await self.create_doc(fields)

    async def update(self, item_id: str, payload: ContentGridItemUpdate) -> WriteOutcome:
        return await self.update_doc(item_id, self.to_remote(payload.model_dump()))

    async def delete(self, item_id: str) -> dict:
        return await self.delete_doc(item_id)

    async def sync(self, item_id: str) -> WriteOutcome:
        return await self.sync_doc(item_id)
