import json
from typing import List, Optional

from constants import Doctypes
from erp.codec import is_metadata, is_tag_block, split_list
from erp.errors import ValidationError
from models.erp import ErpComment, ErpTask, parse_doc, parse_docs
from models.task import TaskComment, TaskCommentCreate, TeamTaskCreate, TeamTaskModel, TeamTaskUpdate
from sync.base import DocumentSync, ReadResult, WriteOutcome, is_local_id, require_gateway

TASK_FIELDS = ["name", "subject", "description", "status", "priority", "exp_end_date", "_assign", "project"]

# Updates are partial: only fields the caller sent are written
UPDATE_FIELD_MAP = {
    "title": "subject",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "dueDate": "exp_end_date",
}


def is_team_task(row: dict) -> bool:
    """Content items and deliverables live in Task too; keep them off the team board."""
    description = row.get("description")
    return not is_metadata(description) and not is_tag_block(description)


class TeamTaskSync(DocumentSync):
    doctype = Doctypes.TASK
    entity = "Task"

    def decode(self, doc: dict) -> Optional[dict]:
        task = parse_doc(ErpTask, doc)
        if task is None:
            return None
        return TeamTaskModel(
            id=task.name,
            title=task.subject or "",
            description=task.description,
            status=task.status or "Open",
            priority=task.priority or "Medium",
            dueDate=task.exp_end_date,
            assignedTo=split_list(task.assign),
            project=task.project,
            pending_sync=bool(doc.get("pending_sync")),
        ).model_dump()

    async def list(self) -> ReadResult:
        return await self.listing(
            await self.repo.list(),
            keep=is_team_task,
            fields=TASK_FIELDS,
            order_by="creation desc",
            limit=50,
        )

    async def create(self, payload: TeamTaskCreate) -> WriteOutcome:
        fields = {
            "subject": payload.title,
            "description": payload.description or "",
            "status": payload.status,
            "priority": payload.priority,
            "exp_end_date": payload.dueDate,
        }
        if payload.project:
            fields["project"] = payload.project
        if payload.assignedTo:
            fields["_assign"] = json.dumps(payload.assignedTo)
        return await self.create_doc(fields)

    async def update(self, payload: TeamTaskUpdate) -> WriteOutcome:
        sent = payload.model_dump(exclude_unset=True)
        fields = {remote: sent[local] for local, remote in UPDATE_FIELD_MAP.items() if local in sent}
        if "assignedTo" in sent and sent["assignedTo"] is not None:
            fields["_assign"] = json.dumps(sent["assignedTo"])
        if not fields:
            raise ValidationError("Nothing to update")
        return await self.update_doc(payload.id, fields)

    # --- Comments (remote children, no local fallback) ---

    async def comments(self, task_id: str) -> List[dict]:
        if is_local_id(task_id):
            return []
        gateway = require_gateway(self.gateway)
        result = await gateway.list(
            Doctypes.COMMENT,
            filters=[["reference_name", "=", task_id], ["reference_doctype", "=", Doctypes.TASK]],
            fields=["name", "content", "owner", "comment_email", "creation"],
            order_by="creation desc",
        )
        return [
            TaskComment(
                id=c.name,
                content=c.content or "",
                author=c.comment_email or c.owner or "",
                createdAt=c.creation,
            ).model_dump()
            for c in parse_docs(ErpComment, result.unwrap())
        ]

    async def add_comment(self, task_id: str, payload: TaskCommentCreate, author: str) -> dict:
        if is_local_id(task_id):
            raise ValidationError("Sync the task to ERPNext before commenting on it")
        gateway = require_gateway(self.gateway)
        result = await gateway.create(Doctypes.COMMENT, {
            "comment_type": "Comment",
            "reference_doctype": Doctypes.TASK,
            "reference_name": task_id,
            "content": payload.content,
            "comment_email": author,
        })
        doc = result.unwrap()
        return TaskComment(
            id=doc["name"],
            content=doc.get("content") or payload.content,
            author=doc.get("comment_email") or author,
            createdAt=doc.get("creation"),
        ).model_dump()
