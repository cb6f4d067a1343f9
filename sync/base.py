"""
Shared pieces of the reconciliation layer.

Local records are kept as pending remote documents: the exact field dict we
would send to ERPNext, keyed by `name`, plus `pending_sync`. Two kinds exist:
- `create`: the ERP never accepted the document, its name is `LOCAL-<ms>`
- `update`: the ERP has the document but our last change did not reach it
"""

import threading
import time
from typing import Any, Dict, Iterable, List, Optional

from constants import LOCAL_ID_PREFIX, PENDING_SYNC_MESSAGE
from erp.errors import ConfigurationError, ERPError, NotFoundError
from logging_config import get_logger

logger = get_logger("sync")

PENDING_CREATE = "create"
PENDING_UPDATE = "update"

_id_lock = threading.Lock()
_last_ms = 0


def local_id() -> str:
    """`LOCAL-<epoch ms>`, strictly increasing within the process."""
    global _last_ms
    with _id_lock:
        now = int(time.time() * 1000)
        _last_ms = now if now > _last_ms else _last_ms + 1
        return f"{LOCAL_ID_PREFIX}{_last_ms}"


def is_local_id(value: Optional[str]) -> bool:
    return isinstance(value, str) and value.startswith(LOCAL_ID_PREFIX)


def require_gateway(gateway):
    if gateway is None:
        raise ConfigurationError("ERPNext is not configured")
    return gateway


def pending_doc(name: str, fields: Dict[str, Any], kind: str) -> dict:
    return {**fields, "name": name, "pending_sync": True, "pending_kind": kind}


def remote_fields(doc: Dict[str, Any]) -> dict:
    """Strip local bookkeeping keys before sending a pending doc to the ERP."""
    return {k: v for k, v in doc.items() if k not in ("name", "pending_sync", "pending_kind", "creation")}


def strip_pending(doc: Dict[str, Any]) -> dict:
    return {k: v for k, v in doc.items() if k not in ("pending_sync", "pending_kind")}


def merge_pending(remote_docs: Iterable[dict], local_docs: Iterable[dict]) -> List[dict]:
    """
    Pending updates are laid over the remote doc with the same name.
    Pending creates come first, newest first.
    """
    local_docs = list(local_docs)
    overlays = {d["name"]: d for d in local_docs if d.get("pending_kind") == PENDING_UPDATE}
    creates = sorted(
        (d for d in local_docs if d.get("pending_kind") == PENDING_CREATE),
        key=lambda d: d.get("name", ""),
        reverse=True,
    )
    merged = [dict(d) for d in creates]
    for doc in remote_docs:
        overlay = overlays.get(doc.get("name"))
        merged.append({**doc, **overlay} if overlay else dict(doc))
    return merged


class ReadResult:
    """A listing plus where it came from. `error` is set when the ERP read failed."""

    def __init__(self, items: List[Any], source: str, error: Optional[ERPError] = None):
        self.items = items
        self.source = source
        self.error = error

    @classmethod
    def remote(cls, items):
        return cls(items, "erpnext")

    @classmethod
    def local_only(cls, items):
        return cls(items, "local")

    @classmethod
    def failed(cls, items, error: ERPError):
        return cls(items, "erpnext-error", error)

    def to_dict(self, key: str) -> dict:
        body = {key: self.items, "source": self.source}
        if self.error is not None:
            body["error"] = self.error.message
        return body


class WriteOutcome:
    """Result of a write. A degraded write still succeeds, flagged pending_sync."""

    def __init__(self, record: Any, pending_sync: bool = False, error: Optional[ERPError] = None):
        self.record = record
        self.pending_sync = pending_sync
        self.error = error

    def to_dict(self, key: str, **extra: Any) -> dict:
        body = {"success": True, key: self.record, "pending_sync": self.pending_sync, **extra}
        if self.pending_sync:
            body["message"] = PENDING_SYNC_MESSAGE
        return body


def log_fallback(entity: str, action: str, name: str, error: Optional[ERPError]):
    logger.warning(
        f"{entity} {action} kept locally, ERP sync pending",
        extra={"data": {"name": name, "error": error.message if error else "ERPNext not configured"}}
    )


class DocumentSync:
    """
    Create / update / delete / sync for one ERPNext doctype with local fallback.
    Subclasses supply `decode(doc)` turning a (remote or pending) doc into the
    app record.
    """

    doctype: str = ""
    entity: str = ""

    def __init__(self, gateway, repo):
        self.gateway = gateway
        self.repo = repo

    def decode(self, doc: dict) -> Optional[dict]:
        raise NotImplementedError

    def decode_all(self, docs: Iterable[dict]) -> List[dict]:
        decoded = (self.decode(d) for d in docs)
        return [r for r in decoded if r is not None]

    async def listing(self, local_docs: List[dict], keep=None, **list_kwargs: Any) -> ReadResult:
        """Remote listing merged with `local_docs` (pending creates already filtered by the caller)."""
        creates = [d for d in local_docs if d.get("pending_kind") == PENDING_CREATE]
        if self.gateway is None:
            return ReadResult.local_only(self.decode_all(merge_pending([], creates)))
        result = await self.gateway.list(self.doctype, **list_kwargs)
        if not result.ok:
            return ReadResult.failed(self.decode_all(merge_pending([], creates)), result.error)
        rows = [r for r in result.data if isinstance(r, dict)]
        if keep is not None:
            rows = [r for r in rows if keep(r)]
        return ReadResult.remote(self.decode_all(merge_pending(rows, local_docs)))

    async def fetch(self, name: str) -> dict:
        """Current doc, pending changes applied. Raises NotFoundError / ERP errors."""
        if is_local_id(name):
            doc = await self.repo.get(name)
            if doc is None:
                raise NotFoundError(f"{self.entity} {name} not found")
            return doc
        gateway = require_gateway(self.gateway)
        doc = (await gateway.get(self.doctype, name)).unwrap()
        overlay = await self.repo.get(name)
        return {**doc, **overlay} if overlay else doc

    async def create_doc(self, fields: Dict[str, Any]) -> WriteOutcome:
        error = None
        if self.gateway is not None:
            result = await self.gateway.create(self.doctype, fields)
            if result.ok:
                return WriteOutcome(self.decode({**fields, **result.data}))
            error = result.error
        doc = pending_doc(local_id(), fields, PENDING_CREATE)
        await self.repo.put(doc["name"], doc)
        log_fallback(self.entity, "create", doc["name"], error)
        return WriteOutcome(self.decode(doc), True, error)

    async def update_doc(self, name: str, fields: Dict[str, Any], base: Optional[dict] = None) -> WriteOutcome:
        """
        `base` is the doc the change was computed from, if the caller read it.
        A NotFound from the ERP is raised, never turned into a local overlay.
        """
        if is_local_id(name):
            doc = await self.repo.get(name)
            if doc is None:
                raise NotFoundError(f"{self.entity} {name} not found")
            doc.update(fields)
            await self.repo.put(name, doc)
            return WriteOutcome(self.decode(doc), True)

        base = strip_pending(base or {})
        error = None
        if self.gateway is not None:
            result = await self.gateway.update(self.doctype, name, fields)
            if result.ok:
                await self.repo.delete(name)
                return WriteOutcome(self.decode({**base, **fields, **(result.data or {}), "name": name}))
            if result.not_found:
                raise result.error
            error = result.error

        existing = await self.repo.get(name) or {}
        doc = pending_doc(name, {**remote_fields(existing), **fields}, PENDING_UPDATE)
        await self.repo.put(name, doc)
        log_fallback(self.entity, "update", name, error)
        return WriteOutcome(self.decode({**base, **doc}), True, error)

    async def delete_doc(self, name: str) -> dict:
        remote_deleted = False
        if not is_local_id(name) and self.gateway is not None:
            result = await self.gateway.delete(self.doctype, name)
            remote_deleted = result.ok
            if not result.ok:
                logger.warning(
                    f"{self.entity} delete failed in ERPNext, removing locally anyway",
                    extra={"data": {"name": name, "error": result.error.message}}
                )
        await self.repo.delete(name)
        return {"success": True, "id": name, "remote_deleted": remote_deleted}

    async def sync_doc(self, name: str) -> WriteOutcome:
        """Explicit retry of a pending create or update."""
        doc = await self.repo.get(name)
        if doc is None:
            raise NotFoundError(f"No pending changes for {self.entity} {name}")
        gateway = require_gateway(self.gateway)
        fields = remote_fields(doc)

        if doc.get("pending_kind") == PENDING_CREATE:
            result = await gateway.create(self.doctype, fields)
            if not result.ok:
                return WriteOutcome(self.decode(doc), True, result.error)
            await self.repo.delete(name)
            logger.info(f"{self.entity} {name} linked to ERPNext", extra={"data": {"erp_name": result.data["name"]}})
            return WriteOutcome(self.decode({**fields, **result.data}))

        result = await gateway.update(self.doctype, name, fields)
        if result.not_found:
            await self.repo.delete(name)
            raise result.error
        if not result.ok:
            return WriteOutcome(self.decode(doc), True, result.error)
        await self.repo.delete(name)
        return WriteOutcome(self.decode({**fields, **(result.data or {}), "name": name}))
