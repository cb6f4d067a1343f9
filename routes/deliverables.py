from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from models.deliverable import DeliverableCreate, DeliverableReview, DeliverableVersionCreate
from models.user import Session
from routes.deps import get_deliverable_sync, get_session
from sync.deliverables import DeliverableSync
from logging_config import get_logger

router = APIRouter(prefix="/api/deliverables", tags=["Deliverables"])
logger = get_logger("deliverables")


@router.get("")
async def list_deliverables(
    client_id: Optional[str] = Query(None, alias="clientId"),
    sync: DeliverableSync = Depends(get_deliverable_sync),
    session: Session = Depends(get_session),
):
    """READ ALL: optionally scoped to one client"""
    result = await sync.list(client_id)
    return result.to_dict("deliverables")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_deliverable(payload: DeliverableCreate, sync: DeliverableSync = Depends(get_deliverable_sync), session: Session = Depends(get_session)):
    """CREATE: Task with JSON metadata, version 1, status pending"""
    outcome = await sync.create(payload, created_by=session.name)
    return outcome.to_dict("deliverable")


@router.get("/{deliverable_id}")
async def get_deliverable(deliverable_id: str, sync: DeliverableSync = Depends(get_deliverable_sync), session: Session = Depends(get_session)):
    return await sync.get(deliverable_id)


@router.put("/{deliverable_id}")
async def review_deliverable(
    deliverable_id: str,
    payload: DeliverableReview,
    sync: DeliverableSync = Depends(get_deliverable_sync),
    session: Session = Depends(get_session),
):
    """
    Status change with optional feedback.
    Feedback is appended, never replaced; approval stamps approvedAt/approvedVersion.
    """
    outcome = await sync.review(deliverable_id, payload, author_name=session.name)
    logger.info(
        f"Deliverable {deliverable_id} -> {payload.status}",
        extra={"data": {"pending_sync": outcome.pending_sync}}
    )
    return outcome.to_dict("deliverable")


@router.post("/{deliverable_id}/versions")
async def add_version(
    deliverable_id: str,
    payload: DeliverableVersionCreate,
    sync: DeliverableSync = Depends(get_deliverable_sync),
    session: Session = Depends(get_session),
):
    outcome = await sync.add_version(deliverable_id, payload, created_by=session.name)
    return outcome.to_dict("deliverable")


@router.post("/{deliverable_id}/sync")
async def sync_deliverable(deliverable_id: str, sync: DeliverableSync = Depends(get_deliverable_sync), session: Session = Depends(get_session)):
    outcome = await sync.sync(deliverable_id)
    return outcome.to_dict("deliverable")


@router.delete("/{deliverable_id}")
async def delete_deliverable(deliverable_id: str, sync: DeliverableSync = Depends(get_deliverable_sync), session: Session = Depends(get_session)):
    return await sync.delete(deliverable_id)
