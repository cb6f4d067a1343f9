# routes/clients.py
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from models.client import ClientCreate, ClientUpdate
from models.user import Session
from routes.deps import get_client_sync, get_session
from sync.clients import ClientSync, portal_link
from logging_config import get_logger

router = APIRouter(
    prefix="/api/clients",
    tags=["Clients"]
)
logger = get_logger("clients")


@router.get("")
async def get_clients(sync: ClientSync = Depends(get_client_sync), session: Session = Depends(get_session)):
    """READ ALL: ERPNext customers plus clients still waiting for ERP sync"""
    result = await sync.list()
    return result.to_dict("clients")


@router.post("")
async def create_client(payload: ClientCreate, sync: ClientSync = Depends(get_client_sync), session: Session = Depends(get_session)):
    """CREATE: Customer + extras note. Kept locally when ERPNext is unavailable."""
    outcome = await sync.create(payload)
    logger.info(
        "Client created",
        extra={"data": {"erpId": outcome.record["erpId"], "pending_sync": outcome.pending_sync}}
    )
    return outcome.to_dict(
        "client",
        portalLink=portal_link(outcome.record),
        erpCreated=not outcome.pending_sync,
    )


@router.put("")
async def update_client(payload: ClientUpdate, sync: ClientSync = Depends(get_client_sync), session: Session = Depends(get_session)):
    """UPDATE: Customer fields + a fresh extras note"""
    outcome = await sync.update(payload)
    return outcome.to_dict("client")


@router.delete("")
async def delete_client(
    erp_id: Optional[str] = Query(None, alias="erpId"),
    legacy_id: Optional[str] = Query(None, alias="id"),
    sync: ClientSync = Depends(get_client_sync),
    session: Session = Depends(get_session),
):
    """DELETE: Remove remotely (unless local-only), then locally"""
    erp_id = erp_id or legacy_id
    if not erp_id:
        raise HTTPException(status_code=400, detail="erpId required")
    return await sync.delete(erp_id)


@router.get("/{erp_id}")
async def get_client(erp_id: str, sync: ClientSync = Depends(get_client_sync), session: Session = Depends(get_session)):
    """READ ONE"""
    return await sync.get(erp_id)


@router.post("/{erp_id}/sync")
async def sync_client(erp_id: str, sync: ClientSync = Depends(get_client_sync), session: Session = Depends(get_session)):
    """Retry pushing a pending client to ERPNext"""
    outcome = await sync.sync(erp_id)
    return outcome.to_dict("client")
