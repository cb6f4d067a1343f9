from fastapi import APIRouter, Depends
from constants import DEFAULT_PIPELINES, LEAD_STATUSES
from models.lead import LeadNoteCreate, LeadPositionUpdate, LeadStatusUpdate
from models.user import Session
from routes.deps import get_lead_sync, get_session
from sync.leads import LeadSync

router = APIRouter(prefix="/api/leads", tags=["Leads"])


@router.get("")
async def list_leads(sync: LeadSync = Depends(get_lead_sync), session: Session = Depends(get_session)):
    result = await sync.list()
    body = result.to_dict("leads")
    body["statuses"] = LEAD_STATUSES
    return body


@router.put("")
async def update_lead_status(payload: LeadStatusUpdate, sync: LeadSync = Depends(get_lead_sync), session: Session = Depends(get_session)):
    outcome = await sync.update_status(payload.name, payload.status)
    return outcome.to_dict("lead")


@router.get("/pipelines")
async def list_pipelines(session: Session = Depends(get_session)):
    return {"pipelines": DEFAULT_PIPELINES}


@router.get("/{name}")
async def get_lead(name: str, sync: LeadSync = Depends(get_lead_sync), session: Session = Depends(get_session)):
    """Lead plus its Communication timeline"""
    return await sync.detail(name)


@router.post("/{name}/notes")
async def add_lead_note(name: str, payload: LeadNoteCreate, sync: LeadSync = Depends(get_lead_sync), session: Session = Depends(get_session)):
    note = await sync.add_note(name, payload.note, sender=session.username)
    return {"success": True, "note": note}


@router.put("/{name}/position")
async def move_lead(name: str, payload: LeadPositionUpdate, sync: LeadSync = Depends(get_lead_sync), session: Session = Depends(get_session)):
    return await sync.move(name, payload)


@router.post("/{name}/sync")
async def sync_lead(name: str, sync: LeadSync = Depends(get_lead_sync), session: Session = Depends(get_session)):
    outcome = await sync.sync(name)
    return outcome.to_dict("lead")
