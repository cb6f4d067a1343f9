from fastapi import APIRouter, Depends
from models.lead import InboundLead
from routes.deps import get_lead_sync
from sync.leads import LeadSync
from logging_config import get_logger

router = APIRouter(prefix="/api", tags=["Website"])
logger = get_logger("contact")


@router.post("/create-lead")
async def create_lead(payload: InboundLead, sync: LeadSync = Depends(get_lead_sync)):
    """
    Public website contact form.
    Reuses the Lead when the email is already known and always attaches the
    message as a note. Notifications are best-effort.
    """
    result = await sync.create_inbound(payload)
    logger.info(
        "Inbound lead received",
        extra={"data": {"lead": result["lead"], "existing": result["existing"], "pending_sync": result["pending_sync"]}}
    )
    return result
