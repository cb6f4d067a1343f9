from fastapi import APIRouter, Depends
from erp.errors import NotFoundError
from models.deliverable import DeliverableReview
from routes.deps import get_client_sync, get_content_sync, get_deliverable_sync
from sync.clients import ClientSync
from sync.content_grid import ContentGridSync
from sync.deliverables import DeliverableSync
from logging_config import get_logger

router = APIRouter(prefix="/api/portal", tags=["Client Portal"])
logger = get_logger("portal")


def public_client(client: dict) -> dict:
    return {k: client.get(k) for k in ("name", "erpId", "instagram", "industry")}


@router.get("/{token}")
async def portal_home(
    token: str,
    clients: ClientSync = Depends(get_client_sync),
    deliverables: DeliverableSync = Depends(get_deliverable_sync),
    content: ContentGridSync = Depends(get_content_sync),
):
    """Everything the client sees: their deliverables and planned content"""
    client = await clients.find_by_token(token)
    delivered = await deliverables.list(client["erpId"])
    planned = await content.list_for_client(client["erpId"])
    return {
        "client": public_client(client),
        "deliverables": delivered.items,
        "content": planned.items,
        "source": delivered.source,
    }


@router.put("/{token}/deliverables/{deliverable_id}")
async def portal_review(
    token: str,
    deliverable_id: str,
    payload: DeliverableReview,
    clients: ClientSync = Depends(get_client_sync),
    deliverables: DeliverableSync = Depends(get_deliverable_sync),
):
    """Client approval or change request. Feedback is always authored by the client."""
    client = await clients.find_by_token(token)
    current = await deliverables.get(deliverable_id)
    if current["clientId"] != client["erpId"]:
        logger.warning(
            "Portal review on a deliverable of another client",
            extra={"data": {"deliverable": deliverable_id, "client": client["erpId"]}}
        )
        raise NotFoundError(f"Deliverable {deliverable_id} not found")

    if payload.feedback is not None:
        payload.feedback.author = "client"
        payload.feedback.authorName = payload.feedback.authorName or client["name"]
    outcome = await deliverables.review(deliverable_id, payload, author_name=client["name"])
    return outcome.to_dict("deliverable")
