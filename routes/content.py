from fastapi import APIRouter, Depends, Query
from models.content import ContentGridItemCreate, ContentGridItemUpdate
from models.user import Session
from routes.deps import get_content_sync, get_session
from sync.content_grid import ContentGridSync

router = APIRouter(prefix="/api/content", tags=["Content Grid"])


@router.get("")
async def list_content(
    client_id: str = Query(..., alias="clientId", min_length=1),
    sync: ContentGridSync = Depends(get_content_sync),
    session: Session = Depends(get_session),
):
    result = await sync.list_for_client(client_id)
    return result.to_dict("items")


@router.post("")
async def create_content(payload: ContentGridItemCreate, sync: ContentGridSync = Depends(get_content_sync), session: Session = Depends(get_session)):
    outcome = await sync.create(payload)
    return outcome.to_dict("item")


@router.put("/{item_id}")
async def update_content(item_id: str, payload: ContentGridItemUpdate, sync: ContentGridSync = Depends(get_content_sync), session: Session = Depends(get_session)):
    outcome = await sync.update(item_id, payload)
    return outcome.to_dict("item")


@router.delete("/{item_id}")
async def delete_content(item_id: str, sync: ContentGridSync = Depends(get_content_sync), session: Session = Depends(get_session)):
    return await sync.delete(item_id)


@router.post("/{item_id}/sync")
async def sync_content(item_id: str, sync: ContentGridSync = Depends(get_content_sync), session: Session = Depends(get_session)):
    outcome = await sync.sync(item_id)
    return outcome.to_dict("item")
