from fastapi import APIRouter, Depends
from models.task import TaskCommentCreate, TeamTaskCreate, TeamTaskUpdate
from models.user import Session
from routes.deps import get_session, get_task_sync
from sync.tasks import TeamTaskSync
from logging_config import get_logger

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])
logger = get_logger("tasks")


@router.get("")
async def list_tasks(sync: TeamTaskSync = Depends(get_task_sync), session: Session = Depends(get_session)):
    """Internal team tasks (content items and deliverables are filtered out)"""
    result = await sync.list()
    return result.to_dict("tasks")


@router.post("")
async def create_task(payload: TeamTaskCreate, sync: TeamTaskSync = Depends(get_task_sync), session: Session = Depends(get_session)):
    outcome = await sync.create(payload)
    logger.info("Task created", extra={"data": {"id": outcome.record["id"], "pending_sync": outcome.pending_sync}})
    return outcome.to_dict("task")


@router.put("")
async def update_task(payload: TeamTaskUpdate, sync: TeamTaskSync = Depends(get_task_sync), session: Session = Depends(get_session)):
    """Partial update: only the fields sent are written"""
    outcome = await sync.update(payload)
    return outcome.to_dict("task")


@router.get("/{task_id}/comments")
async def list_comments(task_id: str, sync: TeamTaskSync = Depends(get_task_sync), session: Session = Depends(get_session)):
    return {"comments": await sync.comments(task_id)}


@router.post("/{task_id}/comments")
async def add_comment(task_id: str, payload: TaskCommentCreate, sync: TeamTaskSync = Depends(get_task_sync), session: Session = Depends(get_session)):
    comment = await sync.add_comment(task_id, payload, author=session.username)
    return {"success": True, "comment": comment}
