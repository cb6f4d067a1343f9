from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from constants import Roles
from database import Store
from models.user import Session, UserCreate, UserModel
from routes.deps import get_store, require_role
from utils.passwords import hash_password
from logging_config import get_logger

router = APIRouter(prefix="/api/admin/users", tags=["Users"])
logger = get_logger("users")


@router.get("", response_model=List[dict])
async def list_users(store: Store = Depends(get_store), session: Session = Depends(require_role(Roles.ADMIN))):
    """List dashboard users (never exposes password hashes)"""
    users = [UserModel(**u).public() for u in await store.users.list()]
    return sorted(users, key=lambda u: u["created_at"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, store: Store = Depends(get_store), session: Session = Depends(require_role(Roles.ADMIN))):
    """CREATE: Add a dashboard user"""
    username = payload.username.strip().lower()
    if await store.users.get(username):
        raise HTTPException(status_code=400, detail="Username already exists")

    user = UserModel(
        username=username,
        name=payload.name,
        role=payload.role,
        email=payload.email,
        password_hash=hash_password(payload.password),
    )
    await store.users.put(username, user.model_dump(mode="json"))
    logger.info("User created", extra={"data": {"username": username, "role": user.role, "by": session.username}})
    return {"success": True, "user": user.public()}
