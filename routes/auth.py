from fastapi import APIRouter, Depends, HTTPException, Response
from datetime import timedelta
from database import Store
from models.user import LoginRequest, Session, UserModel
from routes.deps import create_access_token, get_session, get_store
from utils.passwords import verify_password
from logging_config import get_logger
from config import config

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
logger = get_logger("auth")


@router.post("/login")
async def login(credentials: LoginRequest, response: Response, store: Store = Depends(get_store)):
    """
    Username + password login.
    Issues a signed session token, returned in the body and as an httpOnly cookie.
    """
    user_doc = await store.users.get(credentials.username)
    if not user_doc or not verify_password(credentials.password, user_doc.get("password_hash", "")):
        logger.warning("Login failed", extra={"data": {"username": credentials.username}})
        raise HTTPException(status_code=401, detail="Invalid username or password")

    user = UserModel(**user_doc)
    max_age = config.SESSION_EXPIRE_MINUTES * 60
    access_token = create_access_token(
        data={"sub": user.username, "role": user.role, "name": user.name},
        expires_delta=timedelta(seconds=max_age),
    )
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=access_token,
        max_age=max_age,
        httponly=True,
        secure=config.ENV == "production",
        samesite="lax",
    )

    logger.info("Login successful", extra={"data": {"username": user.username, "role": user.role}})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": {"username": user.username, "name": user.name, "role": user.role},
    }


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/me")
async def me(session: Session = Depends(get_session)):
    return session.model_dump()
