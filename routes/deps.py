from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from constants import Roles
from database import Store
from models.user import Session
from logging_config import get_logger, username_var
from config import config
from sync.clients import ClientSync
from sync.content_grid import ContentGridSync
from sync.deliverables import DeliverableSync
from sync.finance import FinanceService
from sync.leads import LeadSync
from sync.tasks import TeamTaskSync

logger = get_logger("auth")

# Config from central config
SECRET_KEY = config.SECRET_KEY
ALGORITHM = config.ALGORITHM
SESSION_EXPIRE_MINUTES = config.SESSION_EXPIRE_MINUTES


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=SESSION_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def decode_session_token(token: str) -> Optional[Session]:
    """Verified session or None. Expiry is checked by jose."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT decode failed: {e}")
        return None
    username = payload.get("sub")
    if not username:
        logger.warning("Token decoded but missing 'sub' claim")
        return None
    return Session(username=username, role=payload.get("role") or "", name=payload.get("name") or username)


def session_token_from(request: Request) -> Optional[str]:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.cookies.get(config.SESSION_COOKIE_NAME)


# ─── App-scoped collaborators (overridden in tests) ─────────────────────────

def get_store(request: Request) -> Store:
    return request.app.state.store


def get_gateway(request: Request):
    return request.app.state.gateway


def get_relay(request: Request):
    return request.app.state.relay


async def authenticate(request: Request, store: Store) -> Session:
    """
    Bearer token, then the session cookie, then X-API-Key.
    Raises 401 when none of them yields a session.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = session_token_from(request)
    if token:
        session = decode_session_token(token)
        if session is None:
            raise credentials_exception
        if await store.users.get(session.username) is None:
            logger.warning("Token valid but user not found", extra={"data": {"username": session.username}})
            raise credentials_exception
        return session

    api_key = request.headers.get("x-api-key")
    if api_key and config.LUMEN_API_KEY and api_key == config.LUMEN_API_KEY:
        return Session(username="service", role=Roles.SERVICE, name="Automation")

    raise credentials_exception


async def get_session(request: Request, store: Store = Depends(get_store)) -> Session:
    session = await authenticate(request, store)
    username_var.set(session.username)
    return session


# ─── Centralized RBAC Helpers ────────────────────────────────────────────────

def require_role(*allowed_roles):
    """Dependency that checks if the current session has one of the allowed roles."""
    async def checker(session: Session = Depends(get_session)):
        if session.role not in allowed_roles:
            logger.warning(
                f"Access denied: requires {allowed_roles}",
                extra={"data": {"username": session.username, "role": session.role}}
            )
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return session
    return checker


# ─── Reconciliation services ─────────────────────────────────────────────────

def get_client_sync(store: Store = Depends(get_store), gateway=Depends(get_gateway), relay=Depends(get_relay)) -> ClientSync:
    return ClientSync(gateway, store.clients, relay)


def get_content_sync(store: Store = Depends(get_store), gateway=Depends(get_gateway)) -> ContentGridSync:
    return ContentGridSync(gateway, store.content_grid)


def get_deliverable_sync(store: Store = Depends(get_store), gateway=Depends(get_gateway), relay=Depends(get_relay)) -> DeliverableSync:
    return DeliverableSync(gateway, store.deliverables, relay)


def get_lead_sync(store: Store = Depends(get_store), gateway=Depends(get_gateway), relay=Depends(get_relay)) -> LeadSync:
    return LeadSync(gateway, store.leads, store.lead_positions, relay)


def get_task_sync(store: Store = Depends(get_store), gateway=Depends(get_gateway)) -> TeamTaskSync:
    return TeamTaskSync(gateway, store.tasks)


def get_finance(gateway=Depends(get_gateway)) -> FinanceService:
    return FinanceService(gateway)
