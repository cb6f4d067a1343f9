from logging_config import setup_logging

# Initialize logging BEFORE anything else
setup_logging()

from contextlib import asynccontextmanager
from logging_config import get_logger
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from middleware.request_lifecycle import RequestLifecycleMiddleware
from routes import auth, clients, contact, content, deliverables, erp as erp_router, leads, portal, tasks, users
from automations.notify import NotificationRelay
from database import build_store
from erp import errors
from erp.gateway import ERPNextGateway
from models.user import UserModel
from utils.passwords import hash_password
from config import config

logger = get_logger("app")


async def seed_admin(store, cfg=config):
    """First dashboard user, only while the user store is empty."""
    if await store.users.list():
        return
    if not cfg.ADMIN_PASSWORD:
        logger.warning("No users and ADMIN_PASSWORD not set, nobody can log in yet")
        return
    user = UserModel(
        username=cfg.ADMIN_USERNAME,
        name=cfg.ADMIN_NAME,
        role="admin",
        password_hash=hash_password(cfg.ADMIN_PASSWORD),
    )
    await store.users.put(user.username, user.model_dump(mode="json"))
    logger.info("Admin user seeded", extra={"data": {"username": user.username}})


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Partial ERP configuration fails here, before serving anything
    app.state.gateway = ERPNextGateway.from_config(config)
    app.state.store = build_store(config)
    app.state.relay = NotificationRelay.from_config(config)
    await seed_admin(app.state.store)
    logger.info("Lumen API ready", extra={"data": {"erp": app.state.gateway is not None, "env": config.ENV}})
    yield
    await app.state.relay.drain()
    if app.state.gateway is not None:
        await app.state.gateway.aclose()
    app.state.store.close()


app = FastAPI(title="Lumen Hub API", lifespan=lifespan)

# CORS remains here as it's a global setting
app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL] if config.ENV == "production" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request lifecycle middleware (request ID, context vars, duration logging)
app.add_middleware(RequestLifecycleMiddleware)


# ERP error taxonomy -> HTTP
@app.exception_handler(errors.ValidationError)
async def validation_error_handler(request: Request, exc: errors.ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(errors.NotFoundError)
async def not_found_handler(request: Request, exc: errors.NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(errors.ConfigurationError)
async def configuration_error_handler(request: Request, exc: errors.ConfigurationError):
    return JSONResponse(status_code=503, content={"detail": exc.message})


@app.exception_handler(errors.ERPError)
async def remote_error_handler(request: Request, exc: errors.ERPError):
    # Transport, Remote and Decode failures on paths without a local fallback
    logger.warning(
        f"ERP failure surfaced: {exc.__class__.__name__}",
        extra={"data": {"error": exc.message, "path": request.url.path}}
    )
    content = {"detail": exc.message, "source": "erpnext-error"}
    if isinstance(exc, errors.RemoteError):
        content["statusCode"] = exc.status_code
    return JSONResponse(status_code=502, content=content)


# REGISTER ROUTERS
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(clients.router)
app.include_router(content.router)
app.include_router(deliverables.router)
app.include_router(leads.router)
app.include_router(contact.router)
app.include_router(tasks.router)
app.include_router(erp_router.router)
app.include_router(portal.router)

logger.info("All routers registered")


@app.get("/")
async def root():
    return {"status": "online", "message": "Lumen Hub API"}
