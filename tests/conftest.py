import pytest
from httpx import AsyncClient, ASGITransport
import os
from datetime import timedelta

# Set up test environment variables before anything else
os.environ["ENV"] = "testing"
os.environ["SECRET_KEY"] = "test_secret_key_12345"
os.environ["LUMEN_API_KEY"] = "test_service_key"
os.environ["RESEND_API_KEY"] = ""
for key in ("ERPNEXT_URL", "ERPNEXT_API_KEY", "ERPNEXT_API_SECRET", "MONGO_URI", "N8N_WEBHOOK_URL"):
    os.environ.pop(key, None)

from config import config
config.ENV = "testing"

from main import app
from automations.notify import NotificationRelay
from database import Store
from erp.gateway import ERPNextGateway
from models.user import UserModel
from routes.deps import create_access_token, get_gateway, get_relay, get_store
from utils.passwords import hash_password

from fake_erp import BASE_URL, FakeERP, WebhookRecorder

WEBHOOK_URL = "http://hooks.test/n8n"


@pytest.fixture(scope="function")
def fake_erp():
    return FakeERP()


@pytest.fixture(scope="function")
def gateway(fake_erp):
    # MockTransport holds no sockets, so the client is left for GC
    return ERPNextGateway(BASE_URL, "key", "secret", transport=fake_erp.transport())


@pytest.fixture(scope="function")
def store():
    return Store.in_memory()


@pytest.fixture(scope="function")
def webhooks():
    return WebhookRecorder()


@pytest.fixture(scope="function")
def relay(webhooks):
    return NotificationRelay(
        webhook_url=WEBHOOK_URL,
        telegram_token="bot-token",
        telegram_chat_id="42",
        transport=webhooks.transport(),
    )


@pytest.fixture(scope="function")
def erp_enabled():
    """Set to False in a module to run the app with ERPNext unconfigured."""
    return True


@pytest.fixture(scope="function", autouse=True)
def wire_app(store, gateway, relay, erp_enabled):
    """Inject the fake ERP, the in-memory store and the recording relay."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway if erp_enabled else None
    app.dependency_overrides[get_relay] = lambda: relay
    yield
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client


async def add_user(store, username, role, password="secret123", name=None):
    user = UserModel(
        username=username,
        name=name or username.title(),
        role=role,
        password_hash=hash_password(password, iterations=1000),
    )
    await store.users.put(username, user.model_dump(mode="json"))
    return user


@pytest.fixture(scope="function")
async def test_user(store):
    return await add_user(store, "admin", "admin", name="Test Admin")


@pytest.fixture(scope="function")
async def test_member_user(store):
    return await add_user(store, "creator", "content_creator", name="Test Creator")


def token_for(user: UserModel) -> str:
    return create_access_token(
        data={"sub": user.username, "role": user.role, "name": user.name},
        expires_delta=timedelta(minutes=60)
    )


@pytest.fixture(scope="function")
def auth_token(test_user):
    return token_for(test_user)


@pytest.fixture(scope="function")
def auth_headers(auth_token):
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture(scope="function")
def member_auth_headers(test_member_user):
    return {"Authorization": f"Bearer {token_for(test_member_user)}"}
