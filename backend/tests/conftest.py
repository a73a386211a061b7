import asyncio
import base64
import sys
import uuid
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from mfgops.domain.inventory import ledger
from mfgops.domain.inventory.db_models import InventoryItem
from mfgops.domain.stores.db_models import Store
from mfgops.infra import models  # noqa: F401
from mfgops.infra.db import Base, Database
from mfgops.infra.metrics import configure_metrics
from mfgops.main import app
from mfgops.settings import settings

TEST_USERS = {
    "admin": ("admin", "admin123"),
    "store_manager": ("manager", "manager123"),
    "purchaser": ("buyer", "buyer123"),
    "operator": ("operator", "operator123"),
    "viewer": ("viewer", "viewer123"),
}


def basic_auth(username: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture(scope="session")
def test_database():
    db_path = Path("test.db")
    if db_path.exists():
        db_path.unlink()
    # NullPool: every session opens its own connection on whichever event loop
    # is running (pytest-asyncio's or the TestClient portal's).
    engine = create_async_engine(
        "sqlite+aiosqlite:///./test.db",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )
    database = Database.for_engine(engine)

    async def init_models() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_models())
    yield database
    asyncio.run(engine.dispose())


@pytest.fixture(autouse=True)
def restore_settings():
    tracked = [
        "app_env",
        "testing",
        "metrics_enabled",
        "metrics_token",
        "default_page_size",
        "max_page_size",
    ]
    for role in TEST_USERS:
        tracked.extend([f"{role}_basic_username", f"{role}_basic_password"])
    original = {name: getattr(settings, name) for name in tracked}
    yield
    for name, value in original.items():
        setattr(settings, name, value)
    configure_metrics(False)


@pytest.fixture(autouse=True)
def enable_test_mode():
    settings.testing = True
    settings.app_env = "dev"
    for role, (username, password) in TEST_USERS.items():
        setattr(settings, f"{role}_basic_username", username)
        setattr(settings, f"{role}_basic_password", password)
    yield


@pytest.fixture(autouse=True)
def clean_database(test_database):
    async def truncate_tables() -> None:
        async with test_database.engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                await conn.execute(table.delete())

    asyncio.run(truncate_tables())
    yield


@pytest_asyncio.fixture
async def db_session(test_database):
    async with test_database.session_factory() as session:
        yield session


@pytest.fixture()
def client(test_database):
    app.state.database = test_database
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def client_no_raise(test_database):
    """Test client that returns HTTP responses instead of raising server exceptions."""
    app.state.database = test_database
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return basic_auth(*TEST_USERS["admin"])


@pytest.fixture()
def role_headers():
    def _headers(role: str) -> dict[str, str]:
        return basic_auth(*TEST_USERS[role])

    return _headers


@pytest_asyncio.fixture
async def store(db_session) -> Store:
    store = Store(store_id=uuid.uuid4(), name="Main Stores", location="Plant 1", created_by="seed")
    db_session.add(store)
    await db_session.commit()
    return store


@pytest_asyncio.fixture
async def make_item(db_session, store):
    """Create an item and bring it to ``quantity`` through an opening IN entry."""

    async def _make(quantity: int = 0, *, sku: str | None = None, reorder_level: int = 0) -> InventoryItem:
        item = InventoryItem(
            item_id=uuid.uuid4(),
            store_id=store.store_id,
            sku=sku or f"SKU-{uuid.uuid4().hex[:8]}",
            name="Hex bolt M8",
            on_hand_quantity=0,
            reorder_level=reorder_level,
        )
        db_session.add(item)
        await db_session.commit()
        if quantity:
            await ledger.apply_transaction(
                db_session,
                item_id=item.item_id,
                transaction_type="IN",
                quantity=quantity,
                actor_id="seed",
            )
        return item

    return _make


@pytest.fixture()
def seed_store(client, admin_headers):
    def _seed(name: str = "Main Stores", **fields) -> dict:
        response = client.post(
            "/v1/stores",
            json={"name": name, "location": "Plant 1", **fields},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _seed


@pytest.fixture()
def seed_item(client, admin_headers, seed_store):
    def _seed(store_id: str | None = None, *, quantity: int = 0, **fields) -> dict:
        if store_id is None:
            store_id = seed_store()["store_id"]
        payload = {
            "sku": f"SKU-{uuid.uuid4().hex[:8]}",
            "name": "Hex bolt M8",
            "quantity": quantity,
            **fields,
        }
        response = client.post(f"/v1/stores/{store_id}/inventory", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _seed


@pytest.fixture()
def seed_supplier(client, admin_headers):
    def _seed(name: str = "Fastener Supply Co", **fields) -> dict:
        response = client.post(
            "/v1/purchases/suppliers",
            json={"name": name, **fields},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _seed
