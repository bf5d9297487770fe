"""
Pytest fixtures shared across all test modules.
Uses an in-memory SQLite database with StaticPool so all connections
share a single in-memory DB, plus in-memory fakes for the client-side
store, persister and scheduler so drag tests never touch the network.
"""

import os

# Set env vars BEFORE any channel_order module is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["API_TOKEN"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Import channel_order modules AFTER env vars are set
from channel_order.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from channel_order.engine.store import ChannelStore  # noqa: E402
from channel_order.main import app  # noqa: E402
from channel_order.schemas.category import CategoryResponse  # noqa: E402
from channel_order.schemas.channel import ChannelResponse  # noqa: E402

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SERVER_ID = 1


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Client-side fakes
# ---------------------------------------------------------------------------


class RecordingPersister:
    """OrderPersister fake that records every batch it is handed."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.channel_batches: list = []
        self.category_batches: list = []

    def persist_channel_order(self, server_id, batch):
        self.channel_batches.append((server_id, batch))
        if self.fail:
            raise ConnectionError("authority unreachable")

    def persist_category_order(self, server_id, batch):
        self.category_batches.append((server_id, batch))
        if self.fail:
            raise ConnectionError("authority unreachable")


class ManualScheduler:
    """Collects deferred callbacks until the test flushes them."""

    def __init__(self):
        self.pending: list = []

    def __call__(self, callback):
        self.pending.append(callback)

    def run_all(self):
        while self.pending:
            self.pending.pop(0)()


@pytest.fixture()
def store():
    return ChannelStore()


@pytest.fixture()
def persister():
    return RecordingPersister()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_channel(channel_id: int, position: int, category_id: int | None = None, server_id: int = SERVER_ID):
    return ChannelResponse(
        id=channel_id,
        name=f"channel-{channel_id}",
        server_id=server_id,
        category_id=category_id,
        position=position,
    )


def make_category(category_id: int, position: int, name: str | None = None, server_id: int = SERVER_ID):
    return CategoryResponse(
        id=category_id,
        name=name or f"category-{category_id}",
        server_id=server_id,
        position=position,
    )


def seed_store(store: ChannelStore, layout: dict, category_order: list[int] | None = None, server_id: int = SERVER_ID):
    """Fill the store from {category_id or None: [channel ids in order]}."""
    category_order = category_order or [k for k in layout if k is not None]
    store.set_categories(server_id, [make_category(cid, pos, server_id=server_id) for pos, cid in enumerate(category_order)])
    channels = []
    for category_id, channel_ids in layout.items():
        for pos, ch_id in enumerate(channel_ids):
            channels.append(make_channel(ch_id, pos, category_id, server_id=server_id))
    store.set_channels(server_id, channels)


def create_server(client: TestClient, name: str = "test-server") -> int:
    resp = client.post("/api/servers", json={"name": name})
    assert resp.status_code == 201, resp.json()
    return resp.json()["id"]


def create_category(client: TestClient, server_id: int, name: str) -> dict:
    resp = client.post(f"/api/servers/{server_id}/categories", json={"name": name})
    assert resp.status_code == 201, resp.json()
    return resp.json()


def create_channel(client: TestClient, server_id: int, name: str, category_id: int | None = None) -> dict:
    resp = client.post(
        f"/api/servers/{server_id}/channels",
        json={"name": name, "category_id": category_id},
    )
    assert resp.status_code == 201, resp.json()
    return resp.json()
