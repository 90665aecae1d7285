"""
Pytest configuration and fixtures.
"""

import os

# Settings are read at import time; provide the required secret before any app import
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-ccpguard")

from typing import AsyncGenerator, Dict, Set

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from ccpguard.app.core.database import Base, init_db
from ccpguard.app.core.errors import StoreError
from ccpguard.app.core.security import Role, User
from ccpguard.app.services.entity_store import InMemoryEntityStore, SqlEntityStore
from ccpguard.app.services.evidence_upload import LocalEvidenceUploader
from ccpguard.app.services.notification_fanout import NotificationFanout, StaffRecipientResolver
from ccpguard.app.services.workflow import CCPWorkflow

OPERATIONS_MAILBOX = "ops@example.com"

COOK_CCP = {
    "id": "ccp-cook-chicken",
    "name": "Chicken core temperature",
    "process_stage": "Cooking",
    "critical_limit": "75°C",
    "unit": "celsius",
    "limit_operator": "at_least",
    "monitoring_parameter": "Core temperature",
    "check_frequency": "Every batch",
    "responsible_role": "chef",
    "corrective_actions": [
        {"action": "Continue cooking and re-check", "responsible_person": "Head chef", "time_limit": "10 minutes"},
        {"action": "Discard if not reached", "responsible_person": "Head chef", "time_limit": "Immediately"},
    ],
    "linked_menu_items": ["menu-chicken-tikka", "menu-chicken-wrap"],
    "is_active": True,
}

FREEZER_CCP = {
    "id": "ccp-freezer",
    "name": "Freezer storage",
    "process_stage": "Storage",
    "critical_limit": "-18°C or below",
    "unit": "celsius",
    "limit_operator": "at_most",
    "check_frequency": "Twice daily",
    "corrective_actions": [],
    "linked_menu_items": ["menu-kulfi"],
    "is_active": True,
}

MANAGERS = [
    {"email": "asha@example.com", "full_name": "Asha Patel", "role": "manager", "status": "active"},
    {"email": "ben@example.com", "full_name": "Ben Ito", "role": "manager", "status": "active"},
    {"email": "cara@example.com", "full_name": "Cara Diaz", "role": "manager", "status": "active"},
]


class FlakyEntityStore(InMemoryEntityStore):
    """In-memory store with switchable read and write failures."""

    def __init__(self):
        super().__init__()
        self.fail_create: Dict[str, Exception] = {}
        self.fail_update: Dict[str, Exception] = {}
        self.fail_get: Dict[str, Exception] = {}
        self.fail_filter: Dict[str, Exception] = {}
        self.fail_recipients: Set[str] = set()

    async def get(self, entity_type, record_id):
        if entity_type in self.fail_get:
            raise self.fail_get[entity_type]
        return await super().get(entity_type, record_id)

    async def filter(self, entity_type, criteria=None, order_by=None, limit=None):
        if entity_type in self.fail_filter:
            raise self.fail_filter[entity_type]
        return await super().filter(entity_type, criteria, order_by=order_by, limit=limit)

    async def create(self, entity_type, record):
        if entity_type in self.fail_create:
            raise self.fail_create[entity_type]
        if entity_type == "Notification" and record.get("recipient_email") in self.fail_recipients:
            raise StoreError(f"mail relay rejected {record['recipient_email']}")
        return await super().create(entity_type, record)

    async def update(self, entity_type, record_id, partial):
        if entity_type in self.fail_update:
            raise self.fail_update[entity_type]
        return await super().update(entity_type, record_id, partial)

    def all(self, entity_type):
        return list(self._table(entity_type).values())


def seed_reference_data(store: InMemoryEntityStore) -> None:
    store.seed("CCPDefinition", COOK_CCP)
    store.seed("CCPDefinition", FREEZER_CCP)
    for manager in MANAGERS:
        store.seed("StaffMember", manager)
    store.seed("StaffMember", {"email": "old@example.com", "role": "manager", "status": "inactive"})
    store.seed("StaffMember", {"email": "cook@example.com", "role": "chef", "status": "active"})


@pytest.fixture
def store() -> FlakyEntityStore:
    store = FlakyEntityStore()
    seed_reference_data(store)
    return store


@pytest.fixture
def fanout(store) -> NotificationFanout:
    return NotificationFanout(store, StaffRecipientResolver(store, "manager"), OPERATIONS_MAILBOX)


@pytest.fixture
def workflow(store, fanout, tmp_path) -> CCPWorkflow:
    uploader = LocalEvidenceUploader(directory=str(tmp_path / "evidence"), base_url="/evidence")
    return CCPWorkflow(store, fanout, uploader)


@pytest.fixture
def staff_user() -> User:
    return User(id="staff-1", email="sam@example.com", full_name="Sam Cook", role=Role.STAFF)


@pytest.fixture
def chef_user() -> User:
    return User(id="chef-1", email="chef@example.com", full_name="Priya Chef", role=Role.CHEF)


@pytest.fixture
def manager_user() -> User:
    return User(id="mgr-1", email="asha@example.com", full_name="Asha Patel", role=Role.MANAGER)


@pytest.fixture
def admin_user() -> User:
    return User(id="admin-1", email="admin@example.com", full_name="Site Admin", role=Role.ADMIN)


@pytest.fixture
async def sql_store() -> AsyncGenerator[SqlEntityStore, None]:
    """SqlEntityStore over a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield SqlEntityStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def api_workflow(tmp_path) -> AsyncGenerator[CCPWorkflow, None]:
    """Workflow over a file-backed SQLite database, as the API runs it."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ccpguard-test.db'}", poolclass=NullPool)
    await init_db(engine)
    store = SqlEntityStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    for ccp in (COOK_CCP, FREEZER_CCP):
        await store.create("CCPDefinition", ccp)
    for manager in MANAGERS:
        await store.create("StaffMember", manager)

    fanout = NotificationFanout(store, StaffRecipientResolver(store, "manager"), OPERATIONS_MAILBOX)
    uploader = LocalEvidenceUploader(directory=str(tmp_path / "evidence"), base_url="/evidence")
    workflow = CCPWorkflow(store, fanout, uploader)
    yield workflow
    await fanout.drain()
    await engine.dispose()


@pytest.fixture
async def client(api_workflow) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with the workflow dependency overridden.
    """
    from ccpguard.app.api.deps import get_workflow
    from ccpguard.app.main import app

    app.dependency_overrides[get_workflow] = lambda: api_workflow

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
