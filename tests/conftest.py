import pytest
from faker import Faker
from httpx import AsyncClient, ASGITransport

from app.core.dependencies import get_current_user
from app.database.document_store import split_path
from app.database.memory_store import InMemoryDocumentStore
from app.database.supabase_client import get_document_store
from app.main import app
from app.modules.auth.schemas import Principal
from app.modules.workshops import registry
from app.modules.workshops.catalog import AGENDA_STEP_NAME, CatalogEntry
from app.modules.workshops.controller import WorkshopController
from app.modules.workshops.seeder import BootstrapSeeder, reset_latches
from app.modules.workshops.store import StepStore

fake = Faker()


class RecordingDocumentStore(InMemoryDocumentStore):
    """In-memory store that records calls, can fail the next matching call and can hold updates on a gate."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.gate = None
        self._failures = []
        self._in_batch = False

    def fail_next(self, op, collection, error):
        self._failures.append((op, collection, error))

    def writes(self):
        return [c for c in self.calls if c[0] in ("set", "update", "commit")]

    def _record(self, op, path, doc_id=None):
        if self._in_batch:
            return
        self.calls.append((op, path, doc_id))
        collection = split_path(path)[-1]
        for failure in list(self._failures):
            f_op, f_collection, error = failure
            if f_op == op and f_collection == collection:
                self._failures.remove(failure)
                raise error

    async def get(self, path, doc_id):
        self._record("get", path, doc_id)
        return await super().get(path, doc_id)

    async def list(self, path, order_by=None):
        self._record("list", path)
        return await super().list(path, order_by)

    async def set(self, path, doc_id, data):
        self._record("set", path, doc_id)
        return await super().set(path, doc_id, data)

    async def update(self, path, doc_id, fields):
        self._record("update", path, doc_id)
        if self.gate is not None:
            await self.gate.wait()
        return await super().update(path, doc_id, fields)

    async def commit(self, batch):
        self._record("commit", batch.writes[0].path)
        # Writes applied by the batch are not recorded one by one
        self._in_batch = True
        try:
            await super().commit(batch)
        finally:
            self._in_batch = False


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def clean_state():
    registry.clear()
    reset_latches()
    yield
    registry.clear()
    reset_latches()


@pytest.fixture
def documents():
    return RecordingDocumentStore()


@pytest.fixture
def principal():
    return Principal(id=fake.uuid4(), email=fake.email())


@pytest.fixture
def catalog():
    """Agenda plus thirteen counted steps."""
    entries = [CatalogEntry(1, "Kickoff")]
    entries.append(CatalogEntry(2, AGENDA_STEP_NAME, is_counted=False))
    for number in range(3, 15):
        entries.append(CatalogEntry(number, f"Step {number}", {"items": []}))
    return entries


@pytest.fixture
def step_store(documents):
    return StepStore(documents)


@pytest.fixture
def seeder(step_store, catalog):
    return BootstrapSeeder(step_store, catalog)


@pytest.fixture
def controller(step_store, seeder):
    return WorkshopController(step_store, seeder)


@pytest.fixture
async def client(documents, principal):
    """Async HTTP client for the API, backed by the in-memory store and a fixed principal."""
    app.dependency_overrides[get_document_store] = lambda: documents
    app.dependency_overrides[get_current_user] = lambda: principal
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client
    app.dependency_overrides.clear()
