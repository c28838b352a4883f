import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Optional, Tuple

from app.config.settings import settings
from app.modules.auth.schemas import Principal
from app.modules.workshops.catalog import DEFAULT_CATALOG, CatalogEntry, validate_catalog
from app.modules.workshops.schemas import Step, Workshop, WorkshopCreate
from app.modules.workshops.store import StepStore

logger = logging.getLogger(__name__)

# Process-wide latches; services are built per request
_LOCKS: Dict[str, Tuple[asyncio.Lock, int]] = {}  # key -> (lock, tasks holding or waiting)
_CREATED: Dict[str, Tuple[str, float]] = {}  # request_id -> (workshop_id, expiry)
_CREATED_MAX_SIZE = 1000


@asynccontextmanager
async def _latch(key: str):
    """Serialize callers on `key`. The lock is dropped once nobody holds or awaits it."""
    lock, users = _LOCKS.get(key, (asyncio.Lock(), 0))
    _LOCKS[key] = (lock, users + 1)
    try:
        async with lock:
            yield
    finally:
        lock, users = _LOCKS[key]
        if users == 1:
            del _LOCKS[key]
        else:
            _LOCKS[key] = (lock, users - 1)


def _created_workshop(request_id: str, now: float) -> Optional[str]:
    entry = _CREATED.get(request_id)
    if entry is None:
        return None
    workshop_id, expiry = entry
    if now < expiry:
        return workshop_id
    del _CREATED[request_id]
    return None


def _remember_created(request_id: str, workshop_id: str, now: float) -> None:
    for key in [k for k, (_, expiry) in _CREATED.items() if expiry <= now]:
        del _CREATED[key]
    while len(_CREATED) >= _CREATED_MAX_SIZE:
        # Insertion order: the oldest request goes first
        del _CREATED[next(iter(_CREATED))]
    _CREATED[request_id] = (workshop_id, now + settings.create_latch_ttl_seconds)


class BootstrapSeeder:
    """Clones the default step catalog into the store, at most once per workshop."""

    def __init__(self, store: StepStore, catalog: Iterable[CatalogEntry] = DEFAULT_CATALOG):
        self.store = store
        self.catalog = validate_catalog(catalog)

    async def ensure_steps(self, workshop_id: str, steps: Optional[List[Step]] = None) -> List[Step]:
        """Return the workshop's steps, seeding the catalog first when there are none."""
        if steps:
            return steps
        async with _latch(f"seed:{workshop_id}"):
            # Re-read under the lock: a concurrent opener may have seeded already
            existing = await self.store.load_steps(workshop_id)
            if existing:
                return existing
            logger.info(f"No steps found for workshop {workshop_id}, creating from default catalog")
            return await self.store.seed_steps(workshop_id, self.catalog)

    async def create_workshop(
        self,
        payload: WorkshopCreate,
        principal: Principal,
    ) -> Tuple[Workshop, List[Step]]:
        """Create a workshop with its catalog steps.

        Requests carrying a request_id seen within `create_latch_ttl_seconds`
        return the workshop created the first time instead of creating another one.
        """
        if payload.request_id is None:
            return await self.store.create_workshop_with_steps(payload, principal, self.catalog)
        async with _latch(f"create:{payload.request_id}"):
            workshop_id = _created_workshop(payload.request_id, time.monotonic())
            if workshop_id is not None:
                logger.info(f"Request {payload.request_id} already created workshop {workshop_id}")
                workshop = await self.store.load_workshop(workshop_id)
                return workshop, await self.store.load_steps(workshop_id)
            workshop, steps = await self.store.create_workshop_with_steps(payload, principal, self.catalog)
            _remember_created(payload.request_id, workshop.id, time.monotonic())
            return workshop, steps


def reset_latches():
    _LOCKS.clear()
    _CREATED.clear()
