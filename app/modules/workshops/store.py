import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.core.errors import NotFound
from app.database.document_store import DocumentStore, WriteBatch
from app.modules.auth.schemas import Principal
from app.modules.workshops.catalog import AGENDA_STEP_NAME, CatalogEntry, StepKind, validate_catalog
from app.modules.workshops.models import WORKSHOPS_COLLECTION, steps_collection
from app.modules.workshops.schemas import Step, Workshop, WorkshopCreate

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def step_from_document(doc: Dict[str, Any]) -> Step:
    """Build a Step, filling the defaults older documents may lack."""
    data = dict(doc)
    data.pop("workshop_id", None)
    name = data.get("name") or data.pop("template_name", "")
    data["name"] = name
    if data.get("is_locked") is None:
        data["is_locked"] = False
    if data.get("is_counted") is None:
        data["is_counted"] = name != AGENDA_STEP_NAME
    if data.get("content") is None:
        data["content"] = {}
    return Step(**data)


class StepStore:
    """Workshop aggregate and its ordered steps on top of a DocumentStore."""

    def __init__(self, documents: DocumentStore):
        self.documents = documents

    async def load_workshop(self, workshop_id: str) -> Workshop:
        doc = await self.documents.get(WORKSHOPS_COLLECTION, workshop_id)
        if not doc:
            raise NotFound("Workshop not found or access denied.")
        return Workshop(**doc)

    async def load_steps(self, workshop_id: str) -> List[Step]:
        docs = await self.documents.list(steps_collection(workshop_id), order_by="step_number")
        steps = [step_from_document(doc) for doc in docs]
        steps.sort(key=lambda s: s.step_number)
        return steps

    def _add_catalog(self, batch: WriteBatch, workshop_id: str, catalog: Iterable[CatalogEntry]) -> List[Step]:
        now = utcnow()
        steps = []
        for entry in validate_catalog(catalog):
            step_id = new_id()
            document = {**entry.as_document(), "updated_at": now.isoformat()}
            batch.set(steps_collection(workshop_id), step_id, document)
            steps.append(step_from_document({**document, "id": step_id, "updated_at": now}))
        return steps

    async def create_workshop_with_steps(
        self,
        payload: WorkshopCreate,
        principal: Principal,
        catalog: Iterable[CatalogEntry],
    ) -> Tuple[Workshop, List[Step]]:
        """Create the workshop and all of its catalog steps in one batch."""
        now = utcnow()
        workshop_id = new_id()
        entries = validate_catalog(catalog)
        workshop = Workshop(
            id=workshop_id,
            name=payload.name,
            created_by=principal.id,
            workspace_id=payload.workspace_id,
            participants=list(payload.participants),
            is_public=False,
            share_token=None,
            status="in_progress",
            current_step=0,
            total_steps=sum(1 for e in entries if e.is_counted and StepKind.for_name(e.name).counted),
            created_at=now,
            updated_at=now,
        )
        # Parent first so the steps' foreign key is satisfied inside the transaction
        batch = WriteBatch().set(WORKSHOPS_COLLECTION, workshop_id, workshop.model_dump(mode="json", exclude={"id"}))
        steps = self._add_catalog(batch, workshop_id, entries)
        await self.documents.commit(batch)
        logger.info(f"Created workshop {workshop_id} with {len(steps)} step(s) for user {principal.id}")
        return workshop, steps

    async def seed_steps(self, workshop_id: str, catalog: Iterable[CatalogEntry]) -> List[Step]:
        batch = WriteBatch()
        steps = self._add_catalog(batch, workshop_id, catalog)
        await self.documents.commit(batch)
        logger.info(f"Seeded {len(steps)} default step(s) into workshop {workshop_id}")
        return steps

    async def update_step_content(self, workshop_id: str, step_id: str, content: Any) -> None:
        await self.documents.update(steps_collection(workshop_id), step_id, {
            "content": content,
            "updated_at": utcnow().isoformat(),
        })

    async def update_step_lock(self, workshop_id: str, step_id: str, locked: bool) -> datetime:
        now = utcnow()
        await self.documents.update(steps_collection(workshop_id), step_id, {
            "is_locked": locked,
            "updated_at": now.isoformat(),
        })
        return now

    async def update_workshop_aggregate(
        self,
        workshop_id: str,
        status: Optional[str] = None,
        current_step: Optional[int] = None,
        total_steps: Optional[int] = None,
    ) -> datetime:
        """Write whichever aggregate fields are given and bump updated_at. Returns the new timestamp."""
        now = utcnow()
        update_data: Dict[str, Any] = {"updated_at": now.isoformat()}
        if status is not None:
            update_data["status"] = status
        if current_step is not None:
            update_data["current_step"] = current_step
        if total_steps is not None:
            update_data["total_steps"] = total_steps
        await self.documents.update(WORKSHOPS_COLLECTION, workshop_id, update_data)
        return now

    async def rename_workshop(self, workshop_id: str, name: str) -> datetime:
        now = utcnow()
        await self.documents.update(WORKSHOPS_COLLECTION, workshop_id, {"name": name, "updated_at": now.isoformat()})
        return now
