from app.core.errors import NotFound
from app.database.document_store import DocumentStore
from app.modules.auth.schemas import Principal
from app.modules.workshops import registry
from app.modules.workshops.controller import WorkshopController
from app.modules.workshops.schemas import (
    Decision, NavigationAction, ProgressResponse, SessionView, WorkshopCreate, WorkshopReportData,
)
from app.modules.workshops.seeder import BootstrapSeeder
from app.modules.workshops.session import WorkshopSession
from app.modules.workshops.progression import status_for
from app.modules.workshops.store import StepStore
from typing import Any
import logging

logger = logging.getLogger(__name__)


class WorkshopService:
    def __init__(self, documents: DocumentStore):
        self.store = StepStore(documents)
        self.controller = WorkshopController(self.store, BootstrapSeeder(self.store))

    async def _session(self, workshop_id: str, principal: Principal) -> WorkshopSession:
        """Return the caller's open session, opening the workshop when there is none."""
        session = registry.get_session(principal.id, workshop_id)
        if session is None or session.closed:
            session = await self.controller.open(workshop_id, principal)
            registry.register(session)
        return session

    async def create_workshop(self, workshop_data: WorkshopCreate, principal: Principal) -> SessionView:
        """Create a new workshop with the default steps and open it"""
        session = await self.controller.create(workshop_data, principal)
        registry.register(session)
        return self.controller.view(session)

    async def open_workshop(self, workshop_id: str, principal: Principal) -> SessionView:
        """Load the workshop fresh from the store, unless the open step holds unsaved edits or a write is in flight."""
        session = registry.get_session(principal.id, workshop_id)
        if session is not None and not session.closed and (session.guard.is_dirty or session.busy):
            return self.controller.view(session)
        selected_step_id = session.selected_step_id if session is not None and not session.closed else None
        fresh = await self.controller.open(workshop_id, principal)
        if selected_step_id is not None:
            try:
                fresh.select(fresh.find_step(selected_step_id))
            except NotFound:
                logger.debug(f"Step {selected_step_id} no longer in workshop {workshop_id}")
        registry.register(fresh)
        return self.controller.view(fresh)

    async def rename_workshop(self, workshop_id: str, name: str, principal: Principal) -> SessionView:
        session = await self._session(workshop_id, principal)
        await self.controller.rename(session, name)
        return self.controller.view(session)

    async def get_progress(self, workshop_id: str, principal: Principal) -> ProgressResponse:
        session = await self._session(workshop_id, principal)
        progress = session.progress
        return ProgressResponse(
            completed_count=progress.completed_count,
            total_counted=progress.total_counted,
            all_complete=progress.all_complete,
            status=status_for(progress.all_complete),
        )

    async def get_report(self, workshop_id: str, principal: Principal) -> WorkshopReportData:
        session = await self._session(workshop_id, principal)
        return self.controller.report(session)

    async def edit_step(self, workshop_id: str, content: Any, principal: Principal) -> SessionView:
        session = await self._session(workshop_id, principal)
        self.controller.edit(session, content)
        return self.controller.view(session)

    async def navigate(self, workshop_id: str, action: NavigationAction, principal: Principal) -> SessionView:
        session = await self._session(workshop_id, principal)
        self.controller.navigate(session, action)
        return self._finish(session)

    async def decide(self, workshop_id: str, decision: Decision, principal: Principal) -> SessionView:
        session = await self._session(workshop_id, principal)
        await self.controller.resolve(session, decision)
        return self._finish(session)

    async def save_step(self, workshop_id: str, principal: Principal) -> SessionView:
        session = await self._session(workshop_id, principal)
        await self.controller.save(session)
        return self._finish(session)

    async def toggle_lock(self, workshop_id: str, principal: Principal) -> SessionView:
        session = await self._session(workshop_id, principal)
        await self.controller.toggle_lock(session)
        return self.controller.view(session)

    def _finish(self, session: WorkshopSession) -> SessionView:
        """Build the response and forget sessions that navigated out of the workshop."""
        view = self.controller.view(session)
        if session.closed:
            registry.unregister(session.principal.id, session.workshop.id)
            logger.info(f"User {session.principal.id} left workshop {session.workshop.id}")
        return view

