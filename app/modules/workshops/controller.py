import logging
from typing import Any, Optional

from app.core.dependencies import check_workshop_access
from app.core.errors import InvalidOperation, WorkshopError
from app.modules.auth.schemas import Principal
from app.modules.workshops.catalog import StepKind
from app.modules.workshops.coordinator import SaveCoordinator
from app.modules.workshops.guard import GuardState
from app.modules.workshops.progression import aggregate_for, aggregate_is_stale, compute_progress
from app.modules.workshops.schemas import (
    Decision, NavigateBack, NavigateNext, NavigatePrevious, NavigateToStep, NavigationAction,
    ReportStep, SessionView, WorkshopCreate, WorkshopReportData,
)
from app.modules.workshops.seeder import BootstrapSeeder
from app.modules.workshops.session import WorkshopSession
from app.modules.workshops.store import StepStore, utcnow

logger = logging.getLogger(__name__)


class WorkshopController:
    """Drives a WorkshopSession from UI events: open, edit, navigate, decide, save, lock."""

    def __init__(self, store: StepStore, seeder: BootstrapSeeder, coordinator: Optional[SaveCoordinator] = None):
        self.store = store
        self.seeder = seeder
        self.coordinator = coordinator or SaveCoordinator(store)

    async def open(self, workshop_id: str, principal: Principal) -> WorkshopSession:
        """Load the workshop, seed missing steps and repair a stale aggregate."""
        workshop = await self.store.load_workshop(workshop_id)
        check_workshop_access(workshop, principal)
        steps = await self.seeder.ensure_steps(workshop_id, await self.store.load_steps(workshop_id))

        progress = compute_progress(steps)
        if aggregate_is_stale(workshop, progress):
            aggregate = aggregate_for(progress)
            logger.info(f"Repairing aggregate of workshop {workshop_id}: {aggregate}")
            updated_at = await self.store.update_workshop_aggregate(workshop_id, **aggregate)
            workshop = workshop.model_copy(update={**aggregate, "updated_at": updated_at})

        session = WorkshopSession(workshop=workshop, steps=steps, principal=principal)
        session.select_first()
        return session

    async def create(self, payload: WorkshopCreate, principal: Principal) -> WorkshopSession:
        workshop, steps = await self.seeder.create_workshop(payload, principal)
        session = WorkshopSession(workshop=workshop, steps=steps, principal=principal)
        session.select_first()
        session.notify("Workshop Created", f'Successfully created "{workshop.name}".')
        return session

    def edit(self, session: WorkshopSession, content: Any) -> bool:
        session.ensure_idle()
        step = session.selected_step
        if step is None:
            raise InvalidOperation("No step is selected")
        return session.guard.edit(step, content)

    def navigate(self, session: WorkshopSession, action: NavigationAction) -> bool:
        """Run the action now when clean, otherwise park it for a decision. Returns True if it ran."""
        session.ensure_idle()
        if isinstance(action, NavigateToStep):
            session.find_step(action.step_id)
        ready = session.guard.request(action)
        if ready is None:
            return False
        self._dispatch(session, ready)
        return True

    def _dispatch(self, session: WorkshopSession, action: NavigationAction) -> None:
        if isinstance(action, NavigateBack):
            session.closed = True
            return
        effective = session.effective_steps
        if isinstance(action, NavigateToStep):
            session.select(session.find_step(action.step_id))
            return
        ids = [s.id for s in effective]
        if session.selected_step_id not in ids:
            session.select_first()
            return
        index = ids.index(session.selected_step_id)
        if isinstance(action, NavigateNext) and index < len(effective) - 1:
            session.select(effective[index + 1])
        elif isinstance(action, NavigatePrevious) and index > 0:
            session.select(effective[index - 1])

    async def resolve(self, session: WorkshopSession, decision: Decision) -> None:
        session.ensure_idle()
        guard = session.guard
        if decision is Decision.CANCEL:
            guard.cancel()
            return
        if decision is Decision.DISCARD:
            action = guard.discard()
            if action is not None:
                self._dispatch(session, action)
            return
        if guard.state is not GuardState.PENDING_DECISION:
            raise InvalidOperation("There is no pending navigation to decide on")
        await self.save(session)

    async def save(self, session: WorkshopSession) -> bool:
        return await self.coordinator.save_content(session, on_saved=lambda action: self._dispatch(session, action))

    async def toggle_lock(self, session: WorkshopSession) -> bool:
        return await self.coordinator.toggle_lock(session)

    async def rename(self, session: WorkshopSession, name: str) -> bool:
        try:
            updated_at = await self.store.rename_workshop(session.workshop.id, name)
        except WorkshopError as e:
            logger.error(f"Error renaming workshop {session.workshop.id}: {e.detail}")
            session.notify("Error", "Could not rename workshop.", "destructive")
            return False
        session.workshop = session.workshop.model_copy(update={"name": name, "updated_at": updated_at})
        session.notify("Renamed", "Workshop has been renamed.")
        return True

    def report(self, session: WorkshopSession) -> WorkshopReportData:
        workshop = session.workshop
        return WorkshopReportData(
            workshop=workshop.name,
            steps=[
                ReportStep(name=s.name, step=s.step_number, content=s.content)
                for s in session.effective_steps
                if s.kind is not StepKind.REPORT
            ],
            status=workshop.status,
            progress=f"{workshop.current_step} / {workshop.total_steps}",
            participants=list(workshop.participants),
            generated_at=utcnow(),
        )

    def view(self, session: WorkshopSession) -> SessionView:
        selected = session.selected_step
        if selected is not None:
            selected = selected.model_copy(update={"content": session.guard.content})
        return SessionView(
            workshop=session.workshop,
            steps=session.effective_steps,
            selected_step=selected,
            guard_state=session.guard.state.value,
            pending_action=session.guard.pending,
            busy=session.busy,
            closed=session.closed,
            notices=session.drain_notices(),
        )
