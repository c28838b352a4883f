import logging
from typing import Callable, Optional

from app.core.errors import InvalidOperation, StepNotEditable, WorkshopError
from app.modules.workshops.progression import status_for
from app.modules.workshops.schemas import NavigationAction
from app.modules.workshops.session import WorkshopSession
from app.modules.workshops.store import StepStore, utcnow

logger = logging.getLogger(__name__)


class SaveCoordinator:
    """
    Persists content edits and lock toggles of the selected step.

    Neither operation is transactional: each issues two dependent writes. A
    failure after the first write of a lock toggle leaves the step written and
    the workshop aggregate stale until the next load recomputes it.
    """

    def __init__(self, store: StepStore):
        self.store = store

    async def save_content(
        self,
        session: WorkshopSession,
        on_saved: Optional[Callable[[NavigationAction], None]] = None,
    ) -> bool:
        """Write the guard's draft. Returns True when it reached the store.

        A navigation deferred behind the draft is released by the guard once the
        save lands and handed to `on_saved`.
        """
        step = session.selected_step
        if step is None:
            raise InvalidOperation("No step is selected")
        if not step.kind.editable or step.is_locked:
            raise StepNotEditable(f'"{step.name}" cannot be edited')
        if not session.guard.is_dirty:
            return False

        content = session.guard.content
        workshop_id = session.workshop.id
        with session.in_flight():
            try:
                await self.store.update_step_content(workshop_id, step.id, content)
                updated_at = await self.store.update_workshop_aggregate(workshop_id)
            except WorkshopError as e:
                logger.error(f"Error saving step {step.id} of workshop {workshop_id}: {e.detail}")
                session.notify("Error", "Failed to save changes.", "destructive")
                return False

        session.replace_step(step.model_copy(update={"content": content, "updated_at": utcnow()}))
        session.workshop = session.workshop.model_copy(update={"updated_at": updated_at})
        action = None
        if session.guard.step_id == step.id:
            action = session.guard.mark_saved(content)
        logger.info(f"Saved content of step {step.id} in workshop {workshop_id}")
        session.notify("Saved!", f'Your changes to "{step.name}" have been saved.')
        if action is not None and on_saved is not None:
            on_saved(action)
        return True

    async def toggle_lock(self, session: WorkshopSession) -> bool:
        """Flip the lock of the selected step and refresh the workshop aggregate."""
        step = session.selected_step
        if step is None:
            raise InvalidOperation("No step is selected")
        if session.guard.is_dirty:
            logger.warning(f"Refused lock toggle on workshop {session.workshop.id}: unsaved changes")
            session.notify(
                "Unsaved Changes",
                "Please save your changes before marking this step as complete.",
                "destructive",
            )
            return False
        if not step.kind.lockable:
            raise StepNotEditable(f'"{step.name}" cannot be marked as complete')

        workshop_id = session.workshop.id
        locked = not step.is_locked
        with session.in_flight():
            session.replace_step(step.model_copy(update={"is_locked": locked}))
            try:
                step_updated_at = await self.store.update_step_lock(workshop_id, step.id, locked)
            except WorkshopError as e:
                session.replace_step(step)
                logger.error(f"Error updating lock of step {step.id} in workshop {workshop_id}: {e.detail}")
                session.notify("Error", "Could not update step completion status.", "destructive")
                return False

            session.replace_step(step.model_copy(update={"is_locked": locked, "updated_at": step_updated_at}))
            progress = session.progress
            status = status_for(progress.all_complete)
            try:
                updated_at = await self.store.update_workshop_aggregate(
                    workshop_id, status=status, current_step=progress.completed_count
                )
            except WorkshopError as e:
                logger.error(f"Workshop {workshop_id} aggregate is stale after lock toggle: {e.detail}")
                session.notify("Error", "Step updated, but workshop progress could not be saved.", "destructive")
            else:
                session.workshop = session.workshop.model_copy(update={
                    "status": status,
                    "current_step": progress.completed_count,
                    "updated_at": updated_at,
                })

        if session.selected_step_id == step.id:
            session.guard.track(session.find_step(step.id))
        logger.info(f"Step {step.id} of workshop {workshop_id} {'locked' if locked else 'unlocked'}")
        session.notify(
            f"Step {'Completed' if locked else 'Re-opened'}",
            f'Step "{step.name}" has been {"marked as complete" if locked else "re-opened"}.',
        )
        return True
