import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional

from app.core.errors import NotFound, OperationInProgress
from app.modules.auth.schemas import Principal
from app.modules.workshops.guard import DirtyStateGuard
from app.modules.workshops.progression import Progress, compute_progress, derive_effective_list
from app.modules.workshops.schemas import Notice, Step, Workshop

logger = logging.getLogger(__name__)


@dataclass
class WorkshopSession:
    """State of one user's open workshop.

    `steps` holds the persisted steps only. The effective list, including the
    synthetic report step, is derived from it on every access.
    """
    workshop: Workshop
    steps: List[Step]
    principal: Principal
    guard: DirtyStateGuard = field(default_factory=DirtyStateGuard)
    selected_step_id: Optional[str] = None
    notices: List[Notice] = field(default_factory=list)
    busy: bool = False
    closed: bool = False
    touched_at: float = field(default_factory=time.monotonic)

    @property
    def progress(self) -> Progress:
        return compute_progress(self.steps)

    @property
    def effective_steps(self) -> List[Step]:
        return derive_effective_list(self.steps, self.progress.all_complete)

    def find_step(self, step_id: str) -> Step:
        for step in self.effective_steps:
            if step.id == step_id:
                return step
        raise NotFound(f"Step {step_id} not found in this workshop")

    @property
    def selected_step(self) -> Optional[Step]:
        if self.selected_step_id is None:
            return None
        try:
            return self.find_step(self.selected_step_id)
        except NotFound:
            return None

    def select(self, step: Step) -> None:
        self.selected_step_id = step.id
        self.guard.track(step)

    def select_first(self) -> None:
        effective = self.effective_steps
        if effective:
            self.select(effective[0])

    def replace_step(self, step: Step) -> None:
        self.steps = [step if s.id == step.id else s for s in self.steps]

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        self.notices.append(Notice(title=title, description=description, variant=variant))

    def drain_notices(self) -> List[Notice]:
        notices, self.notices = self.notices, []
        return notices

    def ensure_idle(self) -> None:
        """Controls stay disabled while a save or lock toggle is running."""
        if self.busy:
            logger.warning(f"Rejected operation on workshop {self.workshop.id}: a write is in flight")
            raise OperationInProgress()

    @contextmanager
    def in_flight(self):
        """Marks a save or lock toggle as running; a second one is refused until it ends."""
        self.ensure_idle()
        self.busy = True
        try:
            yield
        finally:
            self.busy = False
