import copy
import logging
from enum import Enum
from typing import Any, Optional

from app.core.errors import InvalidOperation
from app.modules.workshops.schemas import NavigationAction, Step

logger = logging.getLogger(__name__)


class GuardState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    PENDING_DECISION = "pending_decision"


class DirtyStateGuard:
    """
    Tracks unsaved edits of the open step and holds back navigation while they exist.

    The guard keeps the last persisted content of the step (the baseline) and the
    local draft. Navigation requested while dirty is parked as a single deferred
    action until the user decides to save, discard or cancel. At most one action
    is ever pending; further requests are ignored until the decision is made.
    """

    def __init__(self):
        self.state = GuardState.CLEAN
        self.pending: Optional[NavigationAction] = None
        self.step_id: Optional[str] = None
        self._baseline: Any = None
        self._draft: Any = None

    def track(self, step: Step) -> None:
        """Start tracking a freshly opened step. Drops any draft."""
        self.step_id = step.id
        self._baseline = copy.deepcopy(step.content)
        self._draft = None
        self.state = GuardState.CLEAN
        self.pending = None

    @property
    def is_dirty(self) -> bool:
        return self.state is not GuardState.CLEAN

    @property
    def baseline(self) -> Any:
        return copy.deepcopy(self._baseline)

    @property
    def content(self) -> Any:
        """Content the editor should show: the draft when dirty, the persisted value otherwise."""
        return copy.deepcopy(self._draft if self.is_dirty else self._baseline)

    def edit(self, step: Step, content: Any) -> bool:
        """Apply an edit to the tracked step. Returns True when the step is now dirty."""
        if step.id != self.step_id:
            raise InvalidOperation("Only the open step can be edited")
        if step.is_locked or not step.kind.editable:
            logger.debug(f"Ignoring edit of read-only step {step.id}")
            return False
        if self.state is GuardState.PENDING_DECISION:
            return True
        if content == self._baseline:
            self._draft = None
            self.state = GuardState.CLEAN
            return False
        self._draft = copy.deepcopy(content)
        self.state = GuardState.DIRTY
        return True

    def request(self, action: NavigationAction) -> Optional[NavigationAction]:
        """Return the action when it may run now, or None when it was deferred or ignored."""
        if self.state is GuardState.CLEAN:
            return action
        if self.state is GuardState.DIRTY:
            self.pending = action
            self.state = GuardState.PENDING_DECISION
            return None
        logger.debug(f"Ignoring navigation {action.type}: a decision is already pending")
        return None

    def _require_pending(self) -> None:
        if self.state is not GuardState.PENDING_DECISION:
            raise InvalidOperation("There is no pending navigation to decide on")

    def cancel(self) -> None:
        self._require_pending()
        self.pending = None
        self.state = GuardState.DIRTY

    def discard(self) -> Optional[NavigationAction]:
        """Drop the draft and hand back the deferred action."""
        self._require_pending()
        action = self.pending
        self.pending = None
        self._draft = None
        self.state = GuardState.CLEAN
        return action

    def mark_saved(self, content: Any) -> Optional[NavigationAction]:
        """The draft reached the store: it becomes the baseline. Returns any deferred action."""
        action = self.pending
        self.pending = None
        self._baseline = copy.deepcopy(content)
        self._draft = None
        self.state = GuardState.CLEAN
        return action
