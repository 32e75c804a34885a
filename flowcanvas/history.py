"""
Linear undo/redo history over full canvas snapshots.

commit() records a new present only when the updater actually changed the
snapshot. Pointer events that produce no net change therefore never grow
the undo stack and never discard the redo stack.
"""

import logging
from typing import Callable, List

from flowcanvas.models import Snapshot

logger = logging.getLogger(__name__)

Updater = Callable[[Snapshot], Snapshot]


class HistoryStore:
    """
    Holds {past, present, future}.

    past[-1] is the most recent undo target; future[0] is the next redo target.
    """

    def __init__(self, initial: Snapshot = None):
        self.past: List[Snapshot] = []
        self.present: Snapshot = initial if initial is not None else Snapshot()
        self.future: List[Snapshot] = []

    @property
    def can_undo(self) -> bool:
        return len(self.past) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.future) > 0

    def commit(self, updater: Updater) -> bool:
        """
        Apply updater to the present snapshot.

        Returns True if a history entry was recorded, False for a no-op.
        """
        next_state = updater(self.present)
        if next_state == self.present:
            logger.debug("No-op commit absorbed")
            return False
        self.past.append(self.present)
        self.present = next_state
        self.future = []
        return True

    def undo(self) -> bool:
        if not self.past:
            return False
        previous = self.past.pop()
        self.future.insert(0, self.present)
        self.present = previous
        return True

    def redo(self) -> bool:
        if not self.future:
            return False
        following = self.future.pop(0)
        self.past.append(self.present)
        self.present = following
        return True

    def reset(self, snapshot: Snapshot) -> None:
        """Replace the present and clear both stacks (load version, import)."""
        self.past = []
        self.present = snapshot
        self.future = []
