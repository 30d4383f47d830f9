"""Work item state machine.

Provides declarative status transitions for work items with callbacks
for side effects on the bound model (completion date, logging).
"""

from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from src.models.work import WorkStatus

if TYPE_CHECKING:
    from src.models.work import WorkItem

logger = structlog.get_logger()


class WorkStateMachine(StateMachine):
    """State machine for the work item lifecycle.

    States match the WorkStatus enum and are stored on ``WorkItem.status``:
    - pending: Work created, not yet done
    - completed: Work done, payment may still be outstanding
    - final_completed: Work done and fully paid (final)

    Transitions:
    - mark_completed: pending -> completed
    - finalize: completed -> final_completed

    The machine only knows which moves are legal. Whether the balance
    allows finalization is decided by the caller before triggering
    ``finalize``.
    """

    pending = State(initial=True, value=WorkStatus.PENDING)
    completed = State(value=WorkStatus.COMPLETED)
    final_completed = State(final=True, value=WorkStatus.FINAL_COMPLETED)

    mark_completed = pending.to(completed)
    finalize = completed.to(final_completed)

    def __init__(self, work: "WorkItem") -> None:
        """Bind the machine to a work item's status field.

        Args:
            work: Work item whose ``status`` drives the current state.
        """
        self.work = work
        super().__init__(model=work, state_field="status")

    def on_mark_completed(self, when: datetime) -> None:
        """Record when the work first left pending."""
        if self.work.completion_date is None:
            self.work.completion_date = when
        logger.info("work_completed", work_id=self.work.id)

    def on_finalize(self, when: datetime) -> None:
        """Backfill the completion date for works that never recorded one."""
        if self.work.completion_date is None:
            self.work.completion_date = when
        logger.info("work_finalized", work_id=self.work.id)


def create_state_machine(work: "WorkItem") -> WorkStateMachine:
    """Factory function to create a state machine for a work item.

    Args:
        work: Work item model instance

    Returns:
        WorkStateMachine initialized from the work's current status
    """
    return WorkStateMachine(work=work)


__all__ = [
    "TransitionNotAllowed",
    "WorkStateMachine",
    "create_state_machine",
]
