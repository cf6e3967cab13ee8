"""Archival state machine and the shared transition applier."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from task_archiver.catalog.base import Catalog
from task_archiver.catalog.common import utc_now
from task_archiver.models import (
    ERROR_NONE,
    JOB_ID_NONE,
    STATUS_AVAILABLE,
    StateTransition,
    TaskOutcome,
    TaskSnapshot,
    TaskState,
)

logger = logging.getLogger(__name__)

# ARCHIVING -> FINISHED is the startup recovery rule.
ALLOWED_TRANSITIONS: dict[TaskState, frozenset[TaskState]] = {
    TaskState.FINISHED: frozenset({TaskState.ARCHIVING}),
    TaskState.ARCHIVING: frozenset({TaskState.ARCHIVED, TaskState.FAILED, TaskState.FINISHED}),
}


def can_transition(current: TaskState, target: TaskState) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


@dataclass(slots=True, frozen=True)
class TransitionResult:
    """Outcome of one state change plus the snapshot as it now should read.

    `rejected` means the ownership check failed: the row had already left the
    state the caller saw, so the caller no longer owns the task.
    """

    outcome: TaskOutcome
    task: TaskSnapshot
    rejected: bool = False


class TransitionApplier:
    """Single path through which the archiver changes task state.

    Every transition resets status, error and job reference to their fixed
    values, writes the four fields as one command and appends a timestamp row
    once the write is applied. Catalog failures are logged and reported as
    CATALOG_ERROR, never raised.
    """

    def __init__(self, catalog: Catalog, *, enforce_ownership: bool = False) -> None:
        self.catalog = catalog
        self.enforce_ownership = enforce_ownership

    def change_state(self, task: TaskSnapshot, new_state: TaskState) -> TransitionResult:
        logger.info("Change task [%s] to %s", task.task_id, new_state.value)
        if not can_transition(task.state, new_state):
            logger.warning(
                "Unexpected transition of task [%s]: %s -> %s",
                task.task_id,
                task.state.value,
                new_state.value,
            )

        transition = StateTransition(
            task_id=task.task_id,
            state=new_state,
            status=STATUS_AVAILABLE,
            error=ERROR_NONE,
            external_job_ref=JOB_ID_NONE,
            expected_state=task.state if self.enforce_ownership else None,
        )
        updated = transition.applied_to(task, at=utc_now())

        try:
            applied = self.catalog.apply_transition(transition)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Catalog failed to update state to %s for task [%s]",
                new_state.value,
                task.task_id,
            )
            return TransitionResult(outcome=TaskOutcome.CATALOG_ERROR, task=updated)

        if not applied:
            if self.enforce_ownership:
                logger.warning(
                    "Task [%s] is no longer %s, leaving it to its current owner",
                    task.task_id,
                    task.state.value,
                )
                return TransitionResult(outcome=TaskOutcome.SKIPPED, task=task, rejected=True)
            logger.error("Catalog has no task [%s] to update", task.task_id)
            return TransitionResult(outcome=TaskOutcome.CATALOG_ERROR, task=updated)

        try:
            stamped = self.catalog.record_state_change_timestamp(updated)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Catalog failed to record state change time of task [%s]",
                task.task_id,
            )
            stamped = False
        outcome = TaskOutcome.OK if stamped else TaskOutcome.CATALOG_ERROR
        return TransitionResult(outcome=outcome, task=updated)
