"""Catalog contract consumed by the archival loops."""

from __future__ import annotations

from typing import Protocol

from task_archiver.models import StateTransition, TaskSnapshot, TaskState


class Catalog(Protocol):
    """Metadata store of record for task state and history.

    `list_tasks_by_state` plus a transition carrying `expected_state` is enough
    to build compare-and-set ownership on top of it.
    """

    def list_tasks_by_state(self, state: TaskState) -> list[TaskSnapshot]:
        """Return a snapshot of every task currently in `state`."""

    def apply_transition(self, transition: StateTransition) -> bool:
        """Persist state/status/error/job reference; False if nothing was written."""

    def record_state_change_timestamp(self, task: TaskSnapshot) -> bool:
        """Append one state change history row for `task`."""
