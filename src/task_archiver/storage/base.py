"""Permanent storage interface."""

from __future__ import annotations

from typing import Protocol

from task_archiver.models import TaskSnapshot


class PermanentStorage(Protocol):
    """Durable backend that finalized task outputs are copied into."""

    def archive(self, task: TaskSnapshot) -> None:
        """Copy the task output into durable storage; raise OSError on failure."""

    def delete(self, task: TaskSnapshot) -> None:
        """Remove the task's durable artifact; raise OSError on failure."""
