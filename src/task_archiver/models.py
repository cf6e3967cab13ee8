"""Domain models for the archival lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from pathlib import PurePath

# Fixed values written on every transition performed by the archiver.
STATUS_AVAILABLE = "available"
ERROR_NONE = "NE"
JOB_ID_NONE = "NE"


class TaskState(str, Enum):
    """Task lifecycle states stored in the catalog.

    Only FINISHED, ARCHIVING, ARCHIVED and FAILED are driven here; the
    other states belong to upstream processing.
    """

    CREATED = "created"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    PREPROCESSING = "preprocessing"
    READY = "ready"
    RUNNING = "running"
    FINISHED = "finished"
    ARCHIVING = "archiving"
    ARCHIVED = "archived"
    FAILED = "failed"


class TaskOutcome(str, Enum):
    """Result of processing one task inside a cycle."""

    OK = "ok"
    SKIPPED = "skipped"
    CATALOG_ERROR = "catalog_error"
    STORAGE_ERROR = "storage_error"
    FILESYSTEM_ERROR = "filesystem_error"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(slots=True, frozen=True)
class TaskSnapshot:
    """Read-only view of a catalog task taken at query time."""

    task_id: str
    state: TaskState
    status: str
    error: str | None
    external_job_ref: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True, frozen=True)
class StateTransition:
    """Single atomic write of state, status, error and job reference.

    When `expected_state` is set the catalog applies the write only while the
    row is still in that state.
    """

    task_id: str
    state: TaskState
    status: str = STATUS_AVAILABLE
    error: str = ERROR_NONE
    external_job_ref: str = JOB_ID_NONE
    expected_state: TaskState | None = None

    def applied_to(self, task: TaskSnapshot, *, at: datetime | None = None) -> TaskSnapshot:
        """Return the snapshot as it looks once this transition is persisted."""

        return replace(
            task,
            state=self.state,
            status=self.status,
            error=self.error,
            external_job_ref=self.external_job_ref,
            updated_at=at or task.updated_at,
        )


@dataclass(slots=True, frozen=True)
class TaskTimestampView:
    """One row of the append-only state change history."""

    task_id: str
    state: TaskState
    status: str
    recorded_at: datetime


@dataclass(slots=True)
class CycleReport:
    """Aggregate per-task outcomes of one loop pass."""

    name: str
    tasks_seen: int = 0
    ok: int = 0
    skipped: int = 0
    catalog_errors: int = 0
    storage_errors: int = 0
    filesystem_errors: int = 0
    unexpected_errors: int = 0
    query_failed: bool = False

    def record(self, outcome: TaskOutcome) -> None:
        if outcome == TaskOutcome.OK:
            self.ok += 1
        elif outcome == TaskOutcome.SKIPPED:
            self.skipped += 1
        elif outcome == TaskOutcome.CATALOG_ERROR:
            self.catalog_errors += 1
        elif outcome == TaskOutcome.STORAGE_ERROR:
            self.storage_errors += 1
        elif outcome == TaskOutcome.FILESYSTEM_ERROR:
            self.filesystem_errors += 1
        else:
            self.unexpected_errors += 1

    @property
    def failures(self) -> int:
        return (
            self.catalog_errors
            + self.storage_errors
            + self.filesystem_errors
            + self.unexpected_errors
        )

    def merge(self, other: CycleReport) -> None:
        """Accumulate another report into this one (used for run totals)."""

        self.tasks_seen += other.tasks_seen
        self.ok += other.ok
        self.skipped += other.skipped
        self.catalog_errors += other.catalog_errors
        self.storage_errors += other.storage_errors
        self.filesystem_errors += other.filesystem_errors
        self.unexpected_errors += other.unexpected_errors
        self.query_failed = self.query_failed or other.query_failed

    def summary_line(self) -> str:
        return (
            f"{self.name} cycle: tasks={self.tasks_seen} ok={self.ok} "
            f"skipped={self.skipped} catalog_errors={self.catalog_errors} "
            f"storage_errors={self.storage_errors} "
            f"filesystem_errors={self.filesystem_errors} "
            f"unexpected_errors={self.unexpected_errors} "
            f"query_failed={'yes' if self.query_failed else 'no'}"
        )


def first_failure(*outcomes: TaskOutcome) -> TaskOutcome:
    """Collapse the outcomes of one task's steps into the first non-ok one."""

    for outcome in outcomes:
        if outcome not in {TaskOutcome.OK, TaskOutcome.SKIPPED}:
            return outcome
    if TaskOutcome.SKIPPED in outcomes:
        return TaskOutcome.SKIPPED
    return TaskOutcome.OK


def task_path_component(task_id: str) -> str:
    """Return `task_id` when it is a single, plain directory name.

    Storage layouts keep one directory per task, so an id such as `..` or
    `a/b` would point outside the storage root.
    """

    if not task_id or task_id in {".", ".."} or PurePath(task_id).name != task_id:
        raise ValueError(f"Task id cannot be used as a directory name: {task_id!r}")
    return task_id
