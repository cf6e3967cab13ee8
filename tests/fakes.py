"""Test doubles for permanent storage and the catalog."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from sqlalchemy.exc import OperationalError

from task_archiver.catalog import Catalog, SqlCatalog
from task_archiver.lifecycle import Archiver, TempStorage
from task_archiver.models import CycleReport, StateTransition, TaskSnapshot, TaskState
from task_archiver.storage.base import PermanentStorage


class RecordingStorage:
    """Permanent storage double that records calls and fails on demand."""

    def __init__(
        self,
        *,
        fail_archive: tuple[str, ...] = (),
        fail_delete: tuple[str, ...] = (),
    ) -> None:
        self.fail_archive = set(fail_archive)
        self.fail_delete = set(fail_delete)
        self.archive_calls: list[tuple[str, TaskState]] = []
        self.delete_calls: list[str] = []

    def archive(self, task: TaskSnapshot) -> None:
        self.archive_calls.append((task.task_id, task.state))
        if task.task_id in self.fail_archive:
            raise OSError(f"permanent storage unavailable for {task.task_id}")

    def delete(self, task: TaskSnapshot) -> None:
        self.delete_calls.append(task.task_id)
        if task.task_id in self.fail_delete:
            raise OSError(f"cannot delete artifact of {task.task_id}")


class FlakyCatalog:
    """Delegates to a real catalog, raising database errors when asked."""

    def __init__(self, catalog: SqlCatalog) -> None:
        self.catalog = catalog
        self.fail_queries = False
        self.fail_writes = False
        self.fail_timestamps = False
        self.write_attempts = 0

    def list_tasks_by_state(self, state: TaskState) -> list[TaskSnapshot]:
        if self.fail_queries:
            raise db_error("SELECT tasks")
        return self.catalog.list_tasks_by_state(state)

    def apply_transition(self, transition: StateTransition) -> bool:
        self.write_attempts += 1
        if self.fail_writes:
            raise db_error("UPDATE tasks")
        return self.catalog.apply_transition(transition)

    def record_state_change_timestamp(self, task: TaskSnapshot) -> bool:
        if self.fail_timestamps:
            raise db_error("INSERT INTO task_timestamps")
        return self.catalog.record_state_change_timestamp(task)


def db_error(statement: str) -> OperationalError:
    return OperationalError(statement, {}, Exception("database is locked"))


def make_task_dir(temp_root: Path, task_id: str) -> Path:
    output_dir = temp_root / task_id / "processing"
    output_dir.mkdir(parents=True)
    (output_dir / "output.txt").write_text("result", "utf-8")
    return temp_root / task_id


def build_archiver(
    catalog: Catalog,
    storage: PermanentStorage,
    temp_root: Path,
    *,
    debug_mode: bool = False,
    enforce_ownership: bool = False,
    on_cycle: Callable[[CycleReport], None] | None = None,
) -> Archiver:
    return Archiver(
        catalog=catalog,
        permanent_storage=storage,
        temp_storage=TempStorage(
            root=temp_root,
            permanent_storage=storage,
            debug_mode=debug_mode,
        ),
        gc_period_seconds=60,
        archiver_period_seconds=60,
        enforce_ownership=enforce_ownership,
        on_cycle=on_cycle,
    )
