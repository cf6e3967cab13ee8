"""Controllers for archiver CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from task_archiver.catalog import RetryingCatalog, SqlCatalog
from task_archiver.config import Settings
from task_archiver.lifecycle import Archiver, PeriodicScheduler, TempStorage
from task_archiver.models import CycleReport, TaskState
from task_archiver.storage import build_permanent_storage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunDaemonCommand:
    """CLI input for the long-running daemon."""

    db_path: Path | None
    gc_period_seconds: float | None = None
    archiver_period_seconds: float | None = None
    debug_mode: bool | None = None


@dataclass(slots=True)
class PassCommand:
    """CLI input for one recovery / gc / archive pass."""

    db_path: Path | None
    debug_mode: bool | None = None


@dataclass(slots=True)
class ListTasksCommand:
    """CLI input for task listing."""

    db_path: Path | None
    state: str | None
    limit: int


@dataclass(slots=True)
class InspectTaskCommand:
    """CLI input for task inspection."""

    db_path: Path | None
    task_id: str


@dataclass(slots=True)
class AddTaskCommand:
    """CLI input for registering a task."""

    db_path: Path | None
    task_id: str | None
    state: str


@dataclass(slots=True)
class StatsCommand:
    """CLI input for per-state counts."""

    db_path: Path | None


class ArchiverCliController:
    """Wires settings, catalog, storage and loops for CLI operations."""

    def run_daemon(
        self,
        command: RunDaemonCommand,
        *,
        scheduler: PeriodicScheduler | None = None,
    ) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        if command.gc_period_seconds is not None:
            settings.scheduler.gc_period_seconds = command.gc_period_seconds
        if command.archiver_period_seconds is not None:
            settings.scheduler.archiver_period_seconds = command.archiver_period_seconds
        if command.debug_mode is not None:
            settings.debug_mode = command.debug_mode
        settings.validate()

        scheduler = scheduler or PeriodicScheduler()
        with _catalog(settings) as catalog:
            archiver = _archiver(settings, catalog)
            recovery = archiver.start(scheduler)
            logger.info(
                "Archiver started: gc_period=%ss archiver_period=%ss debug_mode=%s",
                settings.scheduler.gc_period_seconds,
                settings.scheduler.archiver_period_seconds,
                settings.debug_mode,
            )
            scheduler.run_forever()

        return [recovery.summary_line(), "Archiver stopped."]

    def recover(self, command: PassCommand) -> list[str]:
        return self._run_pass(command, lambda archiver: archiver.recover())

    def collect_garbage(self, command: PassCommand) -> list[str]:
        return self._run_pass(command, lambda archiver: archiver.collect_garbage())

    def archive(self, command: PassCommand) -> list[str]:
        return self._run_pass(command, lambda archiver: archiver.archive_finished())

    def list_tasks(self, command: ListTasksCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        state = _parse_state(command.state)
        with _catalog(settings) as catalog:
            tasks = catalog.list_tasks(state=state, limit=command.limit)

        lines = [f"Tasks: {len(tasks)}"]
        for task in tasks:
            lines.append(
                f"  {task.task_id} state={task.state.value} status={task.status} "
                f"error={task.error or '-'} job={task.external_job_ref or '-'} "
                f"updated_at={task.updated_at.isoformat()}",
            )
        return lines

    def inspect_task(self, command: InspectTaskCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _catalog(settings) as catalog:
            task = catalog.get_task(task_id=command.task_id)
            history = catalog.list_timestamps(task_id=command.task_id)
        if task is None:
            return [f"Task not found: {command.task_id}"]

        lines = [
            f"Task: {task.task_id}",
            f"State: {task.state.value}",
            f"Status: {task.status}",
            f"Error: {task.error or '-'}",
            f"External job: {task.external_job_ref or '-'}",
            f"Created: {task.created_at.isoformat()}",
            f"Updated: {task.updated_at.isoformat()}",
            f"State changes: {len(history)}",
        ]
        for entry in history:
            lines.append(
                f"  {entry.recorded_at.isoformat()} state={entry.state.value} "
                f"status={entry.status}",
            )
        return lines

    def add_task(self, command: AddTaskCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        state = _parse_state(command.state) or TaskState.FINISHED
        with _catalog(settings) as catalog:
            task = catalog.add_task(task_id=command.task_id, state=state)
        return [f"Task added: task_id={task.task_id} state={task.state.value}"]

    def stats(self, command: StatsCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _catalog(settings) as catalog:
            counts = catalog.count_by_state()

        lines = [f"Tasks total: {sum(counts.values())}"]
        for state in TaskState:
            if state in counts:
                lines.append(f"  {state.value}: {counts[state]}")
        return lines

    def _run_pass(
        self,
        command: PassCommand,
        action: Callable[[Archiver], CycleReport],
    ) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        if command.debug_mode is not None:
            settings.debug_mode = command.debug_mode
        settings.validate(require_schedule=False)
        with _catalog(settings) as catalog:
            report = action(_archiver(settings, catalog))
        return [report.summary_line()]


@contextmanager
def _catalog(settings: Settings) -> Iterator[SqlCatalog]:
    catalog = SqlCatalog(
        settings.db_path,
        sqlite_busy_timeout_ms=settings.catalog.sqlite_busy_timeout_ms,
    )
    catalog.init_schema()
    try:
        yield catalog
    finally:
        catalog.close()


def _archiver(settings: Settings, catalog: SqlCatalog) -> Archiver:
    if settings.storage.temp_storage_path is None:
        raise RuntimeError("Settings must be validated before building the archiver.")
    permanent_storage = build_permanent_storage(settings)
    return Archiver(
        catalog=RetryingCatalog(
            catalog,
            attempts=settings.catalog.retry_attempts,
            delay_seconds=settings.catalog.retry_delay_seconds,
        ),
        permanent_storage=permanent_storage,
        temp_storage=TempStorage(
            root=settings.storage.temp_storage_path,
            permanent_storage=permanent_storage,
            debug_mode=settings.debug_mode,
        ),
        gc_period_seconds=settings.scheduler.gc_period_seconds or 0.0,
        archiver_period_seconds=settings.scheduler.archiver_period_seconds or 0.0,
        enforce_ownership=settings.catalog.enforce_ownership,
    )


def _parse_state(value: str | None) -> TaskState | None:
    if value is None:
        return None
    return TaskState(value.strip().lower())
