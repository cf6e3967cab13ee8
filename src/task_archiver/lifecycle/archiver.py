"""Archival lifecycle: startup recovery, garbage collector and archiver loops."""

from __future__ import annotations

import logging
from collections.abc import Callable

from task_archiver.catalog.base import Catalog
from task_archiver.errors import RecoveryError
from task_archiver.lifecycle.scheduler import PeriodicJob, PeriodicScheduler
from task_archiver.lifecycle.state_machine import TransitionApplier
from task_archiver.lifecycle.tempdata import TempStorage
from task_archiver.models import (
    CycleReport,
    TaskOutcome,
    TaskSnapshot,
    TaskState,
    first_failure,
)
from task_archiver.storage.base import PermanentStorage

logger = logging.getLogger(__name__)

GC_JOB_NAME = "garbage-collector"
ARCHIVER_JOB_NAME = "archiver"


class Archiver:
    """Drives tasks FINISHED -> ARCHIVING -> ARCHIVED | FAILED.

    Each loop owns the tasks it finds in "its" state for one cycle: the
    garbage collector sees FAILED, the archiver FINISHED. A task is in at most
    one of those states at a time, so the loops never process the same task.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        catalog: Catalog,
        permanent_storage: PermanentStorage,
        temp_storage: TempStorage,
        gc_period_seconds: float,
        archiver_period_seconds: float,
        enforce_ownership: bool = False,
        on_cycle: Callable[[CycleReport], None] | None = None,
    ) -> None:
        self.catalog = catalog
        self.permanent_storage = permanent_storage
        self.temp_storage = temp_storage
        self.gc_period_seconds = gc_period_seconds
        self.archiver_period_seconds = archiver_period_seconds
        self.transitions = TransitionApplier(catalog, enforce_ownership=enforce_ownership)
        self._on_cycle = on_cycle or (lambda _report: None)

    def start(self, scheduler: PeriodicScheduler) -> CycleReport:
        """Resolve interrupted archivals, then schedule both loops."""

        recovery = self.recover()
        scheduler.schedule(
            PeriodicJob(
                name=GC_JOB_NAME,
                interval_seconds=self.gc_period_seconds,
                action=self.collect_garbage,
            ),
        )
        scheduler.schedule(
            PeriodicJob(
                name=ARCHIVER_JOB_NAME,
                interval_seconds=self.archiver_period_seconds,
                action=self.archive_finished,
            ),
        )
        scheduler.start()
        return recovery

    def recover(self) -> CycleReport:
        """Move every ARCHIVING task back to FINISHED and drop partial archives.

        All state changes happen before any deletion, so every task is
        FINISHED in the catalog even if a later deletion fails.
        """

        report = CycleReport(name="recovery")
        try:
            tasks = self.catalog.list_tasks_by_state(TaskState.ARCHIVING)
        except Exception as error:
            raise RecoveryError("Could not list ARCHIVING tasks for startup recovery") from error

        report.tasks_seen = len(tasks)
        outcomes: dict[str, list[TaskOutcome]] = {task.task_id: [] for task in tasks}
        owned: list[TaskSnapshot] = []
        for task in tasks:
            result = self.transitions.change_state(task, TaskState.FINISHED)
            outcomes[task.task_id].append(result.outcome)
            if not result.rejected:
                owned.append(task)
        for task in owned:
            outcomes[task.task_id].append(self._delete_permanent_data(task))

        for task in tasks:
            report.record(first_failure(*outcomes[task.task_id]))
        self._finish_cycle(report)
        return report

    def collect_garbage(self) -> CycleReport:
        """Delete temporary data of FAILED tasks."""

        report = CycleReport(name=GC_JOB_NAME)
        tasks = self._snapshot(TaskState.FAILED, report)
        for task in tasks:
            report.record(self._isolated(task, self.temp_storage.delete))
        self._finish_cycle(report)
        return report

    def archive_finished(self) -> CycleReport:
        """Archive every task that was FINISHED when the cycle started."""

        report = CycleReport(name=ARCHIVER_JOB_NAME)
        tasks = self._snapshot(TaskState.FINISHED, report)
        for task in tasks:
            report.record(self._isolated(task, self._archive_task))
        self._finish_cycle(report)
        return report

    def _archive_task(self, task: TaskSnapshot) -> TaskOutcome:
        archiving = self.transitions.change_state(task, TaskState.ARCHIVING)
        if archiving.rejected:
            return archiving.outcome
        archived = self._archive(archiving.task)
        final = self.transitions.change_state(
            archiving.task,
            TaskState.ARCHIVED if archived == TaskOutcome.OK else TaskState.FAILED,
        )
        cleanup = self.temp_storage.delete(final.task)
        return first_failure(archiving.outcome, archived, final.outcome, cleanup)

    def _archive(self, task: TaskSnapshot) -> TaskOutcome:
        try:
            self.permanent_storage.archive(task)
        except OSError:
            logger.exception("Error archiving task [%s]", task.task_id)
            return TaskOutcome.STORAGE_ERROR
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected error archiving task [%s]", task.task_id)
            return TaskOutcome.UNEXPECTED_ERROR
        return TaskOutcome.OK

    def _delete_permanent_data(self, task: TaskSnapshot) -> TaskOutcome:
        try:
            self.permanent_storage.delete(task)
        except OSError:
            logger.exception("Error while deleting task [%s] from permanent storage", task.task_id)
            return TaskOutcome.STORAGE_ERROR
        except Exception:  # noqa: BLE001
            logger.exception(
                "Unexpected error deleting task [%s] from permanent storage",
                task.task_id,
            )
            return TaskOutcome.UNEXPECTED_ERROR
        return TaskOutcome.OK

    def _snapshot(self, state: TaskState, report: CycleReport) -> list[TaskSnapshot]:
        try:
            tasks = self.catalog.list_tasks_by_state(state)
        except Exception:  # noqa: BLE001
            logger.exception("%s cycle could not list %s tasks", report.name, state.value)
            report.query_failed = True
            return []
        report.tasks_seen = len(tasks)
        return tasks

    @staticmethod
    def _isolated(
        task: TaskSnapshot,
        step: Callable[[TaskSnapshot], TaskOutcome],
    ) -> TaskOutcome:
        try:
            return step(task)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected error while processing task [%s]", task.task_id)
            return TaskOutcome.UNEXPECTED_ERROR

    def _finish_cycle(self, report: CycleReport) -> None:
        if report.failures or report.query_failed:
            logger.warning("%s", report.summary_line())
        else:
            logger.info("%s", report.summary_line())
        try:
            self._on_cycle(report)
        except Exception:  # noqa: BLE001
            logger.exception("Cycle report callback failed for %s", report.name)
