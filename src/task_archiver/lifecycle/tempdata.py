"""Temporary storage layout and reclamation."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from task_archiver.models import TaskOutcome, TaskSnapshot, TaskState, task_path_component
from task_archiver.storage.base import PermanentStorage

logger = logging.getLogger(__name__)


class TempStorage:
    """Directory-per-task working area rooted at `root`.

    With `debug_mode` on, FAILED tasks are archived once more right before
    their directory is removed, to keep evidence for inspection.
    """

    def __init__(
        self,
        *,
        root: Path,
        permanent_storage: PermanentStorage,
        debug_mode: bool = False,
    ) -> None:
        self.root = root
        self.permanent_storage = permanent_storage
        self.debug_mode = debug_mode

    def path_for(self, task_id: str) -> Path:
        return self.root / task_path_component(task_id)

    def delete(self, task: TaskSnapshot) -> TaskOutcome:
        """Remove the task's temp directory. Never raises."""

        logger.info("Deleting temp data from task [%s]", task.task_id)
        try:
            task_dir = self.path_for(task.task_id)
        except ValueError:
            logger.exception("Refusing to delete temp data of task [%s]", task.task_id)
            return TaskOutcome.FILESYSTEM_ERROR

        if not task_dir.is_dir():
            logger.error("Path %s does not exist or is not a directory", task_dir)
            return TaskOutcome.SKIPPED

        outcome = TaskOutcome.OK
        if self.debug_mode and task.state == TaskState.FAILED:
            try:
                self.permanent_storage.archive(task)
            except Exception:  # noqa: BLE001
                # Same outcome as a failed removal; the directory still goes.
                logger.exception(
                    "Error while saving files of failed task [%s] before deletion",
                    task.task_id,
                )
                outcome = TaskOutcome.FILESYSTEM_ERROR

        try:
            shutil.rmtree(task_dir)
        except OSError:
            logger.exception("Error while deleting task [%s] files from disk", task.task_id)
            return TaskOutcome.FILESYSTEM_ERROR
        return outcome
