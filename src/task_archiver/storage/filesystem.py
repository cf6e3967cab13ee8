"""Permanent storage on a local or mounted directory tree."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from task_archiver.models import TaskSnapshot, task_path_component

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".partial"


class FilesystemPermanentStorage:
    """Archives `temp_root/<task_id>` as `permanent_root/<task_id>`.

    Copies land in a `.partial` sibling first and are renamed into place, so a
    crash mid-copy never leaves something that looks like a complete archive.
    Task ids that are not a single directory name are refused before any
    filesystem access.
    """

    def __init__(self, *, temp_root: Path, permanent_root: Path) -> None:
        self.temp_root = temp_root
        self.permanent_root = permanent_root

    def artifact_path(self, task_id: str) -> Path:
        """Raises ValueError for ids that would escape `permanent_root`."""

        return self.permanent_root / task_path_component(task_id)

    def archive(self, task: TaskSnapshot) -> None:
        target = self._artifact_path(task)
        source = self.temp_root / target.name
        if not source.is_dir():
            raise FileNotFoundError(f"Task output directory not found: {source}")

        staging = target.with_name(target.name + PARTIAL_SUFFIX)
        self.permanent_root.mkdir(parents=True, exist_ok=True)
        _remove_tree(staging)
        shutil.copytree(source, staging)
        _remove_tree(target)
        staging.rename(target)
        logger.info("Archived task [%s] to %s", task.task_id, target)

    def delete(self, task: TaskSnapshot) -> None:
        target = self._artifact_path(task)
        staging = target.with_name(target.name + PARTIAL_SUFFIX)
        if not target.exists() and not staging.exists():
            logger.info("No permanent artifact to delete for task [%s]", task.task_id)
            return
        _remove_tree(staging)
        _remove_tree(target)
        logger.info("Deleted permanent artifact of task [%s]", task.task_id)

    def _artifact_path(self, task: TaskSnapshot) -> Path:
        # Storage failures are OSError by contract.
        try:
            return self.artifact_path(task.task_id)
        except ValueError as error:
            raise OSError(str(error)) from error


def _remove_tree(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()
