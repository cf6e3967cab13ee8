"""Permanent storage backends."""

from __future__ import annotations

from task_archiver.config import Settings
from task_archiver.errors import ConfigurationError
from task_archiver.storage.base import PermanentStorage
from task_archiver.storage.filesystem import FilesystemPermanentStorage

__all__ = ["FilesystemPermanentStorage", "PermanentStorage", "build_permanent_storage"]


def build_permanent_storage(settings: Settings) -> PermanentStorage:
    """Instantiate the backend selected by TASK_ARCHIVER_PERMANENT_STORAGE_TYPE."""

    storage = settings.storage
    if storage.permanent_storage_type == "filesystem":
        if storage.temp_storage_path is None or storage.permanent_storage_path is None:
            raise ConfigurationError("Filesystem storage needs temp and permanent storage paths.")
        return FilesystemPermanentStorage(
            temp_root=storage.temp_storage_path,
            permanent_root=storage.permanent_storage_path,
        )
    raise ConfigurationError(
        f"Unsupported permanent storage type: {storage.permanent_storage_type!r}",
    )
