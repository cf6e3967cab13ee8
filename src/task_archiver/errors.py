"""Exception hierarchy for the archiver daemon."""

from __future__ import annotations


class TaskArchiverError(Exception):
    """Base class for archiver errors."""


class ConfigurationError(TaskArchiverError, ValueError):
    """Required configuration is missing or invalid. Fatal at startup."""


class CatalogUnavailableError(TaskArchiverError):
    """Catalog operation kept failing after all retry attempts."""


class RecoveryError(TaskArchiverError):
    """Startup recovery could not read the interrupted tasks from the catalog."""
