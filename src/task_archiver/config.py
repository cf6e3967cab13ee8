"""Runtime configuration for the archiver daemon."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from task_archiver.errors import ConfigurationError

SUPPORTED_PERMANENT_STORAGE_TYPES = ("filesystem",)


@dataclass(slots=True)
class StorageSettings:
    """Temporary and permanent storage locations."""

    temp_storage_path: Path | None = None
    permanent_storage_type: str = "filesystem"
    permanent_storage_path: Path | None = None


@dataclass(slots=True)
class SchedulerSettings:
    """Fixed-delay periods of the two background loops."""

    gc_period_seconds: float | None = None
    archiver_period_seconds: float | None = None


@dataclass(slots=True)
class CatalogSettings:
    """Catalog access policy."""

    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0
    sqlite_busy_timeout_ms: int = 5_000
    enforce_ownership: bool = False


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = Path(".task_archiver.db")
    storage: StorageSettings = field(default_factory=StorageSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    debug_mode: bool = False

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from `TASK_ARCHIVER_*` environment variables."""

        return cls(
            db_path=db_path or Path(os.getenv("TASK_ARCHIVER_DB_PATH", ".task_archiver.db")),
            storage=StorageSettings(
                temp_storage_path=_env_path("TASK_ARCHIVER_TEMP_STORAGE_PATH"),
                permanent_storage_type=os.getenv(
                    "TASK_ARCHIVER_PERMANENT_STORAGE_TYPE",
                    "filesystem",
                )
                .strip()
                .lower(),
                permanent_storage_path=_env_path("TASK_ARCHIVER_PERMANENT_STORAGE_PATH"),
            ),
            scheduler=SchedulerSettings(
                gc_period_seconds=_env_float("TASK_ARCHIVER_GC_PERIOD_SECONDS"),
                archiver_period_seconds=_env_float("TASK_ARCHIVER_ARCHIVER_PERIOD_SECONDS"),
            ),
            catalog=CatalogSettings(
                retry_attempts=_env_int("TASK_ARCHIVER_CATALOG_RETRY_ATTEMPTS", default=3),
                retry_delay_seconds=_env_float(
                    "TASK_ARCHIVER_CATALOG_RETRY_DELAY_SECONDS",
                    default=1.0,
                ),
                sqlite_busy_timeout_ms=_env_int(
                    "TASK_ARCHIVER_SQLITE_BUSY_TIMEOUT_MS",
                    default=5_000,
                ),
                enforce_ownership=_env_bool("TASK_ARCHIVER_ENFORCE_OWNERSHIP", default=False),
            ),
            debug_mode=_env_bool("TASK_ARCHIVER_DEBUG_MODE", default=False),
        )

    def validate(self, *, require_schedule: bool = True) -> None:
        """Raise ConfigurationError listing every missing or invalid option.

        One-shot passes (gc, archive, recover) skip the loop periods.
        """

        problems: list[str] = []
        if self.storage.temp_storage_path is None:
            problems.append("TASK_ARCHIVER_TEMP_STORAGE_PATH is required.")
        if self.storage.permanent_storage_type not in SUPPORTED_PERMANENT_STORAGE_TYPES:
            problems.append(
                "Unsupported TASK_ARCHIVER_PERMANENT_STORAGE_TYPE: "
                f"{self.storage.permanent_storage_type!r} "
                f"(supported: {', '.join(SUPPORTED_PERMANENT_STORAGE_TYPES)}).",
            )
        elif (
            self.storage.permanent_storage_type == "filesystem"
            and self.storage.permanent_storage_path is None
        ):
            problems.append(
                "TASK_ARCHIVER_PERMANENT_STORAGE_PATH is required for filesystem storage.",
            )

        if require_schedule:
            problems.extend(
                _check_period(
                    "TASK_ARCHIVER_GC_PERIOD_SECONDS",
                    self.scheduler.gc_period_seconds,
                ),
            )
            problems.extend(
                _check_period(
                    "TASK_ARCHIVER_ARCHIVER_PERIOD_SECONDS",
                    self.scheduler.archiver_period_seconds,
                ),
            )

        if self.catalog.retry_attempts < 1:
            problems.append("TASK_ARCHIVER_CATALOG_RETRY_ATTEMPTS must be >= 1.")
        if self.catalog.retry_delay_seconds < 0:
            problems.append("TASK_ARCHIVER_CATALOG_RETRY_DELAY_SECONDS must be >= 0.")

        if problems:
            raise ConfigurationError(
                "Missing or invalid archiver configuration: " + " ".join(problems),
            )


def _check_period(name: str, value: float | None) -> list[str]:
    if value is None:
        return [f"{name} is required."]
    if value <= 0:
        return [f"{name} must be > 0."]
    return []


def _env_path(name: str) -> Path | None:
    value = os.getenv(name, "").strip()
    return Path(value) if value else None


def _env_float(name: str, default: float | None = None) -> float | None:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ConfigurationError(f"Invalid number for {name}: {value!r}") from error


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ConfigurationError(f"Invalid integer for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"Invalid boolean value for {name}: {value!r}")
