from __future__ import annotations

from pathlib import Path

import allure
import pytest

from task_archiver.config import Settings
from task_archiver.errors import ConfigurationError
from task_archiver.storage import FilesystemPermanentStorage, build_permanent_storage

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Environment Settings"),
]

_ENV_NAMES = (
    "TASK_ARCHIVER_DB_PATH",
    "TASK_ARCHIVER_TEMP_STORAGE_PATH",
    "TASK_ARCHIVER_PERMANENT_STORAGE_TYPE",
    "TASK_ARCHIVER_PERMANENT_STORAGE_PATH",
    "TASK_ARCHIVER_GC_PERIOD_SECONDS",
    "TASK_ARCHIVER_ARCHIVER_PERIOD_SECONDS",
    "TASK_ARCHIVER_CATALOG_RETRY_ATTEMPTS",
    "TASK_ARCHIVER_CATALOG_RETRY_DELAY_SECONDS",
    "TASK_ARCHIVER_SQLITE_BUSY_TIMEOUT_MS",
    "TASK_ARCHIVER_ENFORCE_OWNERSHIP",
    "TASK_ARCHIVER_DEBUG_MODE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_settings_defaults() -> None:
    settings = Settings.from_env()

    assert settings.db_path == Path(".task_archiver.db")
    assert settings.storage.temp_storage_path is None
    assert settings.storage.permanent_storage_type == "filesystem"
    assert settings.scheduler.gc_period_seconds is None
    assert settings.catalog.retry_attempts == 3
    assert settings.catalog.retry_delay_seconds == 1.0
    assert settings.catalog.enforce_ownership is False
    assert settings.debug_mode is False


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASK_ARCHIVER_DB_PATH", str(tmp_path / "catalog.db"))
    monkeypatch.setenv("TASK_ARCHIVER_TEMP_STORAGE_PATH", str(tmp_path / "temp"))
    monkeypatch.setenv("TASK_ARCHIVER_PERMANENT_STORAGE_TYPE", " FileSystem ")
    monkeypatch.setenv("TASK_ARCHIVER_PERMANENT_STORAGE_PATH", str(tmp_path / "permanent"))
    monkeypatch.setenv("TASK_ARCHIVER_GC_PERIOD_SECONDS", "30")
    monkeypatch.setenv("TASK_ARCHIVER_ARCHIVER_PERIOD_SECONDS", "2.5")
    monkeypatch.setenv("TASK_ARCHIVER_CATALOG_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("TASK_ARCHIVER_ENFORCE_OWNERSHIP", "yes")
    monkeypatch.setenv("TASK_ARCHIVER_DEBUG_MODE", "true")

    settings = Settings.from_env()
    settings.validate()

    assert settings.db_path == tmp_path / "catalog.db"
    assert settings.storage.temp_storage_path == tmp_path / "temp"
    assert settings.storage.permanent_storage_type == "filesystem"
    assert settings.scheduler.gc_period_seconds == 30.0
    assert settings.scheduler.archiver_period_seconds == 2.5
    assert settings.catalog.retry_attempts == 5
    assert settings.catalog.enforce_ownership is True
    assert settings.debug_mode is True
    assert isinstance(build_permanent_storage(settings), FilesystemPermanentStorage)


def test_explicit_db_path_wins(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASK_ARCHIVER_DB_PATH", str(tmp_path / "env.db"))

    assert Settings.from_env(db_path=tmp_path / "cli.db").db_path == tmp_path / "cli.db"


def test_validate_lists_every_missing_option() -> None:
    with pytest.raises(ConfigurationError) as error:
        Settings.from_env().validate()

    message = str(error.value)
    assert "TASK_ARCHIVER_TEMP_STORAGE_PATH is required." in message
    assert "TASK_ARCHIVER_PERMANENT_STORAGE_PATH is required" in message
    assert "TASK_ARCHIVER_GC_PERIOD_SECONDS is required." in message
    assert "TASK_ARCHIVER_ARCHIVER_PERIOD_SECONDS is required." in message


def test_one_shot_passes_do_not_need_periods(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("TASK_ARCHIVER_TEMP_STORAGE_PATH", str(tmp_path / "temp"))
    monkeypatch.setenv("TASK_ARCHIVER_PERMANENT_STORAGE_PATH", str(tmp_path / "permanent"))

    Settings.from_env().validate(require_schedule=False)


def test_validate_rejects_bad_values(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASK_ARCHIVER_TEMP_STORAGE_PATH", str(tmp_path / "temp"))
    monkeypatch.setenv("TASK_ARCHIVER_PERMANENT_STORAGE_TYPE", "s3")
    monkeypatch.setenv("TASK_ARCHIVER_GC_PERIOD_SECONDS", "0")
    monkeypatch.setenv("TASK_ARCHIVER_ARCHIVER_PERIOD_SECONDS", "-1")
    monkeypatch.setenv("TASK_ARCHIVER_CATALOG_RETRY_ATTEMPTS", "0")

    with pytest.raises(ConfigurationError) as error:
        Settings.from_env().validate()

    message = str(error.value)
    assert "Unsupported TASK_ARCHIVER_PERMANENT_STORAGE_TYPE: 's3'" in message
    assert "TASK_ARCHIVER_GC_PERIOD_SECONDS must be > 0." in message
    assert "TASK_ARCHIVER_ARCHIVER_PERIOD_SECONDS must be > 0." in message
    assert "TASK_ARCHIVER_CATALOG_RETRY_ATTEMPTS must be >= 1." in message


@pytest.mark.parametrize(
    ("name", "value", "expected"),
    [
        ("TASK_ARCHIVER_GC_PERIOD_SECONDS", "soon", "Invalid number"),
        ("TASK_ARCHIVER_CATALOG_RETRY_ATTEMPTS", "2.5", "Invalid integer"),
        ("TASK_ARCHIVER_DEBUG_MODE", "maybe", "Invalid boolean value"),
    ],
)
def test_malformed_values_raise(
    monkeypatch: pytest.MonkeyPatch,
    name: str,
    value: str,
    expected: str,
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError, match=expected):
        Settings.from_env()
