"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from task_archiver.catalog import SqlCatalog

from fakes import RecordingStorage


@pytest.fixture()
def catalog(tmp_path: Path):
    repository = SqlCatalog(tmp_path / "catalog.db")
    repository.init_schema()
    yield repository
    repository.close()


@pytest.fixture()
def temp_root(tmp_path: Path) -> Path:
    root = tmp_path / "temp"
    root.mkdir()
    return root


@pytest.fixture()
def storage() -> RecordingStorage:
    return RecordingStorage()

