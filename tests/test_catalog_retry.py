from __future__ import annotations

import logging

import allure
import pytest
from sqlalchemy.exc import OperationalError

from task_archiver.catalog import RetryingCatalog, SqlCatalog, call_with_retry
from task_archiver.errors import CatalogUnavailableError
from task_archiver.models import StateTransition, TaskState

from fakes import FlakyCatalog

pytestmark = [
    allure.epic("Task Catalog"),
    allure.feature("Retry Policy"),
]


def _locked() -> OperationalError:
    return OperationalError("UPDATE tasks", {}, Exception("database is locked"))


def test_call_with_retry_recovers_after_transient_errors() -> None:
    calls: list[int] = []
    sleeps: list[float] = []

    def operation() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise _locked()
        return "done"

    result = call_with_retry(
        operation,
        attempts=3,
        delay_seconds=0.5,
        description="probe",
        sleep=sleeps.append,
    )

    assert result == "done"
    assert len(calls) == 3
    assert sleeps == [0.5, 0.5]


def test_call_with_retry_gives_up_with_catalog_unavailable() -> None:
    sleeps: list[float] = []

    def operation() -> None:
        raise _locked()

    with pytest.raises(CatalogUnavailableError, match="after 2 attempts"):
        call_with_retry(
            operation,
            attempts=2,
            delay_seconds=1.0,
            description="probe",
            sleep=sleeps.append,
        )
    assert sleeps == [1.0]


def test_call_with_retry_does_not_retry_other_errors() -> None:
    calls: list[int] = []

    def operation() -> None:
        calls.append(1)
        raise KeyError("not a database problem")

    with pytest.raises(KeyError):
        call_with_retry(operation, attempts=5, delay_seconds=0, description="probe")
    assert len(calls) == 1


def test_retrying_catalog_raises_when_writes_keep_failing(
    catalog: SqlCatalog,
    caplog: pytest.LogCaptureFixture,
) -> None:
    task = catalog.add_task(task_id="t1", state=TaskState.FINISHED)
    flaky = FlakyCatalog(catalog)
    flaky.fail_writes = True
    flaky.fail_timestamps = True
    retrying = RetryingCatalog(flaky, attempts=3, delay_seconds=0, sleep=lambda _: None)

    with caplog.at_level(logging.WARNING):
        with pytest.raises(CatalogUnavailableError, match="update of task \[t1\]"):
            retrying.apply_transition(StateTransition(task_id="t1", state=TaskState.ARCHIVING))
        with pytest.raises(CatalogUnavailableError, match="timestamp insert"):
            retrying.record_state_change_timestamp(task)

    assert flaky.write_attempts == 3
    assert "failed (attempt 3/3)" in caplog.text
    assert catalog.get_task(task_id="t1").state == TaskState.FINISHED


def test_retrying_catalog_reports_unmatched_write_as_false(catalog: SqlCatalog) -> None:
    retrying = RetryingCatalog(catalog, attempts=3, delay_seconds=0)

    transition = StateTransition(task_id="ghost", state=TaskState.ARCHIVED)

    assert retrying.apply_transition(transition) is False


def test_retrying_catalog_raises_when_query_keeps_failing(catalog: SqlCatalog) -> None:
    flaky = FlakyCatalog(catalog)
    flaky.fail_queries = True
    retrying = RetryingCatalog(flaky, attempts=2, delay_seconds=0)

    with pytest.raises(CatalogUnavailableError):
        retrying.list_tasks_by_state(TaskState.FINISHED)


def test_retrying_catalog_passes_through_successful_calls(catalog: SqlCatalog) -> None:
    catalog.add_task(task_id="t1", state=TaskState.FINISHED)
    retrying = RetryingCatalog(catalog, attempts=1, delay_seconds=0)

    tasks = retrying.list_tasks_by_state(TaskState.FINISHED)

    assert [task.task_id for task in tasks] == ["t1"]
    assert retrying.apply_transition(
        StateTransition(task_id="t1", state=TaskState.ARCHIVING),
    )
