"""Bounded retry around catalog access."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError

from task_archiver.catalog.base import Catalog
from task_archiver.errors import CatalogUnavailableError
from task_archiver.models import StateTransition, TaskSnapshot, TaskState

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    operation: Callable[[], T],
    *,
    attempts: int,
    delay_seconds: float,
    description: str,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run a catalog operation, retrying database errors with a fixed delay."""

    total = max(1, attempts)
    last_error: SQLAlchemyError | None = None
    for attempt in range(1, total + 1):
        try:
            return operation()
        except SQLAlchemyError as error:
            last_error = error
            logger.warning(
                "Catalog %s failed (attempt %d/%d): %s",
                description,
                attempt,
                total,
                error,
            )
            if attempt < total and delay_seconds > 0:
                sleep(delay_seconds)
    raise CatalogUnavailableError(
        f"Catalog {description} failed after {total} attempts",
    ) from last_error


class RetryingCatalog:
    """Catalog decorator with the archiver's failure policy.

    Every operation raises CatalogUnavailableError once retries are
    exhausted, so callers can tell a database outage from a write that
    matched no row (False).
    """

    def __init__(
        self,
        catalog: Catalog,
        *,
        attempts: int = 3,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.catalog = catalog
        self.attempts = attempts
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def list_tasks_by_state(self, state: TaskState) -> list[TaskSnapshot]:
        return self._call(
            lambda: self.catalog.list_tasks_by_state(state),
            description=f"query for {state.value} tasks",
        )

    def apply_transition(self, transition: StateTransition) -> bool:
        return self._call(
            lambda: self.catalog.apply_transition(transition),
            description=f"update of task [{transition.task_id}]",
        )

    def record_state_change_timestamp(self, task: TaskSnapshot) -> bool:
        return self._call(
            lambda: self.catalog.record_state_change_timestamp(task),
            description=f"timestamp insert of task [{task.task_id}]",
        )

    def _call(self, operation: Callable[[], T], *, description: str) -> T:
        return call_with_retry(
            operation,
            attempts=self.attempts,
            delay_seconds=self.delay_seconds,
            description=description,
            sleep=self._sleep,
        )
