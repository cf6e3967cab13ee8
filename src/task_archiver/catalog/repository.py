"""SQL catalog repository for archival task state."""

from __future__ import annotations

from pathlib import Path
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from task_archiver.catalog.alembic_runner import upgrade_head
from task_archiver.catalog.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from task_archiver.catalog.sqlmodel_models import TaskRecord, TaskTimestamp
from task_archiver.models import (
    ERROR_NONE,
    JOB_ID_NONE,
    STATUS_AVAILABLE,
    StateTransition,
    TaskSnapshot,
    TaskState,
    TaskTimestampView,
)


class SqlCatalog:
    """Catalog facade backed by SQLModel + SQLite.

    Database errors propagate as SQLAlchemyError; wrap the catalog in
    RetryingCatalog to turn them into retried, logged failures.
    """

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        upgrade_head(self.db_path)

    def list_tasks_by_state(
        self,
        state: TaskState,
        *,
        limit: int | None = None,
    ) -> list[TaskSnapshot]:
        """Return tasks in `state`, oldest change first."""

        with Session(self.engine) as session:
            statement = (
                select(TaskRecord)
                .where(TaskRecord.state == state.value)
                .order_by(col(TaskRecord.updated_at).asc(), col(TaskRecord.task_id).asc())
            )
            if limit is not None:
                statement = statement.limit(limit)
            rows = session.exec(statement).all()
        return [_to_snapshot(row) for row in rows]

    def apply_transition(self, transition: StateTransition) -> bool:
        """Write state, status, error and job reference in one statement."""

        now = utc_now()
        with Session(self.engine) as session:
            statement = sa_update(TaskRecord).where(col(TaskRecord.task_id) == transition.task_id)
            if transition.expected_state is not None:
                statement = statement.where(
                    col(TaskRecord.state) == transition.expected_state.value,
                )
            result = session.exec(
                statement.values(
                    state=transition.state.value,
                    status=transition.status,
                    error=transition.error,
                    external_job_ref=transition.external_job_ref,
                    updated_at=to_db_datetime(now),
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                return False
            session.commit()
            return True

    def record_state_change_timestamp(self, task: TaskSnapshot) -> bool:
        """Append a history row; earlier rows are never touched."""

        with Session(self.engine) as session:
            session.add(
                TaskTimestamp(
                    task_id=task.task_id,
                    state=task.state.value,
                    status=task.status,
                    recorded_at=utc_now(),
                ),
            )
            session.commit()
        return True

    def add_task(  # noqa: PLR0913
        self,
        *,
        task_id: str | None = None,
        state: TaskState = TaskState.FINISHED,
        status: str = STATUS_AVAILABLE,
        error: str | None = ERROR_NONE,
        external_job_ref: str | None = JOB_ID_NONE,
    ) -> TaskSnapshot:
        """Register a task, as upstream processing would."""

        now = utc_now()
        with Session(self.engine) as session:
            row = TaskRecord(
                task_id=task_id or str(uuid4()),
                state=state.value,
                status=status,
                error=error,
                external_job_ref=external_job_ref,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_snapshot(row)

    def get_task(self, *, task_id: str) -> TaskSnapshot | None:
        with Session(self.engine) as session:
            row = session.exec(
                select(TaskRecord).where(TaskRecord.task_id == task_id),
            ).one_or_none()
        return _to_snapshot(row) if row is not None else None

    def list_tasks(self, *, state: TaskState | None = None, limit: int = 50) -> list[TaskSnapshot]:
        """List recently changed tasks, optionally filtered by state."""

        with Session(self.engine) as session:
            statement = select(TaskRecord)
            if state is not None:
                statement = statement.where(TaskRecord.state == state.value)
            rows = session.exec(
                statement.order_by(col(TaskRecord.updated_at).desc()).limit(limit),
            ).all()
        return [_to_snapshot(row) for row in rows]

    def list_timestamps(self, *, task_id: str) -> list[TaskTimestampView]:
        """Return the state change history of one task, oldest first."""

        with Session(self.engine) as session:
            rows = session.exec(
                select(TaskTimestamp)
                .where(TaskTimestamp.task_id == task_id)
                .order_by(col(TaskTimestamp.recorded_at).asc(), col(TaskTimestamp.id).asc()),
            ).all()
        return [
            TaskTimestampView(
                task_id=row.task_id,
                state=TaskState(row.state),
                status=row.status,
                recorded_at=to_utc_aware_datetime(row.recorded_at),
            )
            for row in rows
        ]

    def count_by_state(self) -> dict[TaskState, int]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(TaskRecord.state, func.count()).group_by(TaskRecord.state),
            ).all()
        return {TaskState(state): int(count) for state, count in rows}


def _to_snapshot(row: TaskRecord) -> TaskSnapshot:
    return TaskSnapshot(
        task_id=row.task_id,
        state=TaskState(row.state),
        status=row.status,
        error=row.error,
        external_job_ref=row.external_job_ref,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
    )
