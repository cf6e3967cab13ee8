"""SQLModel ORM tables for the task catalog."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text
from sqlmodel import Field, SQLModel


class TaskRecord(SQLModel, table=True):
    __tablename__ = "tasks"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_tasks_state_updated", "state", "updated_at"),)

    task_id: str = Field(primary_key=True)
    state: str = Field(index=True)
    status: str
    error: str | None = Field(default=None, sa_column=Column(Text))
    external_job_ref: str | None = None
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class TaskTimestamp(SQLModel, table=True):
    __tablename__ = "task_timestamps"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_task_timestamps_task_time", "task_id", "recorded_at"),)

    id: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(
        sa_column=Column(
            ForeignKey("tasks.task_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    state: str = Field(index=True)
    status: str
    recorded_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
