"""Task catalog schema: tasks and append-only state change timestamps."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tasks",
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("state", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("external_job_ref", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("task_id"),
    )
    op.create_index("ix_tasks_state", "tasks", ["state"])
    op.create_index("idx_tasks_state_updated", "tasks", ["state", "updated_at"])

    op.create_table(
        "task_timestamps",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.String(), nullable=False),
        sa.Column("state", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.task_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_task_timestamps_task_id", "task_timestamps", ["task_id"])
    op.create_index("ix_task_timestamps_state", "task_timestamps", ["state"])
    op.create_index(
        "idx_task_timestamps_task_time",
        "task_timestamps",
        ["task_id", "recorded_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_task_timestamps_task_time", table_name="task_timestamps")
    op.drop_index("ix_task_timestamps_state", table_name="task_timestamps")
    op.drop_index("ix_task_timestamps_task_id", table_name="task_timestamps")
    op.drop_table("task_timestamps")
    op.drop_index("idx_tasks_state_updated", table_name="tasks")
    op.drop_index("ix_tasks_state", table_name="tasks")
    op.drop_table("tasks")
