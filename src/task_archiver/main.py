"""CLI entrypoint for task-archiver."""

from collections.abc import Callable
from pathlib import Path

import rich_click as click

from task_archiver import __version__
from task_archiver.controllers import (
    AddTaskCommand,
    ArchiverCliController,
    InspectTaskCommand,
    ListTasksCommand,
    PassCommand,
    RunDaemonCommand,
    StatsCommand,
)
from task_archiver.errors import TaskArchiverError
from task_archiver.logging_setup import setup_logging
from task_archiver.models import TaskState

click.rich_click.USE_MARKDOWN = True
CONTROLLER = ArchiverCliController()
STATE_CHOICES = [state.value for state in TaskState]


@click.group()
@click.version_option(version=__version__, prog_name="task-archiver")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Root logging level.",
)
def task_archiver(log_level: str) -> None:
    """Archive finished task outputs and reclaim temporary storage."""

    setup_logging(log_level)


@task_archiver.command("run")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--gc-period",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Garbage collector delay in seconds. Overrides TASK_ARCHIVER_GC_PERIOD_SECONDS.",
)
@click.option(
    "--archiver-period",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Archiver delay in seconds. Overrides TASK_ARCHIVER_ARCHIVER_PERIOD_SECONDS.",
)
@click.option(
    "--debug-mode/--no-debug-mode",
    default=None,
    help="Archive FAILED tasks once more before deleting their temp data.",
)
def run(
    db_path: Path | None,
    gc_period: float | None,
    archiver_period: float | None,
    debug_mode: bool | None,
) -> None:
    """Recover interrupted archivals, then run both loops until interrupted."""

    _emit_lines(
        _guarded(
            lambda: CONTROLLER.run_daemon(
                RunDaemonCommand(
                    db_path=db_path,
                    gc_period_seconds=gc_period,
                    archiver_period_seconds=archiver_period,
                    debug_mode=debug_mode,
                ),
            ),
        ),
    )


@task_archiver.command("recover")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def recover(db_path: Path | None) -> None:
    """Reset ARCHIVING tasks to FINISHED and delete their partial archives."""

    _emit_lines(_guarded(lambda: CONTROLLER.recover(PassCommand(db_path=db_path))))


@task_archiver.command("gc")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--debug-mode/--no-debug-mode", default=None, help="Preserve failed task files.")
def gc(db_path: Path | None, debug_mode: bool | None) -> None:
    """Run one garbage collector pass over FAILED tasks."""

    _emit_lines(
        _guarded(
            lambda: CONTROLLER.collect_garbage(
                PassCommand(db_path=db_path, debug_mode=debug_mode),
            ),
        ),
    )


@task_archiver.command("archive")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--debug-mode/--no-debug-mode", default=None, help="Preserve failed task files.")
def archive(db_path: Path | None, debug_mode: bool | None) -> None:
    """Run one archiver pass over FINISHED tasks."""

    _emit_lines(
        _guarded(
            lambda: CONTROLLER.archive(PassCommand(db_path=db_path, debug_mode=debug_mode)),
        ),
    )


@task_archiver.command("tasks")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--state",
    type=click.Choice(STATE_CHOICES, case_sensitive=False),
    default=None,
    help="Optional state filter.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=50,
    show_default=True,
    help="Max tasks to print.",
)
def tasks(db_path: Path | None, state: str | None, limit: int) -> None:
    """List catalog tasks."""

    _emit_lines(
        CONTROLLER.list_tasks(ListTasksCommand(db_path=db_path, state=state, limit=limit)),
    )


@task_archiver.command("inspect")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--task-id", required=True, help="Task id.")
def inspect(db_path: Path | None, task_id: str) -> None:
    """Inspect one task with its state change history."""

    _emit_lines(CONTROLLER.inspect_task(InspectTaskCommand(db_path=db_path, task_id=task_id)))


@task_archiver.command("add-task")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--task-id", default=None, help="Task id (generated when omitted).")
@click.option(
    "--state",
    type=click.Choice(STATE_CHOICES, case_sensitive=False),
    default=TaskState.FINISHED.value,
    show_default=True,
    help="Initial task state.",
)
def add_task(db_path: Path | None, task_id: str | None, state: str) -> None:
    """Register a task in the catalog."""

    _emit_lines(
        CONTROLLER.add_task(AddTaskCommand(db_path=db_path, task_id=task_id, state=state)),
    )


@task_archiver.command("stats")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def stats(db_path: Path | None) -> None:
    """Show task counts per state."""

    _emit_lines(CONTROLLER.stats(StatsCommand(db_path=db_path)))


def _guarded(action: Callable[[], list[str]]) -> list[str]:
    try:
        return action()
    except TaskArchiverError as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    task_archiver()
