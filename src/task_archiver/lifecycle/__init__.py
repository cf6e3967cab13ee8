"""Archival lifecycle: state machine, loops and scheduling."""

from task_archiver.lifecycle.archiver import Archiver
from task_archiver.lifecycle.scheduler import PeriodicJob, PeriodicScheduler
from task_archiver.lifecycle.state_machine import (
    ALLOWED_TRANSITIONS,
    TransitionApplier,
    TransitionResult,
    can_transition,
)
from task_archiver.lifecycle.tempdata import TempStorage

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Archiver",
    "PeriodicJob",
    "PeriodicScheduler",
    "TempStorage",
    "TransitionApplier",
    "TransitionResult",
    "can_transition",
]
