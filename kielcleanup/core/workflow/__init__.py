"""Workflow step bookkeeping: gating and the SQLite step-status store."""

from .gating import StepStatusStore, disable_steps_if_found
from .sqlite_store import SQLiteStepStatusStore, StepStatus

__all__ = [
    "StepStatusStore",
    "disable_steps_if_found",
    "SQLiteStepStatusStore",
    "StepStatus",
]
