"""Schemas module for structured operation data.

Provides Pydantic models for:
- Recovery tasks and their statistics
- Operation state, events and snapshots
- Activity log entries
- Operator command outcomes
"""

from .operation_state import (
    CommandOutcome,
    CommandStatus,
    LogCategory,
    LogEntry,
    OperationEvent,
    OperationSnapshot,
    OperationState,
)
from .recovery_task import (
    DisasterType,
    RecoveryTask,
    TaskStatistics,
    TaskStatus,
    default_recovery_plan,
)

__all__ = [
    # Tasks
    "RecoveryTask",
    "TaskStatus",
    "TaskStatistics",
    "DisasterType",
    "default_recovery_plan",
    # Operation
    "OperationState",
    "OperationEvent",
    "OperationSnapshot",
    # Activity log
    "LogCategory",
    "LogEntry",
    # Commands
    "CommandStatus",
    "CommandOutcome",
]
