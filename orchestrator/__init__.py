"""Orchestrator module for recovery operations.

State machine-based task execution with:
- Explicit operation state transitions
- A commander approval gate per task
- Free-text operator commands merged into the live queue
- An append-only activity log
"""

from .activity_log import ActivityLog
from .approval import ApprovalGate, ApprovalRequest, ApprovalResponse, ApprovalResult
from .collaborators import CommandInterpreter, CommandResult, Planner
from .runner import ExecutionToken, RecoveryOrchestrator
from .state_machine import OperationStateMachine, Transition, TransitionRecord
from .task_queue import TaskQueue

__all__ = [
    "ActivityLog",
    "ApprovalGate",
    "ApprovalRequest",
    "ApprovalResponse",
    "ApprovalResult",
    "CommandInterpreter",
    "CommandResult",
    "ExecutionToken",
    "OperationStateMachine",
    "Planner",
    "RecoveryOrchestrator",
    "TaskQueue",
    "Transition",
    "TransitionRecord",
]
