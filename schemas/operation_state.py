"""Operation state schema.

State machine representation for recovery operation orchestration.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .recovery_task import RecoveryTask, TaskStatistics


class OperationState(str, Enum):
    """Overall operation status."""

    IDLE = "IDLE"
    PLANNING = "PLANNING"
    EXECUTING = "EXECUTING"
    PAUSED = "PAUSED"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"  # Waiting for operator confirmation
    COMPLETED = "COMPLETED"


class OperationEvent(str, Enum):
    """Events that drive operation state transitions."""

    GENERATE_PLAN = "generate_plan"
    PLAN_READY = "plan_ready"
    START = "start"
    RESUME = "resume"
    TASK_TIMER_ELAPSED = "task_timer_elapsed"
    PAUSE = "pause"
    PAUSE_FOR_REVIEW = "pause_for_review"
    APPROVE = "approve"
    QUEUE_CHANGED = "queue_changed"  # A command replaced the task awaiting approval
    QUEUE_EXHAUSTED = "queue_exhausted"  # A command left nothing to run


class LogCategory(str, Enum):
    """Source category of an activity log entry."""

    SYSTEM = "SYSTEM"
    AI = "AI"
    COMMS = "COMMS"
    TASK = "TASK"


class LogEntry(BaseModel):
    """A single activity log line. Immutable once written."""

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(..., description="Arrival order, starting at 0")
    timestamp: datetime = Field(default_factory=datetime.now)
    category: LogCategory = Field(..., description="Entry source")
    message: str = Field(..., description="Human-readable message")

    def format(self) -> str:
        """Render as `[HH:MM:SS] [CATEGORY] message`."""
        return f"[{self.timestamp:%H:%M:%S}] [{self.category.value}] {self.message}"


class CommandStatus(str, Enum):
    """Outcome of submitting an operator command."""

    APPLIED = "applied"
    BUSY = "busy"  # Another command is still outstanding
    FAILED = "failed"  # Interpreter failed, queue unchanged
    REJECTED = "rejected"  # Not accepted in the current state
    STALE = "stale"  # Queue was replaced by a new plan meanwhile


class CommandOutcome(BaseModel):
    """Result returned to the caller of submit_command."""

    status: CommandStatus
    reply: str = ""
    error: str | None = None

    @property
    def applied(self) -> bool:
        return self.status == CommandStatus.APPLIED


class OperationSnapshot(BaseModel):
    """Read-only view of an operation for presentation layers and export."""

    state: OperationState
    active_index: int = -1
    tasks: list[RecoveryTask] = Field(default_factory=list)
    statistics: TaskStatistics = Field(default_factory=TaskStatistics)
    command_pending: bool = False
    awaiting_task_id: str | None = None
    log: list[LogEntry] = Field(default_factory=list)
    captured_at: datetime = Field(default_factory=datetime.now)

    class Config:
        json_schema_extra = {
            "example": {
                "state": "AWAITING_APPROVAL",
                "active_index": 0,
                "tasks": [
                    {
                        "id": "1",
                        "title": "Assess Damage",
                        "status": "in-progress",
                        "assignedAgent": "Recon Unit",
                        "estimatedTime": "2 hours",
                    }
                ],
            }
        }
