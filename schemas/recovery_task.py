"""Recovery task schema.

A recovery plan is an ordered list of RecoveryTask items produced by the
planner and rewritten by operator commands.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskStatus(str, Enum):
    """Lifecycle status of a single recovery task."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


# Spellings an LLM tends to produce for each status
_STATUS_ALIASES: dict[str, TaskStatus] = {
    "pending": TaskStatus.PENDING,
    "todo": TaskStatus.PENDING,
    "queued": TaskStatus.PENDING,
    "not-started": TaskStatus.PENDING,
    "in-progress": TaskStatus.IN_PROGRESS,
    "inprogress": TaskStatus.IN_PROGRESS,
    "active": TaskStatus.IN_PROGRESS,
    "running": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.COMPLETED,
    "complete": TaskStatus.COMPLETED,
    "done": TaskStatus.COMPLETED,
    "finished": TaskStatus.COMPLETED,
}


class DisasterType(str, Enum):
    """Scenario types a recovery plan can be requested for."""

    EARTHQUAKE = "Earthquake"
    FLOOD = "Flood"
    WILDFIRE = "Wildfire"
    HURRICANE = "Hurricane"
    TSUNAMI = "Tsunami"
    VOLCANO = "Volcano"
    STORM = "Severe Storm"
    GENERAL = "General Emergency"

    @classmethod
    def from_string(cls, value: str) -> "DisasterType":
        """Map free text to a disaster type, defaulting to GENERAL.

        Exact names win; otherwise the first matching keyword decides.
        """
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member

        text = value.upper()
        if "QUAKE" in text:
            return cls.EARTHQUAKE
        if "FLOOD" in text:
            return cls.FLOOD
        if "FIRE" in text:
            return cls.WILDFIRE
        if "CANE" in text or "CYCLONE" in text or "TYPHOON" in text:
            return cls.HURRICANE
        if "STORM" in text:
            return cls.STORM
        if "TSUNAMI" in text:
            return cls.TSUNAMI
        if "VOLCAN" in text:
            return cls.VOLCANO
        return cls.GENERAL


class RecoveryTask(BaseModel):
    """A single step of a recovery operation."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Stable task identifier")
    title: str = Field(..., description="Short task title")
    description: str = Field("", description="What the response team does")
    status: TaskStatus = Field(TaskStatus.PENDING, description="Task status")
    assigned_agent: str = Field(
        "Unassigned",
        alias="assignedAgent",
        description="Role label of the unit doing the work (e.g. Medical Unit)",
    )
    estimated_time: str = Field(
        "",
        alias="estimatedTime",
        description="Free-text duration label (e.g. 2 hours)",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or str(value).strip() == "":
            raise ValueError("task id must not be empty")
        return str(value).strip()

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, TaskStatus) or value is None:
            return value or TaskStatus.PENDING
        key = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        if key in _STATUS_ALIASES:
            return _STATUS_ALIASES[key]
        raise ValueError(f"Unknown task status: {value!r}")

    def is_pending(self) -> bool:
        return self.status == TaskStatus.PENDING

    def is_in_progress(self) -> bool:
        return self.status == TaskStatus.IN_PROGRESS

    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the camelCase keys collaborators expect."""
        return self.model_dump(mode="json", by_alias=True)


class TaskStatistics(BaseModel):
    """Counts of tasks per status."""

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0

    @property
    def progress_percent(self) -> int:
        return round(self.completed / self.total * 100) if self.total else 0

    @classmethod
    def from_tasks(cls, tasks: list[RecoveryTask]) -> "TaskStatistics":
        """Calculate statistics from a task list."""
        return cls(
            total=len(tasks),
            pending=sum(1 for t in tasks if t.is_pending()),
            in_progress=sum(1 for t in tasks if t.is_in_progress()),
            completed=sum(1 for t in tasks if t.is_completed()),
        )


def default_recovery_plan() -> list[RecoveryTask]:
    """Minimal plan used when the planner is unavailable."""
    return [
        RecoveryTask(
            id="1",
            title="Assess Damage",
            description="Drone survey of affected area",
            assigned_agent="Recon Unit",
            estimated_time="2 hours",
        ),
        RecoveryTask(
            id="2",
            title="Establish Comms",
            description="Set up emergency mesh network",
            assigned_agent="Comms Team",
            estimated_time="1 hour",
        ),
        RecoveryTask(
            id="3",
            title="Medical Triage",
            description="Set up field hospital at safe zone",
            assigned_agent="Medical Unit",
            estimated_time="3 hours",
        ),
    ]
