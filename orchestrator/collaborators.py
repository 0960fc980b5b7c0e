"""Contracts for the external collaborators the orchestrator consumes."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from schemas.recovery_task import DisasterType, RecoveryTask


@dataclass
class CommandResult:
    """What a command interpreter hands back."""

    tasks: list[RecoveryTask]
    reply: str


@runtime_checkable
class Planner(Protocol):
    """Produces an initial recovery plan.

    Implementations may raise any exception on failure; the orchestrator
    absorbs it and falls back to the default plan.
    """

    async def generate(self, disaster_type: DisasterType, location: str) -> list[RecoveryTask]:
        """Return pending tasks for the scenario, in execution order."""
        ...


@runtime_checkable
class CommandInterpreter(Protocol):
    """Rewrites the task queue from a free-text operator command.

    Implementations must not mutate ``tasks``; they return a new queue.
    """

    async def interpret(self, transcript: str, tasks: list[RecoveryTask]) -> CommandResult:
        """Return the updated queue and a confirmation message."""
        ...
