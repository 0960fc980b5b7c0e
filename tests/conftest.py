"""Shared fixtures: scripted planner and interpreter, orchestrators in manual timer mode."""

import asyncio
from typing import Callable

import pytest

from orchestrator import ApprovalGate, CommandResult, RecoveryOrchestrator
from schemas.recovery_task import RecoveryTask, TaskStatus


def make_task(task_id: str, title: str | None = None, status: TaskStatus = TaskStatus.PENDING) -> RecoveryTask:
    return RecoveryTask(
        id=task_id,
        title=title or f"Task {task_id}",
        description=f"Description {task_id}",
        status=status,
        assigned_agent="Recon Unit",
        estimated_time="1 hour",
    )


def make_tasks(count: int) -> list[RecoveryTask]:
    return [make_task(str(i)) for i in range(1, count + 1)]


def in_progress_ids(tasks: list[RecoveryTask]) -> list[str]:
    return [t.id for t in tasks if t.status == TaskStatus.IN_PROGRESS]


class FakePlanner:
    """Planner returning a fixed plan, optionally failing or blocking."""

    def __init__(self, tasks: list[RecoveryTask] | None = None, error: Exception | None = None) -> None:
        self.tasks = tasks if tasks is not None else make_tasks(3)
        self.error = error
        self.release: asyncio.Event | None = None
        self.calls: list[tuple] = []

    async def generate(self, disaster_type, location):
        self.calls.append((disaster_type, location))
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return [t.model_copy(deep=True) for t in self.tasks]


class FakeInterpreter:
    """Interpreter applying a handler to the queue it is shown."""

    def __init__(
        self,
        handler: Callable[[str, list[RecoveryTask]], CommandResult] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.handler = handler
        self.error = error
        self.release: asyncio.Event | None = None
        self.calls: list[tuple[str, list[RecoveryTask]]] = []

    async def interpret(self, transcript, tasks):
        self.calls.append((transcript, tasks))
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        if self.handler is not None:
            return self.handler(transcript, tasks)
        return CommandResult(tasks=tasks, reply="Copy that.")


class ScriptedLLM:
    """LLM stand-in returning a canned response or raising an error."""

    def __init__(self, response: str = "", error: Exception | None = None, model: str = "test-model") -> None:
        self.response = response
        self.error = error
        self.model = model
        self.timeout = 5
        self.calls: list[tuple[list[dict[str, str]], dict]] = []

    def chat(self, messages, **kwargs):
        self.calls.append((messages, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    async def achat(self, messages, **kwargs):
        return self.chat(messages, **kwargs)


@pytest.fixture()
def planner() -> FakePlanner:
    return FakePlanner()


@pytest.fixture()
def interpreter() -> FakeInterpreter:
    return FakeInterpreter()


@pytest.fixture()
def orchestrator(planner, interpreter) -> RecoveryOrchestrator:
    """Orchestrator without a task timer; tests report elapsed tasks themselves."""
    orch = RecoveryOrchestrator(planner, interpreter, approval_gate=ApprovalGate(), task_duration=None)
    yield orch
    orch.close()
