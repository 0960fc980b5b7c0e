"""Operator approval gate for completed recovery tasks."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt

from schemas.recovery_task import RecoveryTask


class ApprovalResult(Enum):
    """Operator decision at the approval gate."""

    APPROVED = "approved"
    PAUSE = "pause"  # Pause the operation for review
    DEFERRED = "deferred"  # Leave the gate open, decide later


@dataclass
class ApprovalRequest:
    """A task that reports completion and waits for confirmation."""

    task_id: str
    title: str
    description: str
    assigned_agent: str
    opened_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def for_task(cls, task: RecoveryTask) -> "ApprovalRequest":
        return cls(
            task_id=task.id,
            title=task.title,
            description=task.description,
            assigned_agent=task.assigned_agent,
        )


@dataclass
class ApprovalResponse:
    """Response from an approval policy or prompt."""

    result: ApprovalResult
    notes: str | None = None
    approved_by: str = "operator"
    command: str | None = None  # Free-text command typed at the prompt


class ApprovalGate:
    """Synchronization point between task completion and queue advancement.

    The orchestrator opens the gate when a task reports completion and closes
    it when the task is approved, the operation is paused, or a new plan
    replaces the queue. Supports:
    - Auto-approval
    - A custom approval callback
    - Awaiting the next request (interactive callers)
    - A rich console prompt
    """

    def __init__(
        self,
        console: Console | None = None,
        auto_approve: bool = False,
        approval_callback: Callable[[ApprovalRequest], ApprovalResponse] | None = None,
    ) -> None:
        """Initialize approval gate.

        Args:
            console: Rich console for prompts
            auto_approve: If True, approve every request as soon as it opens
            approval_callback: Custom approval handler
        """
        self.console = console or Console()
        self.auto_approve = auto_approve
        self.approval_callback = approval_callback
        self._pending: ApprovalRequest | None = None
        self._opened = asyncio.Event()
        self.decisions: list[tuple[str, ApprovalResult]] = []

    @property
    def pending(self) -> ApprovalRequest | None:
        return self._pending

    @property
    def is_open(self) -> bool:
        return self._pending is not None

    def open(self, task: RecoveryTask) -> ApprovalRequest:
        """Open the gate for a task awaiting confirmation."""
        self._pending = ApprovalRequest.for_task(task)
        self._opened.set()
        return self._pending

    def close(self, result: ApprovalResult | None = None) -> ApprovalRequest | None:
        """Close the gate, recording the decision if one was made."""
        request = self._pending
        self._pending = None
        self._opened.clear()
        if request is not None and result is not None:
            self.decisions.append((request.task_id, result))
        return request

    def accepts(self, task_id: str | None) -> bool:
        """Check whether an approval for ``task_id`` matches the open request.

        ``None`` approves whatever is pending.
        """
        if self._pending is None:
            return False
        return task_id is None or task_id == self._pending.task_id

    def decide(self, request: ApprovalRequest) -> ApprovalResponse | None:
        """Apply the configured policy to a freshly opened request.

        Returns:
            A response, or None when an operator has to decide
        """
        if self.auto_approve:
            return ApprovalResponse(
                result=ApprovalResult.APPROVED,
                notes="Auto-approved",
                approved_by="auto",
            )

        if self.approval_callback:
            return self.approval_callback(request)

        return None

    async def wait_for_request(self, timeout: float | None = None) -> ApprovalRequest:
        """Block until the gate holds a request.

        Raises:
            asyncio.TimeoutError: If nothing opened within ``timeout`` seconds
        """
        while self._pending is None:
            await asyncio.wait_for(self._opened.wait(), timeout)
        return self._pending

    def prompt(self, request: ApprovalRequest) -> ApprovalResponse:
        """Interactive console prompt for a pending request.

        Blocking; run it in a worker thread from async code.
        """
        self.console.print()
        self.console.print(
            Panel(
                f"[bold]{escape(request.title)}[/bold]\n[dim]{escape(request.description)}[/dim]",
                title=f"Approval Required: {escape(request.assigned_agent)} reports completion",
                border_style="blue",
            )
        )

        # Prompt for decision
        self.console.print("[bold]Options:[/bold]")
        self.console.print("  [green]y/yes[/green] - Confirm and proceed")
        self.console.print("  [yellow]p/pause[/yellow] - Pause for review")
        self.console.print("  [blue]c/command[/blue] - Issue an operator command")
        self.console.print("  [dim]d/defer[/dim] - Decide later")
        self.console.print()

        choice = Prompt.ask(
            "Your decision",
            choices=["y", "yes", "p", "pause", "c", "command", "d", "defer"],
            default="y",
            console=self.console,
        )

        if choice in ("y", "yes"):
            return ApprovalResponse(result=ApprovalResult.APPROVED)

        if choice in ("p", "pause"):
            return ApprovalResponse(result=ApprovalResult.PAUSE)

        if choice in ("c", "command"):
            command = Prompt.ask("Command", console=self.console)
            return ApprovalResponse(result=ApprovalResult.DEFERRED, command=command or None)

        return ApprovalResponse(result=ApprovalResult.DEFERRED)
