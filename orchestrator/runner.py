"""Recovery operation runner.

The orchestrator owns the task queue, the state machine, the approval gate
and the activity log. Every transition is a synchronous method call on the
event loop thread, so transitions never interleave; the only suspension
points are the per-task execution timer and the planner / interpreter calls.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from agents.errors import InterpreterTimeoutError, MalformedResultError, PlannerError
from schemas.operation_state import (
    CommandOutcome,
    CommandStatus,
    LogCategory,
    OperationEvent,
    OperationSnapshot,
    OperationState,
)
from schemas.recovery_task import DisasterType, RecoveryTask, TaskStatus, default_recovery_plan

from .activity_log import ActivityLog
from .approval import ApprovalGate, ApprovalRequest, ApprovalResponse, ApprovalResult
from .collaborators import CommandInterpreter, CommandResult, Planner
from .state_machine import OperationStateMachine, TransitionRecord
from .task_queue import TaskQueue

if TYPE_CHECKING:
    from settings.config import Config

logger = logging.getLogger(__name__)

COMMAND_FAILURE_REPLY = "Signal interference. Command not processed."


@dataclass(frozen=True)
class ExecutionToken:
    """Identifies one armed execution timer.

    A timer whose token no longer matches the orchestrator's epoch was
    superseded and fires as a no-op.
    """

    epoch: int
    task_id: str


class RecoveryOrchestrator:
    """Runs a recovery plan one task at a time behind an approval gate.

    Caller surface:
    - ``generate_plan`` / ``start`` / ``resume`` / ``pause`` / ``approve``
    - ``submit_command`` for free-text operator commands
    - ``state``, ``tasks``, ``log`` and ``snapshot()`` as read-only views

    Invalid operator actions return False and leave everything untouched.
    Collaborator failures are absorbed and turned into log entries.
    """

    def __init__(
        self,
        planner: Planner,
        interpreter: CommandInterpreter,
        approval_gate: ApprovalGate | None = None,
        task_duration: float | None = 3.0,
        planner_timeout: float | None = None,
        command_timeout: float | None = None,
        log_max_entries: int | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            planner: Produces the initial task queue
            interpreter: Rewrites the queue from operator commands
            approval_gate: Gate policy (defaults to waiting for the operator)
            task_duration: Simulated execution time per task in seconds.
                None disables the timer; the caller then reports completion
                through ``task_timer_elapsed``.
            planner_timeout: Upper bound for a planner call
            command_timeout: Upper bound for an interpreter call
            log_max_entries: Bounded activity log retention
        """
        self.planner = planner
        self.interpreter = interpreter
        self.gate = approval_gate or ApprovalGate()
        self.task_duration = task_duration
        self.planner_timeout = planner_timeout
        self.command_timeout = command_timeout

        self._queue = TaskQueue()
        self.machine = OperationStateMachine(self._queue)
        self.log = ActivityLog(max_entries=log_max_entries)

        self._epoch = 0
        self._timer: asyncio.TimerHandle | None = None
        self._command_pending = False
        self._plan_generation = 0
        self._state_changed = asyncio.Event()

        self.machine.add_listener(self._on_transition)

    @classmethod
    def from_config(
        cls,
        config: "Config",
        planner: Planner,
        interpreter: CommandInterpreter,
        approval_gate: ApprovalGate | None = None,
    ) -> "RecoveryOrchestrator":
        """Build an orchestrator from the ``[operation]`` config section."""
        op = config.operation
        return cls(
            planner,
            interpreter,
            approval_gate=approval_gate or ApprovalGate(auto_approve=op.auto_approve),
            task_duration=op.task_duration_seconds,
            planner_timeout=op.planner_timeout_seconds,
            command_timeout=op.command_timeout_seconds,
            log_max_entries=op.log_max_entries,
        )

    def __repr__(self) -> str:
        return f"RecoveryOrchestrator(state={self.state.value}, queue={self._queue!r})"

    # ------------------------------------------------------------------
    # Read-only observations
    # ------------------------------------------------------------------

    @property
    def state(self) -> OperationState:
        return self.machine.state

    @property
    def tasks(self) -> list[RecoveryTask]:
        return self._queue.snapshot()

    @property
    def active_index(self) -> int:
        return self._queue.active_index

    @property
    def active_task(self) -> RecoveryTask | None:
        task = self._queue.active_task
        return task.model_copy() if task else None

    @property
    def command_pending(self) -> bool:
        return self._command_pending

    @property
    def awaiting_approval(self) -> ApprovalRequest | None:
        return self.gate.pending

    def snapshot(self) -> OperationSnapshot:
        pending = self.gate.pending
        return OperationSnapshot(
            state=self.state,
            active_index=self._queue.active_index,
            tasks=self._queue.snapshot(),
            statistics=self._queue.statistics(),
            command_pending=self._command_pending,
            awaiting_task_id=pending.task_id if pending else None,
            log=self.log.entries(),
        )

    async def wait_for_state(self, *states: OperationState, timeout: float | None = None) -> OperationState:
        """Wait until the machine is in one of ``states``.

        Raises:
            asyncio.TimeoutError: If none was reached within ``timeout``
        """

        async def _wait() -> OperationState:
            while self.state not in states:
                await self._state_changed.wait()
            return self.state

        return await asyncio.wait_for(_wait(), timeout)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    async def generate_plan(self, disaster_type: DisasterType | str, location: str) -> bool:
        """Request a new plan and replace the queue with it.

        Falls back to the default plan if the planner fails.

        Returns:
            False if planning is not allowed in the current state
        """
        if isinstance(disaster_type, str):
            disaster_type = DisasterType.from_string(disaster_type)

        if not self.machine.fire(OperationEvent.GENERATE_PLAN):
            return False

        self._plan_generation += 1
        self.gate.close()
        self.log.append(LogCategory.AI, f"Analyzing impact for {disaster_type.value} in {location}...")
        self.log.append(LogCategory.AI, "Generating resource allocation strategy...")

        try:
            tasks = await self._await_collaborator(
                self.planner.generate(disaster_type, location),
                self.planner_timeout,
            )
            tasks = self._validate_plan(tasks)
        except asyncio.CancelledError:
            # Leave PLANNING with the previous tasks, nothing started
            self._queue.replace(self._queue.snapshot())
            self.machine.fire(OperationEvent.PLAN_READY)
            self.log.append(LogCategory.SYSTEM, "Planning cancelled.")
            raise
        except Exception as e:
            logger.warning("Planner failed for %s in %s: %s", disaster_type.value, location, e)
            tasks = default_recovery_plan()
            self._queue.replace(tasks)
            self.machine.fire(OperationEvent.PLAN_READY)
            self.log.append(
                LogCategory.SYSTEM,
                f"Planner unavailable ({_describe(e)}). Degraded mode: loaded default plan "
                f"with {len(tasks)} operational phases.",
            )
            return True

        self._queue.replace(tasks)
        self.machine.fire(OperationEvent.PLAN_READY)
        self.log.append(LogCategory.AI, f"Plan generated with {len(tasks)} operational phases.")
        return True

    def _validate_plan(self, tasks: list[RecoveryTask]) -> list[RecoveryTask]:
        if not tasks:
            raise PlannerError("Planner returned an empty plan")
        _check_unique_ids(tasks, PlannerError)
        return [t.model_copy(update={"status": TaskStatus.PENDING}) for t in tasks]

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Start the operation, or resume it when paused.

        Returns:
            False if the queue is empty, has nothing left to run, or the
            state does not allow starting
        """
        if not self.machine.can_fire(OperationEvent.START):
            logger.warning("start() rejected in state %s with %d tasks", self.state.value, len(self._queue))
            return False

        fresh = not self._queue.is_started
        if fresh and not self._queue.start_first():
            logger.warning("start() rejected: no runnable task in queue")
            return False

        self.machine.fire(OperationEvent.START if fresh else OperationEvent.RESUME)

        active = self._queue.active_task
        if fresh:
            self.log.append(LogCategory.SYSTEM, "Operation Commenced.")
            self._log_started(active)
        else:
            if active is not None and active.is_pending():
                active.status = TaskStatus.IN_PROGRESS
            self.log.append(LogCategory.SYSTEM, "Operation Resumed.")

        self._arm_timer()
        return True

    def resume(self) -> bool:
        return self.start()

    def pause(self) -> bool:
        """Pause execution. At the approval gate this pauses for review."""
        if self.state == OperationState.AWAITING_APPROVAL:
            return self.pause_for_review()

        if not self.machine.fire(OperationEvent.PAUSE):
            return False
        self.log.append(LogCategory.SYSTEM, "Operation Paused by Commander.")
        return True

    def pause_for_review(self) -> bool:
        """Pause at the approval gate without approving the task."""
        if not self.machine.can_fire(OperationEvent.PAUSE_FOR_REVIEW):
            logger.warning("pause_for_review() rejected in state %s", self.state.value)
            return False
        request = self.gate.close(ApprovalResult.PAUSE)
        self.machine.fire(OperationEvent.PAUSE_FOR_REVIEW)
        title = request.title if request else "task"
        self.log.append(LogCategory.SYSTEM, f'Operation Paused for review of "{title}".')
        return True

    def approve(self, task_id: str | None = None) -> bool:
        """Confirm the task waiting at the approval gate and move on.

        Args:
            task_id: Optional id of the task being approved; an approval for
                any other task is rejected

        Returns:
            False if nothing (or a different task) is awaiting approval
        """
        if self.state != OperationState.AWAITING_APPROVAL or not self.gate.accepts(task_id):
            logger.warning(
                "approve(%s) rejected in state %s (pending: %s)",
                task_id,
                self.state.value,
                self.gate.pending.task_id if self.gate.pending else None,
            )
            return False

        task = self._queue.active_task
        self._queue.complete_active()
        self.gate.close(ApprovalResult.APPROVED)
        self.log.append(LogCategory.TASK, f'Completed "{task.title}" confirmed by Commander.')

        if self._queue.advance():
            self.machine.fire(OperationEvent.APPROVE, OperationState.EXECUTING)
            self._log_started(self._queue.active_task)
            self._arm_timer()
        else:
            self.machine.fire(OperationEvent.APPROVE, OperationState.COMPLETED)
            self.log.append(LogCategory.SYSTEM, "All recovery operations completed successfully.")
        return True

    # ------------------------------------------------------------------
    # Task execution timer
    # ------------------------------------------------------------------

    def task_timer_elapsed(self) -> bool:
        """Report that the active task finished executing.

        Used when ``task_duration`` is None and execution is driven by the
        caller instead of the built-in timer.
        """
        task = self._queue.active_task
        if task is None:
            return False
        return self._on_timer_elapsed(ExecutionToken(self._epoch, task.id))

    def _arm_timer(self) -> None:
        self._cancel_timer()
        task = self._queue.active_task
        if self.task_duration is None or task is None:
            return
        token = ExecutionToken(self._epoch, task.id)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.task_duration, self._on_timer_elapsed, token)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer_elapsed(self, token: ExecutionToken) -> bool:
        self._timer = None
        task = self._queue.active_task
        if (
            token.epoch != self._epoch
            or self.state != OperationState.EXECUTING
            or task is None
            or task.id != token.task_id
        ):
            logger.debug("Discarding stale execution timer %s", token)
            return False

        self.machine.fire(OperationEvent.TASK_TIMER_ELAPSED)
        self.log.append(LogCategory.SYSTEM, f'Task "{task.title}" pending Commander approval.')
        self._open_gate(task)
        return True

    def _open_gate(self, task: RecoveryTask) -> None:
        request = self.gate.open(task)
        response = self.gate.decide(request)
        if response is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._apply_response(request.task_id, response)
        else:
            loop.call_soon(self._apply_response, request.task_id, response)

    def _apply_response(self, task_id: str, response: ApprovalResponse) -> None:
        if not self.gate.accepts(task_id):
            logger.debug("Approval response for %s arrived after the gate closed", task_id)
            return
        if response.result == ApprovalResult.APPROVED:
            self.approve(task_id)
        elif response.result == ApprovalResult.PAUSE:
            self.pause_for_review()

    # ------------------------------------------------------------------
    # Operator commands
    # ------------------------------------------------------------------

    async def submit_command(self, transcript: str) -> CommandOutcome:
        """Let the interpreter rewrite the queue from a free-text command.

        Only one command may be outstanding at a time. The merge is applied
        in a single step once the interpreter answers.
        """
        transcript = transcript.strip()
        if not transcript:
            return CommandOutcome(status=CommandStatus.REJECTED, error="Empty command")

        if self._command_pending:
            self.log.append(LogCategory.COMMS, f'Command channel busy. "{transcript}" rejected.')
            return CommandOutcome(status=CommandStatus.BUSY, error="Another command is being processed")

        if self.state == OperationState.PLANNING:
            self.log.append(LogCategory.COMMS, f'Planning in progress. "{transcript}" rejected.')
            return CommandOutcome(status=CommandStatus.REJECTED, error="Planning in progress")

        self._command_pending = True
        generation = self._plan_generation
        shown = self._queue.snapshot()
        self.log.append(LogCategory.COMMS, f'Operator command: "{transcript}"')
        self.log.append(LogCategory.AI, "Analyzing intent...")

        try:
            result = await self._interpret(transcript, shown)
        except asyncio.CancelledError:
            self.log.append(LogCategory.COMMS, f'Command "{transcript}" cancelled.')
            raise
        except Exception as e:
            logger.warning("Interpreter failed for %r: %s", transcript, e)
            self.log.append(LogCategory.COMMS, f"{COMMAND_FAILURE_REPLY} ({_describe(e)})")
            return CommandOutcome(status=CommandStatus.FAILED, reply=COMMAND_FAILURE_REPLY, error=str(e))
        finally:
            self._command_pending = False

        if generation != self._plan_generation or self.state == OperationState.PLANNING:
            self.log.append(LogCategory.COMMS, f'Command "{transcript}" discarded: plan was replaced.')
            self.log.append(LogCategory.AI, result.reply)
            return CommandOutcome(status=CommandStatus.STALE, reply=result.reply)

        self._apply_merge(result, shown)
        self.log.append(LogCategory.AI, result.reply)
        return CommandOutcome(status=CommandStatus.APPLIED, reply=result.reply)

    async def _interpret(self, transcript: str, shown: list[RecoveryTask]) -> CommandResult:
        given = [t.model_copy(deep=True) for t in shown]
        try:
            result = await self._await_collaborator(
                self.interpreter.interpret(transcript, given),
                self.command_timeout,
            )
        except asyncio.TimeoutError as e:
            raise InterpreterTimeoutError(self.command_timeout or 0.0, original_error=e) from e

        if not isinstance(result, CommandResult) or not result.tasks:
            raise MalformedResultError("Interpreter returned no tasks")
        _check_unique_ids(result.tasks, MalformedResultError)
        return result

    def _apply_merge(self, result: CommandResult, shown: list[RecoveryTask]) -> None:
        holds_active = self._queue.is_started and self.state in (
            OperationState.EXECUTING,
            OperationState.AWAITING_APPROVAL,
            OperationState.PAUSED,
        )
        previous = self._queue.active_task.id if self._queue.active_task else None
        self._queue.merge(result.tasks, shown_tasks=shown, running=holds_active)
        if not holds_active:
            return

        if self._queue.is_exhausted:
            self.machine.fire(OperationEvent.QUEUE_EXHAUSTED)
            self.log.append(LogCategory.SYSTEM, "All recovery operations completed successfully.")
            return

        active = self._queue.active_task
        if self.state == OperationState.EXECUTING:
            if active.id != previous:
                self._log_started(active)
            # The queue changed under the running task: restart its timer
            self._epoch += 1
            self._arm_timer()
        elif self.state == OperationState.AWAITING_APPROVAL:
            if self.gate.accepts(active.id):
                self.gate.open(active)
                return
            self.machine.fire(OperationEvent.QUEUE_CHANGED)
            self.log.append(LogCategory.SYSTEM, f'Approval withdrawn: "{active.title}" is now the active task.')
            self._log_started(active)
            self._arm_timer()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_transition(self, record: TransitionRecord) -> None:
        # Any transition supersedes a pending execution timer
        self._epoch += 1
        self._cancel_timer()
        if record.from_state == OperationState.AWAITING_APPROVAL and record.to_state != OperationState.AWAITING_APPROVAL:
            self.gate.close()

        changed = self._state_changed
        self._state_changed = asyncio.Event()
        changed.set()

    async def _await_collaborator(self, coro, timeout: float | None):
        if timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout)

    def _log_started(self, task: RecoveryTask | None) -> None:
        if task is not None:
            self.log.append(LogCategory.TASK, f'Started "{task.title}" - Agent: {task.assigned_agent}')

    def close(self) -> None:
        """Cancel any pending timer. The orchestrator stays readable."""
        self._epoch += 1
        self._cancel_timer()


def _check_unique_ids(tasks: list[RecoveryTask], error_cls: type[Exception]) -> None:
    seen: set[str] = set()
    for task in tasks:
        if task.id in seen:
            raise error_cls(f"Duplicate task id: {task.id}")
        seen.add(task.id)


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__
