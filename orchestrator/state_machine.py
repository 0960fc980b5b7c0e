"""State machine implementation for recovery operation orchestration."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from schemas.operation_state import OperationEvent, OperationState

from .task_queue import TaskQueue

logger = logging.getLogger(__name__)


@dataclass
class Transition:
    """Defines a valid state transition."""

    from_state: OperationState
    event: OperationEvent
    to_state: OperationState
    condition: Callable[[TaskQueue], bool] | None = None


@dataclass
class TransitionRecord:
    """A transition that was actually applied."""

    from_state: OperationState
    event: OperationEvent
    to_state: OperationState
    at: datetime = field(default_factory=datetime.now)


def _queue_not_empty(queue: TaskQueue) -> bool:
    return len(queue) > 0


def _queue_exhausted(queue: TaskQueue) -> bool:
    return queue.is_exhausted


class OperationStateMachine:
    """Finite-state controller for a recovery operation.

    Manages:
    - Valid state transitions and their guards
    - Transition history
    - Listener notification after each applied transition

    The machine only decides *whether* a transition is legal. Queue effects
    are applied by the orchestrator, which owns both.
    """

    # Define valid transitions
    TRANSITIONS: list[Transition] = [
        # Planning
        Transition(OperationState.IDLE, OperationEvent.GENERATE_PLAN, OperationState.PLANNING),
        Transition(OperationState.COMPLETED, OperationEvent.GENERATE_PLAN, OperationState.PLANNING),
        Transition(OperationState.PLANNING, OperationEvent.PLAN_READY, OperationState.IDLE),
        # Start / resume
        Transition(OperationState.IDLE, OperationEvent.START, OperationState.EXECUTING, _queue_not_empty),
        Transition(OperationState.PAUSED, OperationEvent.START, OperationState.EXECUTING, _queue_not_empty),
        Transition(OperationState.IDLE, OperationEvent.RESUME, OperationState.EXECUTING, _queue_not_empty),
        Transition(OperationState.PAUSED, OperationEvent.RESUME, OperationState.EXECUTING, _queue_not_empty),
        # Execution loop
        Transition(OperationState.EXECUTING, OperationEvent.TASK_TIMER_ELAPSED, OperationState.AWAITING_APPROVAL),
        Transition(OperationState.EXECUTING, OperationEvent.PAUSE, OperationState.PAUSED),
        Transition(OperationState.AWAITING_APPROVAL, OperationEvent.PAUSE_FOR_REVIEW, OperationState.PAUSED),
        # Approval gate: next task or done
        Transition(OperationState.AWAITING_APPROVAL, OperationEvent.APPROVE, OperationState.EXECUTING),
        Transition(OperationState.AWAITING_APPROVAL, OperationEvent.APPROVE, OperationState.COMPLETED),
        # Queue rewritten by a command
        Transition(OperationState.AWAITING_APPROVAL, OperationEvent.QUEUE_CHANGED, OperationState.EXECUTING),
        Transition(OperationState.EXECUTING, OperationEvent.QUEUE_EXHAUSTED, OperationState.COMPLETED, _queue_exhausted),
        Transition(OperationState.AWAITING_APPROVAL, OperationEvent.QUEUE_EXHAUSTED, OperationState.COMPLETED, _queue_exhausted),
        Transition(OperationState.PAUSED, OperationEvent.QUEUE_EXHAUSTED, OperationState.COMPLETED, _queue_exhausted),
    ]

    # States in which the active task must be in progress
    RUNNING_STATES = {OperationState.EXECUTING, OperationState.AWAITING_APPROVAL}

    def __init__(self, queue: TaskQueue, initial: OperationState = OperationState.IDLE) -> None:
        """Initialize state machine.

        Args:
            queue: Task queue the guards are evaluated against
            initial: Starting state
        """
        self.queue = queue
        self._state = initial
        self.history: list[TransitionRecord] = []
        self._listeners: list[Callable[[TransitionRecord], None]] = []

        # Build transition map for quick lookup
        self._transition_map: dict[tuple[OperationState, OperationEvent], list[Transition]] = {}
        for t in self.TRANSITIONS:
            self._transition_map.setdefault((t.from_state, t.event), []).append(t)

    @property
    def state(self) -> OperationState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state in self.RUNNING_STATES

    def add_listener(self, listener: Callable[[TransitionRecord], None]) -> None:
        """Register a callback invoked after every applied transition."""
        self._listeners.append(listener)

    def can_fire(self, event: OperationEvent, to_state: OperationState | None = None) -> bool:
        """Check if an event is accepted in the current state.

        Args:
            event: Event to check
            to_state: Required target when the event has several

        Returns:
            True if some matching transition exists and its guard passes
        """
        return self._find(event, to_state) is not None

    def fire(self, event: OperationEvent, to_state: OperationState | None = None) -> bool:
        """Apply an event.

        Args:
            event: Event to apply
            to_state: Target state, needed for events with several targets

        Returns:
            True if the transition was applied, False if it was rejected
        """
        transition = self._find(event, to_state)
        if transition is None:
            logger.warning(
                "Rejected event %s in state %s%s",
                event.value,
                self._state.value,
                f" (target {to_state.value})" if to_state else "",
            )
            return False

        record = TransitionRecord(self._state, event, transition.to_state)
        self._state = transition.to_state
        self.history.append(record)
        logger.debug("%s --%s--> %s", record.from_state.value, event.value, record.to_state.value)

        for listener in self._listeners:
            listener(record)
        return True

    def valid_events(self) -> list[OperationEvent]:
        """Get events accepted from the current state.

        Returns:
            Events with at least one passing transition
        """
        events: list[OperationEvent] = []
        for (from_state, event), transitions in self._transition_map.items():
            if from_state != self._state or event in events:
                continue
            if any(t.condition is None or t.condition(self.queue) for t in transitions):
                events.append(event)
        return events

    def _find(self, event: OperationEvent, to_state: OperationState | None) -> Transition | None:
        for t in self._transition_map.get((self._state, event), []):
            if to_state is not None and t.to_state != to_state:
                continue
            if t.condition is not None and not t.condition(self.queue):
                continue
            return t
        return None
