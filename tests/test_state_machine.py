"""Tests for the operation state machine transition table."""

import pytest
from conftest import make_tasks

from orchestrator.state_machine import OperationStateMachine
from orchestrator.task_queue import TaskQueue
from schemas.operation_state import OperationEvent, OperationState


@pytest.fixture()
def machine() -> OperationStateMachine:
    return OperationStateMachine(TaskQueue(make_tasks(2)))


def test_initial_state_is_idle(machine):
    assert machine.state == OperationState.IDLE
    assert machine.history == []


def test_planning_round_trip(machine):
    assert machine.fire(OperationEvent.GENERATE_PLAN)
    assert machine.state == OperationState.PLANNING
    assert machine.fire(OperationEvent.PLAN_READY)
    assert machine.state == OperationState.IDLE


def test_start_requires_tasks():
    machine = OperationStateMachine(TaskQueue())
    assert not machine.can_fire(OperationEvent.START)
    assert machine.fire(OperationEvent.START) is False
    assert machine.state == OperationState.IDLE


def test_execution_cycle(machine):
    machine.fire(OperationEvent.START)
    assert machine.state == OperationState.EXECUTING
    assert machine.is_running

    machine.fire(OperationEvent.TASK_TIMER_ELAPSED)
    assert machine.state == OperationState.AWAITING_APPROVAL
    assert machine.is_running

    machine.fire(OperationEvent.APPROVE, OperationState.EXECUTING)
    assert machine.state == OperationState.EXECUTING

    machine.fire(OperationEvent.TASK_TIMER_ELAPSED)
    machine.fire(OperationEvent.APPROVE, OperationState.COMPLETED)
    assert machine.state == OperationState.COMPLETED
    assert not machine.is_running


def test_pause_and_resume(machine):
    machine.fire(OperationEvent.START)
    assert machine.fire(OperationEvent.PAUSE)
    assert machine.state == OperationState.PAUSED
    assert machine.fire(OperationEvent.RESUME)
    assert machine.state == OperationState.EXECUTING


def test_pause_for_review_from_approval(machine):
    machine.fire(OperationEvent.START)
    machine.fire(OperationEvent.TASK_TIMER_ELAPSED)
    assert machine.fire(OperationEvent.PAUSE_FOR_REVIEW)
    assert machine.state == OperationState.PAUSED


def test_completed_accepts_new_plan(machine):
    machine.fire(OperationEvent.START)
    machine.fire(OperationEvent.TASK_TIMER_ELAPSED)
    machine.fire(OperationEvent.APPROVE, OperationState.COMPLETED)
    assert machine.fire(OperationEvent.GENERATE_PLAN)
    assert machine.state == OperationState.PLANNING


@pytest.mark.parametrize(
    "path, event",
    [
        ([], OperationEvent.PAUSE),
        ([], OperationEvent.APPROVE),
        ([], OperationEvent.TASK_TIMER_ELAPSED),
        ([OperationEvent.START], OperationEvent.GENERATE_PLAN),
        ([OperationEvent.START], OperationEvent.APPROVE),
        ([OperationEvent.START], OperationEvent.START),
        ([OperationEvent.START, OperationEvent.PAUSE], OperationEvent.TASK_TIMER_ELAPSED),
        ([OperationEvent.START, OperationEvent.PAUSE], OperationEvent.GENERATE_PLAN),
        ([OperationEvent.GENERATE_PLAN], OperationEvent.START),
        ([OperationEvent.GENERATE_PLAN], OperationEvent.GENERATE_PLAN),
    ],
)
def test_invalid_events_are_rejected(machine, path, event):
    for step in path:
        assert machine.fire(step)
    state = machine.state
    history = len(machine.history)

    assert machine.fire(event) is False
    assert machine.state == state
    assert len(machine.history) == history


def test_approve_target_must_match(machine):
    machine.fire(OperationEvent.START)
    machine.fire(OperationEvent.TASK_TIMER_ELAPSED)
    assert machine.can_fire(OperationEvent.APPROVE, OperationState.COMPLETED)
    assert not machine.can_fire(OperationEvent.APPROVE, OperationState.PAUSED)


def test_listeners_see_applied_transitions(machine):
    seen = []
    machine.add_listener(seen.append)

    machine.fire(OperationEvent.START)
    machine.fire(OperationEvent.APPROVE, OperationState.EXECUTING)  # rejected

    assert len(seen) == 1
    assert seen[0].from_state == OperationState.IDLE
    assert seen[0].event == OperationEvent.START
    assert seen[0].to_state == OperationState.EXECUTING
    assert machine.history == seen


def test_valid_events(machine):
    assert set(machine.valid_events()) == {
        OperationEvent.GENERATE_PLAN,
        OperationEvent.START,
        OperationEvent.RESUME,
    }

    empty = OperationStateMachine(TaskQueue())
    assert empty.valid_events() == [OperationEvent.GENERATE_PLAN]


def test_rejection_is_logged(machine, caplog):
    with caplog.at_level("WARNING", logger="orchestrator.state_machine"):
        machine.fire(OperationEvent.PAUSE)
    assert "Rejected event pause in state IDLE" in caplog.text


def test_queue_exhausted_requires_nothing_left_to_run():
    queue = TaskQueue(make_tasks(1))
    machine = OperationStateMachine(queue)
    queue.start_first()
    machine.fire(OperationEvent.START)

    assert machine.fire(OperationEvent.QUEUE_EXHAUSTED) is False
    assert machine.state == OperationState.EXECUTING

    queue.complete_active()
    assert machine.fire(OperationEvent.QUEUE_EXHAUSTED)
    assert machine.state == OperationState.COMPLETED


def test_queue_changed_only_leaves_the_approval_gate(machine):
    machine.fire(OperationEvent.START)
    assert not machine.can_fire(OperationEvent.QUEUE_CHANGED)

    machine.fire(OperationEvent.TASK_TIMER_ELAPSED)
    assert machine.fire(OperationEvent.QUEUE_CHANGED)
    assert machine.state == OperationState.EXECUTING
