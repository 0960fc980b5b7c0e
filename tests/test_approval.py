"""Tests for the approval gate."""

import asyncio
import io

import pytest
from conftest import make_task
from rich.console import Console

from orchestrator.approval import ApprovalGate, ApprovalResponse, ApprovalResult


@pytest.fixture()
def quiet_console() -> Console:
    return Console(file=io.StringIO(), force_terminal=False)


def test_open_and_close(quiet_console):
    gate = ApprovalGate(console=quiet_console)
    assert not gate.is_open

    request = gate.open(make_task("2", "Establish Comms"))
    assert gate.is_open
    assert request.task_id == "2"
    assert request.title == "Establish Comms"

    closed = gate.close(ApprovalResult.APPROVED)
    assert closed is request
    assert not gate.is_open
    assert gate.decisions == [("2", ApprovalResult.APPROVED)]


def test_close_without_decision_records_nothing(quiet_console):
    gate = ApprovalGate(console=quiet_console)
    gate.open(make_task("1"))
    gate.close()
    assert gate.decisions == []
    assert gate.close(ApprovalResult.APPROVED) is None


def test_accepts(quiet_console):
    gate = ApprovalGate(console=quiet_console)
    assert not gate.accepts(None)

    gate.open(make_task("1"))
    assert gate.accepts(None)
    assert gate.accepts("1")
    assert not gate.accepts("2")


def test_auto_approve_policy(quiet_console):
    gate = ApprovalGate(console=quiet_console, auto_approve=True)
    response = gate.decide(gate.open(make_task("1")))
    assert response.result == ApprovalResult.APPROVED
    assert response.approved_by == "auto"


def test_callback_policy(quiet_console):
    seen = []

    def callback(request):
        seen.append(request.task_id)
        return ApprovalResponse(result=ApprovalResult.PAUSE, notes="Check the bridge first")

    gate = ApprovalGate(console=quiet_console, approval_callback=callback)
    response = gate.decide(gate.open(make_task("3")))

    assert seen == ["3"]
    assert response.result == ApprovalResult.PAUSE


def test_no_policy_leaves_decision_to_operator(quiet_console):
    gate = ApprovalGate(console=quiet_console)
    assert gate.decide(gate.open(make_task("1"))) is None


@pytest.mark.asyncio
async def test_wait_for_request(quiet_console):
    gate = ApprovalGate(console=quiet_console)
    asyncio.get_running_loop().call_later(0.01, gate.open, make_task("4"))

    request = await gate.wait_for_request(timeout=1)
    assert request.task_id == "4"


@pytest.mark.asyncio
async def test_wait_for_request_times_out(quiet_console):
    gate = ApprovalGate(console=quiet_console)
    with pytest.raises(asyncio.TimeoutError):
        await gate.wait_for_request(timeout=0.01)


@pytest.mark.parametrize(
    "answers, result, command",
    [
        (["y"], ApprovalResult.APPROVED, None),
        (["pause"], ApprovalResult.PAUSE, None),
        (["c", "reassign triage to Sector 4"], ApprovalResult.DEFERRED, "reassign triage to Sector 4"),
        (["d"], ApprovalResult.DEFERRED, None),
    ],
)
def test_prompt(monkeypatch, quiet_console, answers, result, command):
    replies = iter(answers)
    monkeypatch.setattr("orchestrator.approval.Prompt.ask", lambda *args, **kwargs: next(replies))

    gate = ApprovalGate(console=quiet_console)
    response = gate.prompt(gate.open(make_task("1", "Assess Damage")))

    assert response.result == result
    assert response.command == command
    assert "Assess Damage" in quiet_console.file.getvalue()
