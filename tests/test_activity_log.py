"""Tests for the activity log."""

import logging

from orchestrator.activity_log import ActivityLog
from schemas.operation_state import LogCategory


def test_entries_are_numbered_in_arrival_order():
    log = ActivityLog()
    first = log.append(LogCategory.SYSTEM, "Operation Commenced.")
    second = log.append(LogCategory.TASK, 'Started "Assess Damage" - Agent: Recon Unit')

    assert (first.sequence, second.sequence) == (0, 1)
    assert [e.message for e in log] == ["Operation Commenced.", 'Started "Assess Damage" - Agent: Recon Unit']
    assert len(log) == 2


def test_filter_by_category():
    log = ActivityLog()
    log.append(LogCategory.SYSTEM, "a")
    log.append(LogCategory.AI, "b")
    log.append(LogCategory.SYSTEM, "c")

    assert [e.message for e in log.entries(LogCategory.SYSTEM)] == ["a", "c"]
    assert [e.message for e in log.entries(LogCategory.COMMS)] == []


def test_since_and_tail():
    log = ActivityLog()
    for i in range(5):
        log.append(LogCategory.AI, str(i))

    assert [e.message for e in log.since(3)] == ["3", "4"]
    assert [e.message for e in log.tail(2)] == ["3", "4"]
    assert log.tail(0) == []


def test_bounded_retention_keeps_counting():
    log = ActivityLog(max_entries=3)
    for i in range(5):
        log.append(LogCategory.AI, str(i))

    assert [e.message for e in log] == ["2", "3", "4"]
    assert [e.sequence for e in log] == [2, 3, 4]
    assert log.total_appended == 5


def test_format():
    log = ActivityLog()
    entry = log.append(LogCategory.COMMS, 'Operator command: "hold position"')
    rendered = entry.format()
    assert rendered.endswith('[COMMS] Operator command: "hold position"')
    assert rendered.startswith("[")


def test_subscribers_receive_entries():
    log = ActivityLog()
    received = []
    unsubscribe = log.subscribe(received.append)

    log.append(LogCategory.SYSTEM, "one")
    unsubscribe()
    log.append(LogCategory.SYSTEM, "two")

    assert [e.message for e in received] == ["one"]


def test_failing_subscriber_does_not_block_append(caplog):
    log = ActivityLog()

    def broken(entry):
        raise RuntimeError("display gone")

    log.subscribe(broken)
    with caplog.at_level(logging.ERROR, logger="orchestrator.activity"):
        entry = log.append(LogCategory.SYSTEM, "still written")

    assert list(log) == [entry]
    assert "Activity log listener failed" in caplog.text


def test_entries_are_mirrored_to_logging(caplog):
    log = ActivityLog()
    with caplog.at_level(logging.INFO, logger="orchestrator.activity"):
        log.append(LogCategory.TASK, 'Completed "Medical Triage" confirmed by Commander.')
    assert '[TASK] Completed "Medical Triage" confirmed by Commander.' in caplog.text
