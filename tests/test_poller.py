"""Tests for long-running operation polling."""
import logging
import threading

import pytest

from appint_toolkit.connections.domains.errors import TransportError
from appint_toolkit.connections.workflows.poller import (
    POLL_INTERVAL_SECONDS,
    OperationState,
    wait_for_operation,
)


class FakeClock:
    """Clock advanced only by sleep calls."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self):
        return self.now


def _sequence(*operations):
    calls = []
    replies = list(operations)

    def get_operation(operation_id):
        calls.append(operation_id)
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply
    return get_operation, calls


class TestWaitForOperation:
    def test_succeeds_on_third_query(self, caplog):
        clock = FakeClock()
        get_operation, calls = _sequence({"done": False}, {"done": False}, {"done": True})

        with caplog.at_level(logging.INFO):
            state = wait_for_operation(get_operation, "op-1", sleep=clock.sleep, clock=clock)

        assert state == OperationState.DONE_SUCCESS
        assert calls == ["op-1", "op-1", "op-1"]
        assert clock.now >= 2 * POLL_INTERVAL_SECONDS
        assert "Connection completed successfully!" in caplog.text

    def test_done_with_error(self, caplog):
        clock = FakeClock()
        get_operation, _ = _sequence({"done": True, "error": {"code": 9, "message": "quota"}})

        state = wait_for_operation(get_operation, "op-1", sleep=clock.sleep, clock=clock)

        assert state == OperationState.DONE_ERROR
        assert "Connection completed with error: quota" in caplog.text

    def test_query_failure_stops_quietly(self):
        clock = FakeClock()
        get_operation, calls = _sequence({"done": False}, TransportError("500"))

        state = wait_for_operation(get_operation, "op-1", sleep=clock.sleep, clock=clock)

        assert state == OperationState.FAILED_TO_QUERY
        assert len(calls) == 2

    def test_first_query_waits_one_interval(self):
        clock = FakeClock()
        get_operation, _ = _sequence({"done": True})

        wait_for_operation(get_operation, "op-1", interval=3, sleep=clock.sleep, clock=clock)

        assert clock.sleeps == [3]

    def test_deadline_gives_up(self):
        clock = FakeClock()
        get_operation, calls = _sequence(*[{"done": False}] * 10)

        state = wait_for_operation(get_operation, "op-1", interval=10, deadline=25,
                                   sleep=clock.sleep, clock=clock)

        assert state == OperationState.TIMED_OUT
        assert len(calls) == 3

    def test_cancel_event_stops_waiting(self):
        cancel = threading.Event()
        cancel.set()
        get_operation, calls = _sequence({"done": False})

        state = wait_for_operation(get_operation, "op-1", cancel=cancel)

        assert state == OperationState.CANCELLED
        assert calls == []
