"""
Tests for the opt-in debug logger.
"""

import logging

from corvo_playground.core.debug_logger import DebugLogger, DebugLoggerConfig, TimingStats


def test_disabled_logger_records_nothing():
    debug = DebugLogger()
    with debug.timed_operation("bootstrap.fetch"):
        pass
    debug.log_fetch("https://example.com/rt.py", 200, 0.1, byte_length=10)

    assert debug.get_timing_stats() == {}
    assert debug.get_fetch_stats() == {"total_fetches": 0}


def test_timing_stats_accumulate():
    debug = DebugLogger(DebugLoggerConfig(enabled=True))
    for _ in range(3):
        with debug.timed_operation("bridge.run"):
            pass

    stats = debug.get_timing_stats()["bridge.run"]
    assert stats["count"] == 3
    assert stats["min"] <= stats["avg"] <= stats["max"]


def test_timing_recorded_when_operation_raises():
    debug = DebugLogger(DebugLoggerConfig(enabled=True))
    try:
        with debug.timed_operation("bootstrap.load"):
            raise ValueError("bad module")
    except ValueError:
        pass

    assert debug.get_timing_stats()["bootstrap.load"]["count"] == 1


def test_enable_disable_and_clear():
    debug = DebugLogger()
    debug.enable()
    debug.log_fetch("u", 404, 0.2, error="HTTP 404")
    debug.disable()
    debug.log_fetch("u", 200, 0.2)

    assert debug.get_fetch_stats()["total_fetches"] == 1
    assert debug.get_fetch_stats()["successful_fetches"] == 0

    debug.clear()
    assert debug.get_fetch_stats() == {"total_fetches": 0}


def test_log_error_without_stack_trace(caplog):
    debug = DebugLogger(DebugLoggerConfig(enabled=True, include_stack_traces=False))
    with caplog.at_level(logging.ERROR, logger="corvo_playground.core.debug_logger"):
        debug.log_error(RuntimeError("boom"), "bridge.run")

    assert "[ERROR] bridge.run: RuntimeError: boom" in caplog.text
    assert caplog.records[0].exc_info is None


def test_empty_timing_stats():
    stats = TimingStats()
    assert stats.avg_time == 0.0
    stats.add(0.5)
    assert stats.min_time == stats.max_time == 0.5
