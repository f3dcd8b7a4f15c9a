import logging

import pytest

from trike_dispatch.dispatch_logging import ContextFilter, LogContext, log_context, log_trip_context


def _record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, "message", None, None)


@pytest.mark.unit
class TestLogContext:
    def test_context_fields_injected(self):
        with log_context(driver_id="d1"):
            record = _record()
            ContextFilter().filter(record)
        assert record.driver_id == "d1"

    def test_none_values_skipped(self):
        with log_context(driver_id=None, passenger_id="p1"):
            assert LogContext.get() == {"passenger_id": "p1"}

    def test_nested_contexts_restore_outer(self):
        with log_context(trip_id="t1"):
            with log_context(driver_id="d1"):
                assert LogContext.get() == {"trip_id": "t1", "driver_id": "d1"}
            assert LogContext.get() == {"trip_id": "t1"}
        assert LogContext.get() == {}

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with log_context(trip_id="t1"):
                raise RuntimeError("boom")
        assert LogContext.get() == {}

    def test_trip_context_defaults_correlation_id(self):
        with log_trip_context("t1"):
            assert LogContext.get() == {"trip_id": "t1", "correlation_id": "t1"}

    def test_explicit_record_fields_win(self):
        with log_context(trip_id="t1"):
            record = _record()
            record.trip_id = "t2"
            ContextFilter().filter(record)
        assert record.trip_id == "t2"
