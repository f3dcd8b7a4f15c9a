import json
import logging
import sys

import pytest

from trike_dispatch.dispatch_logging import DevFormatter, JSONFormatter, setup_logging


def _record(msg: str = "Trip accepted") -> logging.LogRecord:
    return logging.LogRecord("trike_dispatch.trips", logging.INFO, __file__, 1, msg, None, None)


@pytest.mark.unit
class TestJSONFormatter:
    def test_includes_core_fields(self):
        data = json.loads(JSONFormatter("production").format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "trike_dispatch.trips"
        assert data["message"] == "Trip accepted"
        assert data["env"] == "production"

    def test_includes_context_fields(self):
        record = _record()
        record.trip_id = "t1"
        record.driver_id = "d1"
        data = json.loads(JSONFormatter().format(record))
        assert data["trip_id"] == "t1"
        assert data["driver_id"] == "d1"
        assert "passenger_id" not in data

    def test_includes_exception(self):
        try:
            raise ValueError("bad fare")
        except ValueError:
            record = logging.LogRecord(
                "test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad fare" in data["exception"]


@pytest.mark.unit
class TestDevFormatter:
    def test_appends_trip_id(self):
        record = _record()
        record.trip_id = "t1"
        assert DevFormatter().format(record).endswith("Trip accepted [trip=t1]")

    def test_without_trip_id(self):
        assert DevFormatter().format(_record()).endswith("trike_dispatch.trips: Trip accepted")


@pytest.mark.unit
class TestSetupLogging:
    def test_configures_root_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("DEBUG", json_output=True, environment="staging")
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            handler = root.handlers[0]
            assert isinstance(handler.formatter, JSONFormatter)
            assert len(handler.filters) == 3
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
