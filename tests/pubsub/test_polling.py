"""Tests for the polling observer."""

import time
from unittest.mock import Mock

import pytest

from trike_dispatch.pubsub import PollingObserver
from trike_dispatch.settings import PropagationSettings


@pytest.mark.unit
class TestPollOnce:
    def test_first_read_is_emitted(self):
        callback = Mock()
        observer = PollingObserver(lambda: {"status": "searching"}, callback)
        assert observer.poll_once() is True
        callback.assert_called_once_with({"status": "searching"})

    def test_unchanged_value_not_reemitted(self):
        values = iter([{"status": "searching"}, {"status": "searching"}, {"status": "arrived"}])
        callback = Mock()
        observer = PollingObserver(lambda: next(values), callback)

        assert [observer.poll_once() for _ in range(3)] == [True, False, True]
        assert callback.call_count == 2

    def test_reader_failure_keeps_previous_value(self):
        reader = Mock(side_effect=[1, RuntimeError("store down"), 1])
        callback = Mock()
        observer = PollingObserver(reader, callback)

        assert [observer.poll_once() for _ in range(3)] == [True, False, False]
        callback.assert_called_once_with(1)

    def test_none_is_a_value(self):
        callback = Mock()
        observer = PollingObserver(lambda: None, callback)
        assert observer.poll_once() is True
        assert observer.poll_once() is False


@pytest.mark.unit
class TestInterval:
    @pytest.mark.parametrize("interval", [0.5, 2.99, 5.01, 60])
    def test_interval_outside_window_rejected(self, interval):
        with pytest.raises(ValueError):
            PollingObserver(lambda: None, Mock(), interval_seconds=interval)

    def test_interval_from_settings(self):
        settings = PropagationSettings(poll_interval_seconds=4.5)
        observer = PollingObserver.from_settings(lambda: None, Mock(), settings)
        assert observer.interval_seconds == 4.5

    @pytest.mark.parametrize("interval", [3.0, 4.0, 5.0])
    def test_interval_inside_window(self, interval):
        assert PollingObserver(lambda: None, Mock(), interval).interval_seconds == interval


@pytest.mark.unit
class TestBackgroundThread:
    def test_start_polls_immediately_and_stops(self):
        callback = Mock()
        observer = PollingObserver(lambda: "value", callback)
        observer.start()
        try:
            for _ in range(100):
                if callback.called:
                    break
                time.sleep(0.01)
        finally:
            observer.stop(timeout=1.0)

        callback.assert_called_once_with("value")
        assert observer.running is False
