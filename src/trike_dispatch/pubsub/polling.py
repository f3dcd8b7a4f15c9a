"""Poll transport: re-read a snapshot on an interval and emit on change."""

import logging
import threading
from collections.abc import Callable
from typing import Any

from trike_dispatch.settings import PropagationSettings

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL_SECONDS = 3.0
MAX_POLL_INTERVAL_SECONDS = 5.0

_UNSET = object()


class PollingObserver:
    """Observes state by polling instead of subscribing.

    Each poll calls `reader`; the result is compared with the last emitted
    value and `callback` runs only when it differs. Reader failures are
    logged and the observer keeps its previous value.
    """

    def __init__(
        self,
        reader: Callable[[], Any],
        callback: Callable[[Any], None],
        interval_seconds: float = MIN_POLL_INTERVAL_SECONDS,
    ) -> None:
        if not MIN_POLL_INTERVAL_SECONDS <= interval_seconds <= MAX_POLL_INTERVAL_SECONDS:
            raise ValueError(
                f"interval_seconds must be between {MIN_POLL_INTERVAL_SECONDS} "
                f"and {MAX_POLL_INTERVAL_SECONDS}, got {interval_seconds}"
            )
        self.interval_seconds = interval_seconds
        self._reader = reader
        self._callback = callback
        self._last: Any = _UNSET
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @classmethod
    def from_settings(
        cls,
        reader: Callable[[], Any],
        callback: Callable[[Any], None],
        settings: PropagationSettings,
    ) -> "PollingObserver":
        return cls(reader, callback, settings.poll_interval_seconds)

    def poll_once(self) -> bool:
        """Read once. Returns True if the value changed and was emitted."""
        try:
            value = self._reader()
        except Exception:
            logger.exception("Polling read failed")
            return False

        if self._last is not _UNSET and value == self._last:
            return False
        self._last = value
        self._callback(value)
        return True

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="polling-observer", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Polling callback failed")
            self._stop.wait(self.interval_seconds)
