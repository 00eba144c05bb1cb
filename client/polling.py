"""Cancellable fixed-interval task used for silent background refreshes."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PollingTask:
    """Runs `callback` every `interval_seconds` on a daemon thread until stopped.

    The first run happens one interval after `start()`. A callback failure is
    logged and the next tick simply tries again.
    """

    def __init__(self, callback: Callable[[], None], interval_seconds: float, *, name: str = "poll") -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._callback = callback
        self._interval_seconds = interval_seconds
        self._name = name
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stopped.is_set()

    def start(self) -> "PollingTask":
        if self._thread is not None:
            raise RuntimeError(f"polling task {self._name} already started")
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug("Started polling task %s every %ss", self._name, self._interval_seconds)
        return self

    def stop(self, timeout: float | None = None) -> None:
        """Cancel the task and wait for an in-progress tick to finish.

        Called from inside the callback it only cancels, since a thread
        cannot join itself.
        """
        self._stopped.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout)
        logger.debug("Stopped polling task %s", self._name)

    def _run(self) -> None:
        while not self._stopped.wait(self._interval_seconds):
            try:
                self._callback()
            except Exception:
                logger.exception("Polling task %s tick failed", self._name)
