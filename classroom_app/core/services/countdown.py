"""Cancellable once-per-second countdown tied to a quiz session."""

from __future__ import annotations

import logging
from threading import Event, Lock, Thread
from typing import Callable

from classroom_app.constants.quiz_constants import COUNTDOWN_TICK_SECONDS

logger = logging.getLogger(__name__)


class Countdown:
    """Counts down whole seconds and calls ``on_expire`` once at zero.

    The countdown cannot be paused or extended. ``cancel`` stops it for good;
    after cancellation neither ticks nor the expiry callback run again.
    """

    def __init__(
        self,
        total_seconds: int,
        on_expire: Callable[[], None],
        tick_seconds: float = COUNTDOWN_TICK_SECONDS,
    ) -> None:
        if total_seconds <= 0:
            raise ValueError("Countdown must start above zero.")
        self._remaining = total_seconds
        self._on_expire = on_expire
        self._tick_seconds = tick_seconds
        self._cancelled = Event()
        self._lock = Lock()
        self._thread: Thread | None = None

    @property
    def remaining_seconds(self) -> int:
        with self._lock:
            return self._remaining

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Countdown already started.")
        self._thread = Thread(target=self._run, name="QuizCountdown", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def tick(self) -> bool:
        """Advance by one second. Returns True while the countdown is still live."""
        with self._lock:
            if self._cancelled.is_set() or self._remaining <= 0:
                return False
            self._remaining -= 1
            expired = self._remaining == 0
        if expired:
            self._cancelled.set()
            try:
                self._on_expire()
            except Exception:
                logger.exception("Countdown expiry callback failed")
            return False
        return True

    def _run(self) -> None:
        while not self._cancelled.wait(self._tick_seconds):
            if not self.tick():
                break
