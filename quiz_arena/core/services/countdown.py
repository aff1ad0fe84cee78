"""Background one-second ticker driving a session's countdown."""

from __future__ import annotations

import logging
from threading import Event, Thread
from typing import Callable

from quiz_arena.constants.quiz_constants import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class CountdownTimer:
    """Calls ``on_tick`` every interval until stopped or ``on_tick`` returns False.

    Once stopped a timer never fires again; a new timer is needed for a new
    session.
    """

    def __init__(
        self,
        name: str,
        on_tick: Callable[[], bool],
        interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        self.name = name
        self._on_tick = on_tick
        self._interval = interval
        self._stop_event = Event()
        self._thread: Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"Timer {self.name} was already started.")
        self._thread = Thread(target=self._run, name=f"Countdown-{self.name}", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop_event.is_set()
        )

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                keep_running = self._on_tick()
            except Exception:
                # The countdown continues after a failed tick.
                logger.exception("Countdown %s tick failed", self.name)
                continue
            if not keep_running:
                break
        self._stop_event.set()
        logger.debug("Countdown %s stopped", self.name)
