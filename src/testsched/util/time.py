from __future__ import annotations

import time


class Stopwatch:
    """Monotonic elapsed-time counter that can be stopped once."""

    __slots__ = ("_started", "_stopped")

    def __init__(self) -> None:
        self._started = time.monotonic()
        self._stopped: float | None = None

    def stop(self) -> float:
        if self._stopped is None:
            self._stopped = time.monotonic()
        return self.elapsed

    @property
    def elapsed(self) -> float:
        end = self._stopped if self._stopped is not None else time.monotonic()
        return end - self._started
