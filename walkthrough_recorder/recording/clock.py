"""SessionClock — elapsed milliseconds relative to a movable origin."""

from __future__ import annotations

import time
from typing import Callable

TimeSource = Callable[[], float]
"""Returns a monotonic time in seconds."""


class SessionClock:
    """Host clock measuring elapsed time since a recording or playback origin.

    The origin can be re-derived at any time with :meth:`reset`, which is how
    playback resumes at the paused position without counting the pause.
    """

    def __init__(self, time_source: TimeSource | None = None) -> None:
        self._now = time_source or time.monotonic
        self._origin = self._now()

    def reset(self, elapsed_ms: float = 0.0) -> None:
        """Move the origin so that :meth:`elapsed_ms` currently reads *elapsed_ms*."""
        self._origin = self._now() - elapsed_ms / 1000.0

    def elapsed_ms(self) -> float:
        return (self._now() - self._origin) * 1000.0

    def timestamp(self) -> int:
        """Elapsed time as a non-negative integer millisecond stamp."""
        return max(0, int(self.elapsed_ms()))
