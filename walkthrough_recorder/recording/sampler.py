"""StateSampler — change-gated background sampling while recording.

Two independent asyncio timers run between :meth:`StateSampler.start` and
:meth:`StateSampler.stop`:

    state  channel — default 60 Hz, emits ``continuousState`` entries when
                     effects, focus, visibility, animation or document move
    camera channel — default 30 Hz, emits ``cameraState`` entries when the
                     camera position or target moves

Each channel compares the fresh snapshot with the last snapshot *it*
emitted and appends only on change, keeping the timeline sparse.  The first
tick happens one full interval after start (no immediate sample; the
initial entry already covers t=0).
"""

from __future__ import annotations

import asyncio
from typing import Callable

from walkthrough_recorder.config import SamplingConfig
from walkthrough_recorder.logging import get_logger
from walkthrough_recorder.recording.clock import SessionClock
from walkthrough_recorder.recording.models import (
    EntryKind,
    RecordedSession,
    StateSnapshot,
    TimestampedEntry,
)
from walkthrough_recorder.recording.snapshot import camera_changed, state_changed

log = get_logger(__name__)

_CHANNEL_KINDS = (EntryKind.CONTINUOUS_STATE, EntryKind.CAMERA_STATE)


class StateSampler:
    """Periodic snapshot capture on two cadences."""

    def __init__(
        self,
        capture: Callable[[], StateSnapshot],
        config: SamplingConfig | None = None,
    ) -> None:
        self._capture = capture
        self._config = config or SamplingConfig()
        self._session: RecordedSession | None = None
        self._clock: SessionClock | None = None
        self._last_emitted: dict[EntryKind, StateSnapshot] = {}
        self._tasks: list[asyncio.Task[None]] = []
        self._stop_event = asyncio.Event()
        self.ticks: dict[EntryKind, int] = {kind: 0 for kind in _CHANNEL_KINDS}

    # ---------------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def attach(self, session: RecordedSession, clock: SessionClock) -> None:
        """Bind to *session* and seed both channels with its initial snapshot."""
        self._session = session
        self._clock = clock
        self._last_emitted = {kind: session.initial_state.copy() for kind in _CHANNEL_KINDS}
        self.ticks = {kind: 0 for kind in _CHANNEL_KINDS}

    def start(self) -> None:
        """Start both channel timers.  Requires a running event loop."""
        if self.is_running:
            return
        self._stop_event = asyncio.Event()
        self._tasks = [
            asyncio.create_task(
                self._run(EntryKind.CONTINUOUS_STATE, 1.0 / self._config.state_hz),
                name="sampler_state",
            ),
            asyncio.create_task(
                self._run(EntryKind.CAMERA_STATE, 1.0 / self._config.camera_hz),
                name="sampler_camera",
            ),
        ]
        log.debug(
            "sampler_started",
            state_hz=self._config.state_hz,
            camera_hz=self._config.camera_hz,
        )

    def stop(self) -> None:
        """Cancel both timers immediately and detach from the session."""
        self._stop_event.set()
        for task in self._tasks:
            if not task.done():
                task.cancel()
        self._tasks = []
        self._session = None
        self._clock = None
        log.debug("sampler_stopped", ticks={k.value: v for k, v in self.ticks.items()})

    # ---------------------------------------------------------------------------
    # Sampling
    # ---------------------------------------------------------------------------

    def sample(self, kind: EntryKind) -> TimestampedEntry | None:
        """Capture now on channel *kind*; append and return the entry if it changed."""
        if self._session is None or self._clock is None:
            return None
        if kind not in _CHANNEL_KINDS:
            raise ValueError(f"Not a sampler channel: {kind!r}")

        current = self._capture()
        previous = self._last_emitted[kind]
        tolerance = self._config.change_tolerance
        if kind == EntryKind.CAMERA_STATE:
            changed = camera_changed(previous, current, tolerance)
        else:
            changed = state_changed(previous, current, tolerance)
        if not changed:
            return None

        entry = TimestampedEntry(
            timestamp=max(self._clock.timestamp(), self._session.last_timestamp),
            kind=kind,
            snapshot=current,
        )
        self._session.append(entry)
        self._last_emitted[kind] = current.copy()
        return entry

    async def _run(self, kind: EntryKind, interval: float) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                return  # stop requested
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                return
            self.ticks[kind] += 1
            try:
                self.sample(kind)
            except Exception as exc:
                log.error("sampler_tick_failed", channel=kind.value, error=str(exc))
