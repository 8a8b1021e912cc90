"""Interpolator — resolve the timeline at an arbitrary playback time.

For a target time ``t`` the bracketing entries are the last entry with
``timestamp <= t`` (A) and the first with ``timestamp > t`` (B).  Camera
axes and the explode/slice/x-ray amounts blend linearly between A and B;
every other field is taken verbatim from A.  Past the last entry the last
snapshot is returned unchanged (clamped, never extrapolated) and
``ended`` is set.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass

from walkthrough_recorder.recording.models import (
    CameraPose,
    EffectAmounts,
    RecordedSession,
    StateSnapshot,
    TimestampedEntry,
    Vec3,
)


@dataclass
class Resolution:
    snapshot: StateSnapshot
    ended: bool = False
    entry_a: TimestampedEntry | None = None
    entry_b: TimestampedEntry | None = None
    factor: float = 0.0


def lerp(a: float, b: float, f: float) -> float:
    return a + (b - a) * f


def lerp_vec3(a: Vec3, b: Vec3, f: float) -> Vec3:
    return (lerp(a[0], b[0], f), lerp(a[1], b[1], f), lerp(a[2], b[2], f))


def blend(a: StateSnapshot, b: StateSnapshot, f: float) -> StateSnapshot:
    """Blend continuous fields of *a* toward *b*; everything else comes from *a*."""
    out = a.copy()
    out.camera = CameraPose(
        position=lerp_vec3(a.camera.position, b.camera.position, f),
        target=lerp_vec3(a.camera.target, b.camera.target, f),
    )
    out.effects = EffectAmounts(
        explode=lerp(a.effects.explode, b.effects.explode, f),
        slice=lerp(a.effects.slice, b.effects.slice, f),
        xray=lerp(a.effects.xray, b.effects.xray, f),
    )
    return out


class Interpolator:
    """Stateless resolver over a session's timeline.

    Timestamps are indexed once per session so lookups are ``O(log n)``.
    """

    def __init__(self) -> None:
        self._indexed: RecordedSession | None = None
        self._indexed_len = 0
        self._timestamps: list[int] = []

    def _index(self, session: RecordedSession) -> list[int]:
        if self._indexed is not session or self._indexed_len != len(session.events):
            self._timestamps = [e.timestamp for e in session.events]
            self._indexed = session
            self._indexed_len = len(session.events)
        return self._timestamps

    def resolve(self, session: RecordedSession, t: float) -> Resolution:
        events = session.events
        if not events:
            return Resolution(snapshot=session.initial_state.copy(), ended=True)

        timestamps = self._index(session)
        if t < timestamps[0]:
            return Resolution(snapshot=session.initial_state.copy())

        i = bisect_right(timestamps, t) - 1
        entry_a = events[i]
        if i + 1 >= len(events):
            return Resolution(
                snapshot=entry_a.snapshot.copy(),
                ended=t > entry_a.timestamp,
                entry_a=entry_a,
            )

        entry_b = events[i + 1]
        span = entry_b.timestamp - entry_a.timestamp
        factor = min(1.0, max(0.0, (t - entry_a.timestamp) / span))
        return Resolution(
            snapshot=blend(entry_a.snapshot, entry_b.snapshot, factor),
            entry_a=entry_a,
            entry_b=entry_b,
            factor=factor,
        )
