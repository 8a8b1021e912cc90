"""EventLog — appends discrete user actions to the session being recorded.

Every call is preserved: two identical actions fired in the same
millisecond are two entries, because each is a distinct user action.
"""

from __future__ import annotations

import copy
from typing import Any, Callable

from walkthrough_recorder.logging import get_logger
from walkthrough_recorder.recording.clock import SessionClock
from walkthrough_recorder.recording.models import (
    EntryKind,
    RecordedSession,
    StateSnapshot,
    TimestampedEntry,
)

log = get_logger(__name__)


class EventLog:
    """Stamps discrete actions with SessionClock time and a full snapshot.

    The log only accepts events between :meth:`open` and :meth:`close`,
    which the PlaybackController calls on entering and leaving the
    ``recording`` state.
    """

    def __init__(self, capture: Callable[[], StateSnapshot]) -> None:
        self._capture = capture
        self._session: RecordedSession | None = None
        self._clock: SessionClock | None = None

    @property
    def is_open(self) -> bool:
        return self._session is not None

    def open(self, session: RecordedSession, clock: SessionClock) -> None:
        self._session = session
        self._clock = clock

    def close(self) -> None:
        self._session = None
        self._clock = None

    def record_discrete_event(
        self, event_type: str, data: dict[str, Any] | None = None
    ) -> TimestampedEntry | None:
        """Append a discrete event.  Returns ``None`` when not recording."""
        if self._session is None or self._clock is None:
            return None

        entry = TimestampedEntry(
            timestamp=max(self._clock.timestamp(), self._session.last_timestamp),
            kind=EntryKind.DISCRETE_EVENT,
            snapshot=self._capture(),
            event_type=event_type,
            event_data=copy.deepcopy(data or {}),
        )
        self._session.append(entry)
        log.debug(
            "discrete_event_recorded",
            event_type=event_type,
            timestamp=entry.timestamp,
        )
        return entry
