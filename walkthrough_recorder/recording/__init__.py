"""Recording engine — narrated capture and synchronized replay.

Interactions reach the engine through the InstrumentationAdapter.  Discrete
actions go to the EventLog, continuous state to the StateSampler, both
appending to one RecordedSession timeline.  The PlaybackController replays
that timeline against the audio clock through the same setters.
"""

from walkthrough_recorder.recording.clock import SessionClock
from walkthrough_recorder.recording.controller import PlaybackController, PlaybackState
from walkthrough_recorder.recording.event_log import EventLog
from walkthrough_recorder.recording.instrumentation import InstrumentationAdapter
from walkthrough_recorder.recording.interpolator import Interpolator
from walkthrough_recorder.recording.models import (
    EntryKind,
    EventType,
    RecordedSession,
    StateSnapshot,
    TimestampedEntry,
)
from walkthrough_recorder.recording.sampler import StateSampler
from walkthrough_recorder.recording.schema import dump_session, parse_session
from walkthrough_recorder.recording.store import SessionStore

__all__ = [
    "EntryKind",
    "EventLog",
    "EventType",
    "InstrumentationAdapter",
    "Interpolator",
    "PlaybackController",
    "PlaybackState",
    "RecordedSession",
    "SessionClock",
    "SessionStore",
    "StateSampler",
    "StateSnapshot",
    "TimestampedEntry",
    "dump_session",
    "parse_session",
]
