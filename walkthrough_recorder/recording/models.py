"""Recording data models.

A RecordedSession is the artifact produced by one recording: an ordered
timeline of TimestampedEntry items, each carrying a full StateSnapshot.
Snapshots are value objects; they are deep-copied whenever they cross the
boundary with a live collaborator so that the timeline never aliases
renderer state.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator

Vec3 = tuple[float, float, float]


class EntryKind(str, Enum):
    INITIAL = "initial"
    CONTINUOUS_STATE = "continuousState"
    CAMERA_STATE = "cameraState"
    DISCRETE_EVENT = "discreteEvent"


class EventType(str, Enum):
    """Discrete user actions that are replayed atomically."""

    FOCUS_PART = "scene.focus_part"
    CLEAR_FOCUS = "scene.clear_focus"
    RESET_VIEW = "scene.reset_view"
    SET_VISIBILITY = "scene.set_visibility"
    LOAD_MODEL = "scene.load_model"
    SELECT_ANIMATION = "animation.select"
    PLAY_ANIMATION = "animation.play"
    PAUSE_ANIMATION = "animation.pause"
    STOP_ANIMATION = "animation.stop"
    SET_ANIMATION_SPEED = "animation.speed"
    LOAD_ASSET = "document.load_asset"
    SET_PAGE = "document.page"
    SET_ZOOM = "document.zoom"


# ---------------------------------------------------------------------------
# Snapshot value objects
# ---------------------------------------------------------------------------


@dataclass
class CameraPose:
    position: Vec3 = (0.0, 0.0, 0.0)
    target: Vec3 = (0.0, 0.0, 0.0)


@dataclass
class EffectAmounts:
    explode: float = 0.0
    slice: float = 1.0
    xray: float = 1.0


@dataclass
class AnimationState:
    selected: str | None = None
    playing: bool = False
    paused: bool = False
    speed: float = 1.0
    time: float = 0.0


@dataclass
class DocumentState:
    asset_id: str | None = None
    page: int = 1
    zoom: float = 1.0


@dataclass
class StateSnapshot:
    """Full capture of all inspectable state at one instant."""

    camera: CameraPose = field(default_factory=CameraPose)
    effects: EffectAmounts = field(default_factory=EffectAmounts)
    focused_part: str | None = None
    visibility: dict[str, bool] = field(default_factory=dict)
    animation: AnimationState = field(default_factory=AnimationState)
    document: DocumentState = field(default_factory=DocumentState)

    def copy(self) -> "StateSnapshot":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "camera": {
                "position": list(self.camera.position),
                "target": list(self.camera.target),
            },
            "effects": {
                "explode": self.effects.explode,
                "slice": self.effects.slice,
                "xray": self.effects.xray,
            },
            "focusedPart": self.focused_part,
            "visibility": dict(self.visibility),
            "animation": {
                "selected": self.animation.selected,
                "playing": self.animation.playing,
                "paused": self.animation.paused,
                "speed": self.animation.speed,
                "time": self.animation.time,
            },
            "document": {
                "assetId": self.document.asset_id,
                "page": self.document.page,
                "zoom": self.document.zoom,
            },
        }


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------


@dataclass
class TimestampedEntry:
    """One point on the timeline."""

    timestamp: int  # ms since the recording origin
    kind: EntryKind
    snapshot: StateSnapshot
    event_type: str | None = None
    event_data: dict[str, Any] | None = None

    @property
    def is_discrete(self) -> bool:
        return self.kind == EntryKind.DISCRETE_EVENT

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "timestamp": self.timestamp,
            "type": self.kind.value,
            "state": self.snapshot.to_dict(),
        }
        if self.is_discrete:
            d["eventType"] = self.event_type
            d["data"] = copy.deepcopy(self.event_data or {})
        return d


@dataclass
class RecordedSession:
    """Ordered timeline + initial snapshot + audio handle + duration.

    Invariants: ``events`` is non-decreasing by timestamp and ``events[0]``
    is the ``initial`` entry at timestamp 0.  Once :meth:`finalize` has run
    the session is read-only.
    """

    session_id: str
    initial_state: StateSnapshot
    events: list[TimestampedEntry] = field(default_factory=list)
    audio_track: Any = None
    duration_ms: int = 0
    created_at: datetime | None = None
    finalized: bool = False

    @classmethod
    def begin(cls, initial_state: StateSnapshot) -> "RecordedSession":
        initial = initial_state.copy()
        return cls(
            session_id=f"ses-{uuid.uuid4().hex[:12]}",
            initial_state=initial,
            events=[TimestampedEntry(0, EntryKind.INITIAL, initial.copy())],
        )

    @property
    def last_timestamp(self) -> int:
        return self.events[-1].timestamp if self.events else 0

    @property
    def has_audio(self) -> bool:
        return self.audio_track is not None

    def append(self, entry: TimestampedEntry) -> None:
        if self.finalized:
            raise RuntimeError(f"Session {self.session_id} is finalized and read-only")
        if entry.timestamp < self.last_timestamp:
            raise ValueError(
                f"Entry at {entry.timestamp}ms precedes last entry at {self.last_timestamp}ms"
            )
        self.events.append(entry)

    def finalize(self, duration_ms: int, audio_track: Any = None) -> None:
        self.duration_ms = max(int(duration_ms), self.last_timestamp)
        self.audio_track = audio_track
        self.created_at = datetime.now(timezone.utc)
        self.finalized = True

    def discrete_events(self) -> Iterator[TimestampedEntry]:
        return (e for e in self.events if e.is_discrete)

    def count_by_kind(self) -> dict[str, int]:
        counts = {kind.value: 0 for kind in EntryKind}
        for entry in self.events:
            counts[entry.kind.value] += 1
        return counts

    def to_summary_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "duration_ms": self.duration_ms,
            "entry_count": len(self.events),
            "event_count": sum(1 for _ in self.discrete_events()),
            "has_audio": self.has_audio,
        }
