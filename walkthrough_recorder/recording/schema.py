"""Serialized RecordedSession — Pydantic v2 wire schema.

Wire shape::

    {
      "audio": <json-representable handle> | null,
      "states": [ {"timestamp": 0, "type": "initial", "state": {...}}, ... ],
      "duration": 5120,
      "timestamp": "2026-10-18T09:30:00+00:00",
      "initialState": {...}
    }

``parse_session`` validates the payload and builds the runtime dataclasses;
any failure is reported as :class:`MalformedSessionError`.  ``states`` is
never reordered in either direction.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from walkthrough_recorder.exceptions import MalformedSessionError
from walkthrough_recorder.logging import get_logger
from walkthrough_recorder.recording.models import (
    AnimationState,
    CameraPose,
    DocumentState,
    EffectAmounts,
    EntryKind,
    RecordedSession,
    StateSnapshot,
    TimestampedEntry,
)

log = get_logger(__name__)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CameraPayload(_Payload):
    position: tuple[float, float, float]
    target: tuple[float, float, float]


class EffectsPayload(_Payload):
    explode: float
    slice: float
    xray: float


class AnimationPayload(_Payload):
    selected: str | None = None
    playing: bool = False
    paused: bool = False
    speed: float = 1.0
    time: float = 0.0


class DocumentPayload(_Payload):
    asset_id: str | None = Field(default=None, alias="assetId")
    page: int = Field(default=1, ge=1)
    zoom: float = Field(default=1.0, gt=0)


class SnapshotPayload(_Payload):
    camera: CameraPayload
    effects: EffectsPayload
    focused_part: str | None = Field(default=None, alias="focusedPart")
    visibility: dict[str, bool] = Field(default_factory=dict)
    animation: AnimationPayload = Field(default_factory=AnimationPayload)
    document: DocumentPayload = Field(default_factory=DocumentPayload)

    def to_snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            camera=CameraPose(position=self.camera.position, target=self.camera.target),
            effects=EffectAmounts(
                explode=self.effects.explode,
                slice=self.effects.slice,
                xray=self.effects.xray,
            ),
            focused_part=self.focused_part,
            visibility=dict(self.visibility),
            animation=AnimationState(
                selected=self.animation.selected,
                playing=self.animation.playing,
                paused=self.animation.paused,
                speed=self.animation.speed,
                time=self.animation.time,
            ),
            document=DocumentState(
                asset_id=self.document.asset_id,
                page=self.document.page,
                zoom=self.document.zoom,
            ),
        )


class EntryPayload(_Payload):
    timestamp: int = Field(ge=0)
    kind: EntryKind = Field(alias="type")
    state: SnapshotPayload
    event_type: str | None = Field(default=None, alias="eventType")
    data: dict[str, Any] | None = None

    @model_validator(mode="after")
    def validate_discrete_identity(self) -> "EntryPayload":
        if self.kind == EntryKind.DISCRETE_EVENT and not self.event_type:
            raise ValueError(f"discreteEvent at {self.timestamp}ms has no eventType.")
        return self


class SessionPayload(_Payload):
    audio: Any = None
    states: list[EntryPayload] = Field(min_length=1)
    duration: int = Field(ge=0)
    timestamp: datetime
    initial_state: SnapshotPayload = Field(alias="initialState")
    session_id: str | None = Field(default=None, alias="sessionId")

    @model_validator(mode="after")
    def validate_timeline(self) -> "SessionPayload":
        first = self.states[0]
        if first.kind != EntryKind.INITIAL or first.timestamp != 0:
            raise ValueError("states[0] must be the 'initial' entry at timestamp 0.")
        previous = 0
        for index, entry in enumerate(self.states[1:], start=1):
            if entry.kind == EntryKind.INITIAL:
                raise ValueError(f"states[{index}] is a second 'initial' entry.")
            if entry.timestamp < previous:
                raise ValueError(
                    f"states[{index}] at {entry.timestamp}ms precedes {previous}ms; "
                    "timestamps must be non-decreasing."
                )
            previous = entry.timestamp
        if self.duration < previous:
            raise ValueError(
                f"duration {self.duration}ms is shorter than the last entry at {previous}ms."
            )
        return self


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def dump_session(session: RecordedSession) -> dict[str, Any]:
    """Serialize *session* into the wire shape (JSON-compatible dict)."""
    created_at = session.created_at or datetime.now(timezone.utc)
    return {
        "sessionId": session.session_id,
        "audio": session.audio_track,
        "states": [entry.to_dict() for entry in session.events],
        "duration": session.duration_ms,
        "timestamp": created_at.isoformat(),
        "initialState": session.initial_state.to_dict(),
    }


def parse_session(raw: str | bytes | dict[str, Any]) -> RecordedSession:
    """Validate *raw* and build a finalized :class:`RecordedSession`.

    Raises:
        MalformedSessionError: JSON is invalid, required fields are missing,
            or the timeline breaks its ordering invariants.
    """
    data = _deserialise(raw)
    try:
        payload = SessionPayload.model_validate(data)
    except ValidationError as exc:
        errors = exc.errors(include_url=False)
        messages = "; ".join(e.get("msg", "") for e in errors)
        raise MalformedSessionError(
            f"Session validation failed: {messages}",
            errors=errors,
        ) from exc

    events = [
        TimestampedEntry(
            timestamp=entry.timestamp,
            kind=entry.kind,
            snapshot=entry.state.to_snapshot(),
            event_type=entry.event_type,
            event_data=dict(entry.data or {}) if entry.kind == EntryKind.DISCRETE_EVENT else None,
        )
        for entry in payload.states
    ]
    created_at = payload.timestamp
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    return RecordedSession(
        session_id=payload.session_id or f"ses-{uuid.uuid4().hex[:12]}",
        initial_state=payload.initial_state.to_snapshot(),
        events=events,
        audio_track=payload.audio,
        duration_ms=payload.duration,
        created_at=created_at,
        finalized=True,
    )


def _deserialise(raw: str | bytes | dict[str, Any]) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        log.warning("session_json_invalid", error=str(exc))
        raise MalformedSessionError(f"Invalid session JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedSessionError(
            f"Expected a JSON object at the top level, got {type(data).__name__}."
        )
    return data
