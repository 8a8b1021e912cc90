"""Unit tests for the serialized session schema."""

from __future__ import annotations

import json

import pytest

from walkthrough_recorder.exceptions import MalformedSessionError
from walkthrough_recorder.recording.models import (
    EntryKind,
    RecordedSession,
    StateSnapshot,
    TimestampedEntry,
)
from walkthrough_recorder.recording.schema import dump_session, parse_session


def _session() -> RecordedSession:
    session = RecordedSession.begin(StateSnapshot(visibility={"gear": True}))
    moved = StateSnapshot(visibility={"gear": True})
    moved.effects.explode = 0.4
    session.append(TimestampedEntry(120, EntryKind.CONTINUOUS_STATE, moved))
    focused = moved.copy()
    focused.focused_part = "gear"
    session.append(
        TimestampedEntry(
            120,
            EntryKind.DISCRETE_EVENT,
            focused,
            event_type="scene.focus_part",
            event_data={"part": "gear"},
        )
    )
    session.finalize(300, audio_track="memory://narration/1")
    return session


def _wire() -> dict:
    return dump_session(_session())


@pytest.mark.unit
class TestDumpSession:
    def test_wire_shape(self) -> None:
        wire = _wire()
        assert set(wire) >= {"audio", "states", "duration", "timestamp", "initialState"}
        assert wire["audio"] == "memory://narration/1"
        assert wire["duration"] == 300
        assert [s["type"] for s in wire["states"]] == ["initial", "continuousState", "discreteEvent"]

    def test_is_json_serialisable(self) -> None:
        json.dumps(_wire())


@pytest.mark.unit
class TestParseSession:
    def test_roundtrip_preserves_order_and_identity(self) -> None:
        original = _session()
        restored = parse_session(json.dumps(dump_session(original)))
        assert restored.finalized
        assert restored.session_id == original.session_id
        assert [(e.timestamp, e.kind) for e in restored.events] == [
            (e.timestamp, e.kind) for e in original.events
        ]
        discrete = list(restored.discrete_events())
        assert discrete[0].event_type == "scene.focus_part"
        assert discrete[0].event_data == {"part": "gear"}
        assert restored.events[1].snapshot.effects.explode == pytest.approx(0.4)

    def test_accepts_bytes(self) -> None:
        restored = parse_session(json.dumps(_wire()).encode())
        assert restored.duration_ms == 300

    def test_invalid_json(self) -> None:
        with pytest.raises(MalformedSessionError):
            parse_session("{not json")

    def test_top_level_must_be_object(self) -> None:
        with pytest.raises(MalformedSessionError):
            parse_session("[]")

    def test_missing_states(self) -> None:
        wire = _wire()
        del wire["states"]
        with pytest.raises(MalformedSessionError) as exc_info:
            parse_session(wire)
        assert exc_info.value.errors

    def test_missing_initial_state(self) -> None:
        wire = _wire()
        del wire["initialState"]
        with pytest.raises(MalformedSessionError):
            parse_session(wire)

    def test_first_entry_must_be_initial(self) -> None:
        wire = _wire()
        wire["states"] = wire["states"][1:]
        with pytest.raises(MalformedSessionError):
            parse_session(wire)

    def test_rejects_decreasing_timestamps(self) -> None:
        wire = _wire()
        wire["states"][2]["timestamp"] = 50
        with pytest.raises(MalformedSessionError):
            parse_session(wire)

    def test_rejects_discrete_without_event_type(self) -> None:
        wire = _wire()
        del wire["states"][2]["eventType"]
        with pytest.raises(MalformedSessionError):
            parse_session(wire)

    def test_rejects_duration_before_last_entry(self) -> None:
        wire = _wire()
        wire["duration"] = 10
        with pytest.raises(MalformedSessionError):
            parse_session(wire)

    def test_null_audio_is_visual_only(self) -> None:
        wire = _wire()
        wire["audio"] = None
        assert parse_session(wire).has_audio is False
