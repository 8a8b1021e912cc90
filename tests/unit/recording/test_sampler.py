"""Unit tests for StateSampler and EventLog."""

from __future__ import annotations

import asyncio

import pytest

from walkthrough_recorder.config import SamplingConfig
from walkthrough_recorder.recording.clock import SessionClock
from walkthrough_recorder.recording.event_log import EventLog
from walkthrough_recorder.recording.models import EntryKind, RecordedSession
from walkthrough_recorder.recording.sampler import StateSampler
from walkthrough_recorder.recording.snapshot import camera_changed, capture_snapshot, state_changed


def _setup(scene, document, manual_clock, config: SamplingConfig | None = None):
    capture = lambda: capture_snapshot(scene, document)  # noqa: E731
    session = RecordedSession.begin(capture())
    clock = SessionClock(manual_clock)
    sampler = StateSampler(capture, config)
    sampler.attach(session, clock)
    return session, clock, sampler


@pytest.mark.unit
class TestChangeDetection:
    def test_small_effect_move_is_not_a_change(self, scene, document) -> None:
        before = capture_snapshot(scene, document)
        scene.effects.explode = 0.005
        assert not state_changed(before, capture_snapshot(scene, document), 0.01)

    def test_effect_move_beyond_tolerance(self, scene, document) -> None:
        before = capture_snapshot(scene, document)
        scene.effects.xray = 0.5
        assert state_changed(before, capture_snapshot(scene, document), 0.01)

    def test_identifier_change(self, scene, document) -> None:
        before = capture_snapshot(scene, document)
        scene.focused_part = "gear"
        assert state_changed(before, capture_snapshot(scene, document), 0.01)

    def test_camera_is_its_own_channel(self, scene, document) -> None:
        before = capture_snapshot(scene, document)
        scene.set_camera_pose((0.0, 0.0, 5.0), (0.0, 0.0, 0.0))
        after = capture_snapshot(scene, document)
        assert camera_changed(before, after, 0.01)
        assert not state_changed(before, after, 0.01)

    def test_capture_does_not_alias_collaborator_state(self, scene, document) -> None:
        snap = capture_snapshot(scene, document)
        snap.visibility["gear"] = False
        assert scene.visibility["gear"] is True


@pytest.mark.unit
class TestStateSamplerSample:
    def test_unchanged_state_appends_nothing(self, scene, document, manual_clock) -> None:
        session, _, sampler = _setup(scene, document, manual_clock)
        manual_clock.advance(16)
        assert sampler.sample(EntryKind.CONTINUOUS_STATE) is None
        assert sampler.sample(EntryKind.CAMERA_STATE) is None
        assert len(session.events) == 1

    def test_change_appends_once(self, scene, document, manual_clock) -> None:
        session, _, sampler = _setup(scene, document, manual_clock)
        manual_clock.advance(100)
        scene.effects.explode = 0.3
        entry = sampler.sample(EntryKind.CONTINUOUS_STATE)
        assert entry is not None
        assert entry.timestamp == 100
        assert entry.snapshot.effects.explode == pytest.approx(0.3)
        manual_clock.advance(16)
        assert sampler.sample(EntryKind.CONTINUOUS_STATE) is None
        assert len(session.events) == 2

    def test_channels_track_last_emitted_independently(self, scene, document, manual_clock) -> None:
        session, _, sampler = _setup(scene, document, manual_clock)
        manual_clock.advance(33)
        scene.set_camera_pose((1.0, 2.0, 3.0), (0.0, 0.0, 0.0))
        assert sampler.sample(EntryKind.CONTINUOUS_STATE) is None
        camera_entry = sampler.sample(EntryKind.CAMERA_STATE)
        assert camera_entry is not None
        assert camera_entry.kind == EntryKind.CAMERA_STATE

    def test_custom_tolerance(self, scene, document, manual_clock) -> None:
        session, _, sampler = _setup(
            scene, document, manual_clock, SamplingConfig(change_tolerance=0.5)
        )
        scene.effects.explode = 0.3
        assert sampler.sample(EntryKind.CONTINUOUS_STATE) is None

    def test_rejects_non_channel_kind(self, scene, document, manual_clock) -> None:
        _, _, sampler = _setup(scene, document, manual_clock)
        with pytest.raises(ValueError):
            sampler.sample(EntryKind.DISCRETE_EVENT)

    def test_detached_sampler_is_inert(self, scene, document) -> None:
        sampler = StateSampler(lambda: capture_snapshot(scene, document))
        assert sampler.sample(EntryKind.CONTINUOUS_STATE) is None


@pytest.mark.asyncio
class TestStateSamplerTimers:
    async def test_timers_sample_until_stopped(self, scene, document, manual_clock) -> None:
        session, _, sampler = _setup(
            scene, document, manual_clock, SamplingConfig(state_hz=200, camera_hz=200)
        )
        sampler.start()
        assert sampler.is_running
        scene.effects.explode = 0.8
        manual_clock.advance(50)
        await asyncio.sleep(0.05)
        sampler.stop()
        assert not sampler.is_running
        assert sampler.ticks[EntryKind.CONTINUOUS_STATE] >= 1
        assert any(e.snapshot.effects.explode == pytest.approx(0.8) for e in session.events[1:])

    async def test_stop_detaches_immediately(self, scene, document, manual_clock) -> None:
        session, _, sampler = _setup(scene, document, manual_clock)
        sampler.start()
        sampler.stop()
        scene.effects.explode = 0.9
        await asyncio.sleep(0.05)
        assert len(session.events) == 1


@pytest.mark.unit
class TestEventLog:
    def test_closed_log_ignores_events(self, scene, document) -> None:
        log = EventLog(lambda: capture_snapshot(scene, document))
        assert log.record_discrete_event("scene.focus_part", {"part": "gear"}) is None

    def test_records_every_call(self, scene, document, manual_clock) -> None:
        capture = lambda: capture_snapshot(scene, document)  # noqa: E731
        session = RecordedSession.begin(capture())
        log = EventLog(capture)
        log.open(session, SessionClock(manual_clock))
        manual_clock.advance(40)
        log.record_discrete_event("animation.play")
        log.record_discrete_event("animation.play")
        events = list(session.discrete_events())
        assert len(events) == 2
        assert all(e.timestamp == 40 for e in events)

    def test_snapshot_and_data_are_copied(self, scene, document, manual_clock) -> None:
        capture = lambda: capture_snapshot(scene, document)  # noqa: E731
        session = RecordedSession.begin(capture())
        log = EventLog(capture)
        log.open(session, SessionClock(manual_clock))
        data = {"visibility": {"gear": False}}
        scene.visibility["gear"] = False
        entry = log.record_discrete_event("scene.set_visibility", data)
        data["visibility"]["gear"] = True
        scene.visibility["gear"] = True
        assert entry.event_data == {"visibility": {"gear": False}}
        assert entry.snapshot.visibility["gear"] is False

    def test_close_stops_recording(self, scene, document, manual_clock) -> None:
        capture = lambda: capture_snapshot(scene, document)  # noqa: E731
        session = RecordedSession.begin(capture())
        log = EventLog(capture)
        log.open(session, SessionClock(manual_clock))
        log.close()
        assert not log.is_open
        assert log.record_discrete_event("animation.stop") is None
