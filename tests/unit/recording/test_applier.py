"""Unit tests for StateApplier."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from walkthrough_recorder.recording.applier import StateApplier
from walkthrough_recorder.recording.instrumentation import (
    InstrumentationAdapter,
    InstrumentedDocument,
    InstrumentedScene,
)
from walkthrough_recorder.recording.models import (
    AnimationState,
    EntryKind,
    StateSnapshot,
    TimestampedEntry,
)


@pytest.fixture
def listener() -> MagicMock:
    return MagicMock()


@pytest.fixture
def applier(scene, document, listener) -> StateApplier:
    adapter = InstrumentationAdapter(listener)
    return StateApplier(
        InstrumentedScene(scene, adapter),
        InstrumentedDocument(document, adapter),
        adapter,
    )


def _event(event_type: str, data: dict | None = None, ts: int = 100) -> TimestampedEntry:
    return TimestampedEntry(
        ts, EntryKind.DISCRETE_EVENT, StateSnapshot(), event_type=event_type, event_data=data
    )


@pytest.mark.unit
class TestApplyEvent:
    def test_focus_event(self, applier, scene, listener) -> None:
        assert applier.apply_event(_event("scene.focus_part", {"part": "gear"}))
        assert scene.focused_part == "gear"
        listener.assert_not_called()

    def test_document_events(self, applier, document) -> None:
        applier.apply_event(_event("document.load_asset", {"asset_id": "manual.pdf"}))
        applier.apply_event(_event("document.page", {"page": 4}))
        applier.apply_event(_event("document.zoom", {"zoom": 1.5}))
        assert (document.asset_id, document.page, document.zoom) == ("manual.pdf", 4, 1.5)

    def test_animation_events(self, applier, scene) -> None:
        applier.apply_event(_event("animation.select", {"name": "rotate"}))
        applier.apply_event(_event("animation.speed", {"speed": 2.0}))
        applier.apply_event(_event("animation.play"))
        assert scene.animation.selected == "rotate"
        assert scene.animation.playing
        assert scene.animation.speed == 2.0

    def test_reset_view_event(self, applier, scene, listener) -> None:
        scene.set_camera_pose((4.0, 4.0, 4.0), (1.0, 0.0, 0.0))
        scene.effects.explode = 0.7
        scene.focused_part = "shaft"
        assert applier.apply_event(_event("scene.reset_view"))
        assert scene.calls("reset_view")
        assert scene.effects.explode == 0.0
        assert scene.focused_part is None
        listener.assert_not_called()

    def test_missing_asset_is_skipped(self, applier, document) -> None:
        assert not applier.apply_event(_event("document.load_asset", {"asset_id": "gone.pdf"}))
        assert applier.skipped_assets == ["gone.pdf"]
        assert document.asset_id is None

    def test_missing_model_is_skipped(self, applier, scene) -> None:
        assert not applier.apply_event(_event("scene.load_model", {"url": "models/gone.glb"}))
        assert scene.loaded_model is None

    def test_failure_is_isolated(self, applier, scene) -> None:
        assert not applier.apply_event(_event("scene.focus_part", {"part": "unknown"}))
        assert applier.apply_event(_event("scene.focus_part", {"part": "shaft"}))
        assert scene.focused_part == "shaft"

    def test_unknown_event_type(self, applier) -> None:
        assert not applier.apply_event(_event("scene.teleport"))

    def test_missing_document_collaborator(self, scene) -> None:
        adapter = InstrumentationAdapter()
        applier = StateApplier(InstrumentedScene(scene, adapter), None, adapter)
        assert not applier.apply_event(_event("document.page", {"page": 2}))


@pytest.mark.unit
class TestRestore:
    def test_full_restore(self, applier, scene, document, listener) -> None:
        snap = StateSnapshot(focused_part="gear", visibility={"housing": False, "gear": True, "shaft": True})
        snap.effects.slice = 0.4
        snap.animation = AnimationState(selected="assemble", playing=False, paused=True, speed=0.5)
        snap.document.asset_id = "manual.pdf"
        snap.document.page = 7
        snap.document.zoom = 2.0
        scene.focused_part = "shaft"

        applier.restore(snap)

        assert scene.focused_part == "gear"
        assert scene.visibility["housing"] is False
        assert scene.effects.slice == pytest.approx(0.4)
        assert scene.animation.selected == "assemble"
        assert scene.animation.paused and not scene.animation.playing
        assert scene.animation.speed == 0.5
        assert (document.asset_id, document.page, document.zoom) == ("manual.pdf", 7, 2.0)
        listener.assert_not_called()

    def test_restore_clears_focus(self, applier, scene) -> None:
        scene.focused_part = "gear"
        applier.restore(StateSnapshot())
        assert scene.focused_part is None

    def test_restore_skips_page_when_asset_missing(self, applier, document) -> None:
        snap = StateSnapshot()
        snap.document.asset_id = "gone.pdf"
        snap.document.page = 5
        applier.restore(snap)
        assert document.calls("set_page") == []


@pytest.mark.unit
class TestApplyContinuous:
    def test_camera_and_effects_always_applied(self, applier, scene) -> None:
        snap = StateSnapshot()
        snap.effects.explode = 0.3
        applier.apply_continuous(snap, 0.01)
        assert scene.effects.explode == pytest.approx(0.3)
        assert len(scene.calls("set_camera_pose")) == 1

    def test_sticky_fields_only_on_difference(self, applier, scene, document) -> None:
        document.load_asset("manual.pdf")
        snap = StateSnapshot(visibility=dict(scene.visibility))
        snap.document.asset_id = "manual.pdf"
        snap.document.page = 1
        snap.document.zoom = 1.005
        applier.apply_continuous(snap, 0.01)
        assert scene.calls("set_visibility") == []
        assert document.calls("set_page") == []
        assert document.calls("set_zoom") == []

        snap.visibility["gear"] = False
        snap.document.page = 3
        snap.document.zoom = 1.5
        applier.apply_continuous(snap, 0.01)
        assert scene.visibility["gear"] is False
        assert document.page == 3
        assert document.zoom == 1.5

    def test_page_and_zoom_left_alone_on_a_different_asset(self, applier, document) -> None:
        # The recorded asset was missing on replay, so another one is still open.
        document.load_asset("datasheet.pdf")
        snap = StateSnapshot()
        snap.document.asset_id = "manual.pdf"
        snap.document.page = 9
        snap.document.zoom = 2.0
        for _ in range(3):
            applier.apply_continuous(snap, 0.01)
        assert document.calls("set_page") == []
        assert document.calls("set_zoom") == []
        assert (document.page, document.zoom) == (1, 1.0)

    def test_continuous_does_not_touch_focus(self, applier, scene) -> None:
        scene.focused_part = "gear"
        applier.apply_continuous(StateSnapshot(), 0.01)
        assert scene.focused_part == "gear"
