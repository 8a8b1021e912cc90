"""StateApplier — pushes recorded state back into the live collaborators.

Every write goes through the instrumented setters with replay-suppression
engaged, so nothing applied here is ever recorded again.  Each individual
application is isolated: a missing asset is logged and skipped, any other
failure is logged, and the caller carries on with the timeline.
"""

from __future__ import annotations

from typing import Any, Callable

from walkthrough_recorder.exceptions import AssetNotFoundError
from walkthrough_recorder.logging import get_logger
from walkthrough_recorder.recording.collaborators import DocumentCollaborator, SceneCollaborator
from walkthrough_recorder.recording.instrumentation import InstrumentationAdapter
from walkthrough_recorder.recording.models import (
    AnimationState,
    EventType,
    StateSnapshot,
    TimestampedEntry,
)

log = get_logger(__name__)

_SCENE_EVENTS = {
    EventType.FOCUS_PART,
    EventType.CLEAR_FOCUS,
    EventType.RESET_VIEW,
    EventType.SET_VISIBILITY,
    EventType.LOAD_MODEL,
    EventType.SELECT_ANIMATION,
    EventType.PLAY_ANIMATION,
    EventType.PAUSE_ANIMATION,
    EventType.STOP_ANIMATION,
    EventType.SET_ANIMATION_SPEED,
}


class StateApplier:
    """Applies snapshots and discrete events to the scene and document."""

    def __init__(
        self,
        scene: SceneCollaborator | None,
        document: DocumentCollaborator | None,
        adapter: InstrumentationAdapter,
    ) -> None:
        self._scene = scene
        self._document = document
        self._adapter = adapter
        self.skipped_assets: list[str] = []

    # ------------------------------------------------------------------
    # Isolation
    # ------------------------------------------------------------------

    def _guard(self, step: str, fn: Callable[[], Any], **context: Any) -> bool:
        """Run *fn* under replay-suppression.  Returns False if it failed."""
        try:
            with self._adapter.suppressed():
                fn()
            return True
        except AssetNotFoundError as exc:
            self.skipped_assets.append(exc.asset_id)
            log.warning("asset_not_found", step=step, asset_id=exc.asset_id, **context)
        except Exception as exc:
            log.error("state_apply_failed", step=step, error=str(exc), **context)
        return False

    # ------------------------------------------------------------------
    # Full restore
    # ------------------------------------------------------------------

    def restore(self, snapshot: StateSnapshot) -> None:
        """Restore every inspectable field of *snapshot* (used at playback start)."""
        snap = snapshot.copy()
        scene = self._scene
        if scene is not None:
            self._guard(
                "camera",
                lambda: scene.set_camera_pose(snap.camera.position, snap.camera.target),
            )
            self._guard(
                "effects",
                lambda: scene.set_effect_amounts(
                    explode=snap.effects.explode,
                    slice=snap.effects.slice,
                    xray=snap.effects.xray,
                ),
            )
            if snap.visibility:
                self._guard("visibility", lambda: scene.set_visibility(snap.visibility))
            if snap.focused_part is not None:
                self._guard("focus", lambda: scene.focus_part(snap.focused_part))
            else:
                self._guard("focus", scene.clear_focus)
            self._guard("animation", lambda: self._restore_animation(scene, snap.animation))

        document = self._document
        if document is not None:
            wanted = snap.document
            if wanted.asset_id is not None and wanted.asset_id != document.get_current_asset_id():
                if not self._guard("asset", lambda: document.load_asset(wanted.asset_id)):
                    return
            self._guard("page", lambda: document.set_page(wanted.page))
            self._guard("zoom", lambda: document.set_zoom(wanted.zoom))

    @staticmethod
    def _restore_animation(scene: SceneCollaborator, anim: AnimationState) -> None:
        if anim.selected is None:
            scene.stop_animation()
            scene.set_animation_speed(anim.speed)
            return
        scene.select_animation(anim.selected)
        scene.set_animation_speed(anim.speed)
        if anim.playing:
            scene.play_animation()
        elif anim.paused:
            scene.play_animation()
            scene.pause_animation()
        else:
            scene.stop_animation()

    # ------------------------------------------------------------------
    # Discrete events
    # ------------------------------------------------------------------

    def apply_event(self, entry: TimestampedEntry) -> bool:
        """Replay one discrete action atomically.  Returns True on success."""
        event_type = entry.event_type or ""
        try:
            kind = EventType(event_type)
        except ValueError:
            log.warning("unknown_event_type", event_type=event_type, timestamp=entry.timestamp)
            return False

        if kind in _SCENE_EVENTS and self._scene is None:
            log.debug("event_skipped_no_scene", event_type=event_type)
            return False
        if kind not in _SCENE_EVENTS and self._document is None:
            log.debug("event_skipped_no_document", event_type=event_type)
            return False

        data = dict(entry.event_data or {})
        return self._guard(
            "event",
            lambda: self._dispatch(kind, data, entry.snapshot),
            event_type=event_type,
            timestamp=entry.timestamp,
        )

    def _dispatch(self, kind: EventType, data: dict[str, Any], snap: StateSnapshot) -> None:
        scene = self._scene
        document = self._document

        if kind == EventType.FOCUS_PART:
            part = data.get("part") or snap.focused_part
            if part is None:
                raise ValueError("focus event without a part name")
            scene.focus_part(part)
        elif kind == EventType.CLEAR_FOCUS:
            scene.clear_focus()
        elif kind == EventType.RESET_VIEW:
            scene.reset_view()
        elif kind == EventType.SET_VISIBILITY:
            scene.set_visibility(dict(data.get("visibility", snap.visibility)))
        elif kind == EventType.LOAD_MODEL:
            scene.load_model(data["url"], data.get("name"))
        elif kind == EventType.SELECT_ANIMATION:
            name = data.get("name") or snap.animation.selected
            if name is None:
                raise ValueError("animation select event without a name")
            scene.select_animation(name)
        elif kind == EventType.PLAY_ANIMATION:
            scene.play_animation()
        elif kind == EventType.PAUSE_ANIMATION:
            scene.pause_animation()
        elif kind == EventType.STOP_ANIMATION:
            scene.stop_animation()
        elif kind == EventType.SET_ANIMATION_SPEED:
            scene.set_animation_speed(float(data.get("speed", snap.animation.speed)))
        elif kind == EventType.LOAD_ASSET:
            asset_id = data.get("asset_id") or snap.document.asset_id
            if asset_id is None:
                raise ValueError("asset event without an asset id")
            document.load_asset(asset_id)
        elif kind == EventType.SET_PAGE:
            document.set_page(int(data.get("page", snap.document.page)))
        elif kind == EventType.SET_ZOOM:
            document.set_zoom(float(data.get("zoom", snap.document.zoom)))

    # ------------------------------------------------------------------
    # Per-tick continuous application
    # ------------------------------------------------------------------

    def apply_continuous(self, snapshot: StateSnapshot, tolerance: float) -> None:
        """Apply blended camera/effects and re-sync sticky fields that drifted."""
        scene = self._scene
        if scene is not None:
            self._guard(
                "camera",
                lambda: scene.set_camera_pose(snapshot.camera.position, snapshot.camera.target),
            )
            self._guard(
                "effects",
                lambda: scene.set_effect_amounts(
                    explode=snapshot.effects.explode,
                    slice=snapshot.effects.slice,
                    xray=snapshot.effects.xray,
                ),
            )
            if snapshot.visibility and scene.get_visibility_map() != snapshot.visibility:
                self._guard("visibility", lambda: scene.set_visibility(dict(snapshot.visibility)))

        document = self._document
        if document is not None:
            wanted = snapshot.document
            # Page and zoom only mean something on the asset they were captured on.
            if document.get_current_asset_id() != wanted.asset_id:
                return
            if document.get_page() != wanted.page:
                self._guard("page", lambda: document.set_page(wanted.page))
            if abs(document.get_zoom() - wanted.zoom) > tolerance:
                self._guard("zoom", lambda: document.set_zoom(wanted.zoom))
