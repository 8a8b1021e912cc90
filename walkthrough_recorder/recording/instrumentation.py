"""InstrumentationAdapter — the single notification seam for user interactions.

Collaborators (or the instrumented wrappers below) call
``adapter.notify(event_type, data)`` synchronously *after* mutating state.
The adapter classifies the notification and forwards it to its listener
(the PlaybackController) unless replay-suppression is engaged.

Replay-suppression is a plain flag, independent of the controller's state
machine: the controller engages it around every programmatic state
application so that replayed actions are never mistaken for new ones.
Recording and playback therefore drive the very same setters and differ
only in caller context.

Usage::

    adapter = InstrumentationAdapter(listener=on_interaction)
    scene = InstrumentedScene(raw_scene, adapter)

    scene.focus_part("gear")          # -> listener("scene.focus_part", {...}, DISCRETE)

    with adapter.suppressed():
        scene.focus_part("gear")      # applied, not reported
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Iterator

from walkthrough_recorder.recording.collaborators import DocumentCollaborator, SceneCollaborator
from walkthrough_recorder.recording.models import (
    AnimationState,
    CameraPose,
    EffectAmounts,
    EventType,
    Vec3,
)

CAMERA_POSE_CHANGED = "scene.camera_pose"
EFFECTS_CHANGED = "scene.effects"


class InteractionClass(str, Enum):
    DISCRETE = "discrete"
    CAMERA = "camera"
    CONTINUOUS = "continuous"


_CONTINUOUS_NOTIFICATIONS: dict[str, InteractionClass] = {
    CAMERA_POSE_CHANGED: InteractionClass.CAMERA,
    EFFECTS_CHANGED: InteractionClass.CONTINUOUS,
}

InteractionListener = Callable[[str, dict[str, Any], InteractionClass], None]


def classify(event_type: str) -> InteractionClass:
    """Camera and effect drags are continuous; every other notification is a discrete action."""
    return _CONTINUOUS_NOTIFICATIONS.get(event_type, InteractionClass.DISCRETE)


class InstrumentationAdapter:
    """Notification hook with a replay-suppression flag."""

    def __init__(self, listener: InteractionListener | None = None) -> None:
        self._listener = listener
        self._suppression_depth = 0
        self.suppressed_count = 0

    @property
    def is_suppressed(self) -> bool:
        return self._suppression_depth > 0

    @contextmanager
    def suppressed(self) -> Iterator[None]:
        """Engage replay-suppression for the duration of the block (re-entrant)."""
        self._suppression_depth += 1
        try:
            yield
        finally:
            self._suppression_depth -= 1

    def notify(self, event_type: str, data: dict[str, Any] | None = None) -> None:
        """Report an interaction that has just mutated collaborator state."""
        if self.is_suppressed:
            self.suppressed_count += 1
            return
        if self._listener is None:
            return
        self._listener(str(event_type), dict(data or {}), classify(str(event_type)))


# ---------------------------------------------------------------------------
# Instrumented collaborators
# ---------------------------------------------------------------------------


class InstrumentedScene(SceneCollaborator):
    """Delegates to a scene and notifies the adapter after each mutation."""

    def __init__(self, inner: SceneCollaborator, adapter: InstrumentationAdapter) -> None:
        self.inner = inner
        self._adapter = adapter

    def _notify(self, event_type: str, data: dict[str, Any] | None = None) -> None:
        self._adapter.notify(event_type, data)

    # Reads pass straight through.

    def get_camera_pose(self) -> CameraPose:
        return self.inner.get_camera_pose()

    def get_effect_amounts(self) -> EffectAmounts:
        return self.inner.get_effect_amounts()

    def get_focused_part_name(self) -> str | None:
        return self.inner.get_focused_part_name()

    def get_visibility_map(self) -> dict[str, bool]:
        return self.inner.get_visibility_map()

    def get_animation_state(self) -> AnimationState:
        return self.inner.get_animation_state()

    # Mutations notify after the inner call succeeds.

    def set_camera_pose(self, position: Vec3, target: Vec3) -> None:
        self.inner.set_camera_pose(position, target)
        self._notify(CAMERA_POSE_CHANGED, {"position": list(position), "target": list(target)})

    def set_effect_amounts(
        self,
        explode: float | None = None,
        slice: float | None = None,
        xray: float | None = None,
    ) -> None:
        self.inner.set_effect_amounts(explode=explode, slice=slice, xray=xray)
        changed = {k: v for k, v in (("explode", explode), ("slice", slice), ("xray", xray)) if v is not None}
        self._notify(EFFECTS_CHANGED, changed)

    def focus_part(self, name: str) -> None:
        self.inner.focus_part(name)
        self._notify(EventType.FOCUS_PART.value, {"part": name})

    def clear_focus(self) -> None:
        self.inner.clear_focus()
        self._notify(EventType.CLEAR_FOCUS.value)

    def reset_view(self) -> None:
        self.inner.reset_view()
        self._notify(EventType.RESET_VIEW.value)

    def set_visibility(self, visibility: dict[str, bool]) -> None:
        self.inner.set_visibility(visibility)
        self._notify(EventType.SET_VISIBILITY.value, {"visibility": dict(visibility)})

    def select_animation(self, name: str) -> None:
        self.inner.select_animation(name)
        self._notify(EventType.SELECT_ANIMATION.value, {"name": name})

    def play_animation(self) -> None:
        self.inner.play_animation()
        self._notify(EventType.PLAY_ANIMATION.value)

    def pause_animation(self) -> None:
        self.inner.pause_animation()
        self._notify(EventType.PAUSE_ANIMATION.value)

    def stop_animation(self) -> None:
        self.inner.stop_animation()
        self._notify(EventType.STOP_ANIMATION.value)

    def set_animation_speed(self, speed: float) -> None:
        self.inner.set_animation_speed(speed)
        self._notify(EventType.SET_ANIMATION_SPEED.value, {"speed": speed})

    def load_model(self, url: str, name: str | None = None) -> None:
        self.inner.load_model(url, name)
        self._notify(EventType.LOAD_MODEL.value, {"url": url, "name": name})


class InstrumentedDocument(DocumentCollaborator):
    """Delegates to a document viewer and notifies the adapter after each mutation."""

    def __init__(self, inner: DocumentCollaborator, adapter: InstrumentationAdapter) -> None:
        self.inner = inner
        self._adapter = adapter

    def get_page(self) -> int:
        return self.inner.get_page()

    def get_zoom(self) -> float:
        return self.inner.get_zoom()

    def get_current_asset_id(self) -> str | None:
        return self.inner.get_current_asset_id()

    def set_page(self, page: int) -> None:
        self.inner.set_page(page)
        self._adapter.notify(EventType.SET_PAGE.value, {"page": self.inner.get_page()})

    def set_zoom(self, zoom: float) -> None:
        self.inner.set_zoom(zoom)
        self._adapter.notify(EventType.SET_ZOOM.value, {"zoom": self.inner.get_zoom()})

    def load_asset(self, asset_id: str) -> None:
        self.inner.load_asset(asset_id)
        self._adapter.notify(EventType.LOAD_ASSET.value, {"asset_id": asset_id})
