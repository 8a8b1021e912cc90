"""Snapshot capture and change detection.

``capture_snapshot`` reads every inspectable value from the collaborators
into a fresh :class:`StateSnapshot`.  The two comparison helpers implement
the sampler's per-field tolerances: numeric fields and camera axes differ
when they move by more than ``tolerance``; identifiers differ on
inequality.
"""

from __future__ import annotations

from walkthrough_recorder.recording.collaborators import DocumentCollaborator, SceneCollaborator
from walkthrough_recorder.recording.models import (
    CameraPose,
    DocumentState,
    StateSnapshot,
)


def capture_snapshot(
    scene: SceneCollaborator | None,
    document: DocumentCollaborator | None,
) -> StateSnapshot:
    snapshot = StateSnapshot()
    if scene is not None:
        pose = scene.get_camera_pose()
        snapshot.camera = CameraPose(
            position=_vec3(pose.position),
            target=_vec3(pose.target),
        )
        snapshot.effects = scene.get_effect_amounts()
        snapshot.focused_part = scene.get_focused_part_name()
        snapshot.visibility = dict(scene.get_visibility_map())
        snapshot.animation = scene.get_animation_state()
    if document is not None:
        snapshot.document = DocumentState(
            asset_id=document.get_current_asset_id(),
            page=int(document.get_page()),
            zoom=float(document.get_zoom()),
        )
    # Collaborators may hand back shared objects; never keep them.
    return snapshot.copy()


def _vec3(values: object) -> tuple[float, float, float]:
    x, y, z = values  # type: ignore[misc]
    return (float(x), float(y), float(z))


def _differs(a: float, b: float, tolerance: float) -> bool:
    return abs(a - b) > tolerance


def state_changed(prev: StateSnapshot, curr: StateSnapshot, tolerance: float) -> bool:
    """True when any non-camera field moved beyond *tolerance* or changed identity."""
    if _differs(prev.effects.explode, curr.effects.explode, tolerance):
        return True
    if _differs(prev.effects.slice, curr.effects.slice, tolerance):
        return True
    if _differs(prev.effects.xray, curr.effects.xray, tolerance):
        return True
    if prev.focused_part != curr.focused_part:
        return True
    if prev.visibility != curr.visibility:
        return True

    pa, ca = prev.animation, curr.animation
    if (pa.selected, pa.playing, pa.paused) != (ca.selected, ca.playing, ca.paused):
        return True
    if _differs(pa.speed, ca.speed, tolerance):
        return True

    pd, cd = prev.document, curr.document
    if pd.asset_id != cd.asset_id or pd.page != cd.page:
        return True
    return _differs(pd.zoom, cd.zoom, tolerance)


def camera_changed(prev: StateSnapshot, curr: StateSnapshot, tolerance: float) -> bool:
    """True when any camera position or target axis moved beyond *tolerance*."""
    for a, b in zip(prev.camera.position, curr.camera.position):
        if _differs(a, b, tolerance):
            return True
    for a, b in zip(prev.camera.target, curr.camera.target):
        if _differs(a, b, tolerance):
            return True
    return False
