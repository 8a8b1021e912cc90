"""External collaborator contracts and in-memory implementations.

Architecture:
  - :class:`SceneCollaborator`, :class:`DocumentCollaborator` and
    :class:`AudioCollaborator` are the abstract contracts.  The recording
    engine talks to these interfaces only; the renderer, the page viewer and
    the microphone/audio element live behind them.
  - :class:`InMemoryScene`, :class:`InMemoryDocument` and
    :class:`SimulatedAudio` are deterministic in-memory implementations for
    tests and headless replays.  Each records its calls in ``call_log``.

Design decisions:
  - Scene and document operations are synchronous: they mutate local state
    and return.  Audio acquisition and playback start are ``async`` because
    they wait on a device.
  - Values cross the boundary as the snapshot dataclasses from
    :mod:`walkthrough_recorder.recording.models`; implementations must return
    fresh objects, never references to their live state.
"""

from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from walkthrough_recorder.exceptions import AssetNotFoundError, AudioPermissionDeniedError
from walkthrough_recorder.recording.models import AnimationState, CameraPose, EffectAmounts, Vec3


@dataclass
class CollaboratorCall:
    method: str
    args: tuple[Any, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Abstract interfaces
# ---------------------------------------------------------------------------


class SceneCollaborator(ABC):
    """The 3D scene: camera, effects, focus, visibility, animation, model."""

    @abstractmethod
    def get_camera_pose(self) -> CameraPose: ...

    @abstractmethod
    def set_camera_pose(self, position: Vec3, target: Vec3) -> None: ...

    @abstractmethod
    def get_effect_amounts(self) -> EffectAmounts: ...

    @abstractmethod
    def set_effect_amounts(
        self,
        explode: float | None = None,
        slice: float | None = None,
        xray: float | None = None,
    ) -> None:
        """Set any subset of the effect amounts; ``None`` leaves a value unchanged."""

    @abstractmethod
    def get_focused_part_name(self) -> str | None: ...

    @abstractmethod
    def focus_part(self, name: str) -> None: ...

    @abstractmethod
    def clear_focus(self) -> None: ...

    @abstractmethod
    def reset_view(self) -> None:
        """Return camera, effects, focus and visibility to the scene defaults."""

    @abstractmethod
    def get_visibility_map(self) -> dict[str, bool]: ...

    @abstractmethod
    def set_visibility(self, visibility: dict[str, bool]) -> None: ...

    @abstractmethod
    def get_animation_state(self) -> AnimationState: ...

    @abstractmethod
    def select_animation(self, name: str) -> None: ...

    @abstractmethod
    def play_animation(self) -> None: ...

    @abstractmethod
    def pause_animation(self) -> None: ...

    @abstractmethod
    def stop_animation(self) -> None: ...

    @abstractmethod
    def set_animation_speed(self, speed: float) -> None: ...

    @abstractmethod
    def load_model(self, url: str, name: str | None = None) -> None:
        """Load a model.  Raise :class:`AssetNotFoundError` if *url* cannot be resolved."""


class DocumentCollaborator(ABC):
    """The paired document viewer."""

    @abstractmethod
    def get_page(self) -> int: ...

    @abstractmethod
    def set_page(self, page: int) -> None: ...

    @abstractmethod
    def get_zoom(self) -> float: ...

    @abstractmethod
    def set_zoom(self, zoom: float) -> None: ...

    @abstractmethod
    def get_current_asset_id(self) -> str | None: ...

    @abstractmethod
    def load_asset(self, asset_id: str) -> None:
        """Switch to *asset_id*.  Raise :class:`AssetNotFoundError` if it does not exist."""


class AudioCollaborator(ABC):
    """Narration capture and playback.

    During playback ``position_ms()`` is the authoritative session clock.
    """

    @abstractmethod
    async def start_capture(self) -> None:
        """Begin capturing narration.  Raise :class:`AudioPermissionDeniedError`
        when no input device can be acquired."""

    @abstractmethod
    async def stop_capture(self) -> Any:
        """Finish capturing and return an opaque, JSON-representable handle."""

    @abstractmethod
    async def start_playback(self, handle: Any) -> None:
        """Start playing *handle* from position 0."""

    @abstractmethod
    def position_ms(self) -> float:
        """Current playback position.  May raise if the device failed."""

    @abstractmethod
    def pause_playback(self) -> None: ...

    @abstractmethod
    async def resume_playback(self) -> None: ...

    @abstractmethod
    def stop_playback(self) -> None: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


class InMemoryScene(SceneCollaborator):
    """Deterministic scene holding its state in plain attributes.

    ``parts`` names the focusable parts; ``models`` (when given) restricts
    which model URLs ``load_model`` accepts.
    """

    def __init__(
        self,
        parts: Iterable[str] = (),
        animations: Iterable[str] = (),
        models: Iterable[str] | None = None,
    ) -> None:
        self.camera = CameraPose()
        self.effects = EffectAmounts()
        self.focused_part: str | None = None
        self.visibility: dict[str, bool] = {name: True for name in parts}
        self.animation = AnimationState()
        self.animations = set(animations)
        self.models = set(models) if models is not None else None
        self.loaded_model: tuple[str, str | None] | None = None
        self.call_log: list[CollaboratorCall] = []

    def _record(self, method: str, *args: Any) -> None:
        self.call_log.append(CollaboratorCall(method=method, args=args))

    def calls(self, method: str) -> list[CollaboratorCall]:
        return [c for c in self.call_log if c.method == method]

    def get_camera_pose(self) -> CameraPose:
        return CameraPose(position=tuple(self.camera.position), target=tuple(self.camera.target))

    def set_camera_pose(self, position: Vec3, target: Vec3) -> None:
        self._record("set_camera_pose", tuple(position), tuple(target))
        self.camera = CameraPose(position=tuple(position), target=tuple(target))

    def get_effect_amounts(self) -> EffectAmounts:
        return EffectAmounts(self.effects.explode, self.effects.slice, self.effects.xray)

    def set_effect_amounts(
        self,
        explode: float | None = None,
        slice: float | None = None,
        xray: float | None = None,
    ) -> None:
        self._record("set_effect_amounts", explode, slice, xray)
        if explode is not None:
            self.effects.explode = explode
        if slice is not None:
            self.effects.slice = slice
        if xray is not None:
            self.effects.xray = xray

    def get_focused_part_name(self) -> str | None:
        return self.focused_part

    def focus_part(self, name: str) -> None:
        self._record("focus_part", name)
        if self.visibility and name not in self.visibility:
            raise KeyError(f"Unknown part: {name}")
        self.focused_part = name

    def clear_focus(self) -> None:
        self._record("clear_focus")
        self.focused_part = None

    def reset_view(self) -> None:
        self._record("reset_view")
        self.camera = CameraPose()
        self.effects = EffectAmounts()
        self.focused_part = None
        self.visibility = {name: True for name in self.visibility}

    def get_visibility_map(self) -> dict[str, bool]:
        return dict(self.visibility)

    def set_visibility(self, visibility: dict[str, bool]) -> None:
        self._record("set_visibility", dict(visibility))
        for name, visible in visibility.items():
            if name in self.visibility:
                self.visibility[name] = bool(visible)

    def get_animation_state(self) -> AnimationState:
        a = self.animation
        return AnimationState(a.selected, a.playing, a.paused, a.speed, a.time)

    def select_animation(self, name: str) -> None:
        self._record("select_animation", name)
        if self.animations and name not in self.animations:
            raise KeyError(f"Unknown animation: {name}")
        self.animation.selected = name
        self.animation.time = 0.0

    def play_animation(self) -> None:
        self._record("play_animation")
        if self.animation.selected is not None:
            self.animation.playing = True
            self.animation.paused = False

    def pause_animation(self) -> None:
        self._record("pause_animation")
        if self.animation.playing:
            self.animation.playing = False
            self.animation.paused = True

    def stop_animation(self) -> None:
        self._record("stop_animation")
        self.animation.playing = False
        self.animation.paused = False
        self.animation.time = 0.0

    def set_animation_speed(self, speed: float) -> None:
        self._record("set_animation_speed", speed)
        self.animation.speed = speed

    def load_model(self, url: str, name: str | None = None) -> None:
        self._record("load_model", url, name)
        if self.models is not None and url not in self.models:
            raise AssetNotFoundError(url)
        self.loaded_model = (url, name)
        self.focused_part = None


class InMemoryDocument(DocumentCollaborator):
    """Deterministic document viewer over a fixed catalogue of asset ids."""

    def __init__(self, assets: dict[str, int] | None = None) -> None:
        # asset_id -> page count
        self.assets: dict[str, int] = dict(assets or {})
        self.asset_id: str | None = None
        self.page = 1
        self.zoom = 1.0
        self.call_log: list[CollaboratorCall] = []

    def _record(self, method: str, *args: Any) -> None:
        self.call_log.append(CollaboratorCall(method=method, args=args))

    def calls(self, method: str) -> list[CollaboratorCall]:
        return [c for c in self.call_log if c.method == method]

    def get_page(self) -> int:
        return self.page

    def set_page(self, page: int) -> None:
        self._record("set_page", page)
        limit = self.assets.get(self.asset_id, page) if self.asset_id else page
        self.page = max(1, min(int(page), limit))

    def get_zoom(self) -> float:
        return self.zoom

    def set_zoom(self, zoom: float) -> None:
        self._record("set_zoom", zoom)
        self.zoom = zoom

    def get_current_asset_id(self) -> str | None:
        return self.asset_id

    def load_asset(self, asset_id: str) -> None:
        self._record("load_asset", asset_id)
        if asset_id not in self.assets:
            raise AssetNotFoundError(asset_id)
        self.asset_id = asset_id
        self.page = 1


class SimulatedAudio(AudioCollaborator):
    """Audio device simulated against a monotonic time source.

    ``deny_capture`` makes :meth:`start_capture` fail as if microphone access
    were refused; :meth:`fail` makes :meth:`position_ms` raise from then on.
    """

    def __init__(
        self,
        time_source: Callable[[], float] | None = None,
        deny_capture: bool = False,
    ) -> None:
        self._now = time_source or time.monotonic
        self.deny_capture = deny_capture
        self.capturing = False
        self.playing = False
        self.handle: Any = None
        self._position_ms = 0.0
        self._started_at: float | None = None
        self._failed: Exception | None = None
        self.call_log: list[CollaboratorCall] = []

    def _record(self, method: str, *args: Any) -> None:
        self.call_log.append(CollaboratorCall(method=method, args=args))

    def fail(self, exc: Exception | None = None) -> None:
        self._failed = exc or RuntimeError("audio device lost")

    async def start_capture(self) -> None:
        self._record("start_capture")
        if self.deny_capture:
            raise AudioPermissionDeniedError("microphone access refused")
        self.capturing = True

    async def stop_capture(self) -> Any:
        self._record("stop_capture")
        self.capturing = False
        return f"memory://narration/{uuid.uuid4().hex[:12]}"

    async def start_playback(self, handle: Any) -> None:
        self._record("start_playback", handle)
        self.handle = handle
        self._position_ms = 0.0
        self._started_at = self._now()
        self.playing = True

    def position_ms(self) -> float:
        if self._failed is not None:
            raise self._failed
        if self.playing and self._started_at is not None:
            return self._position_ms + (self._now() - self._started_at) * 1000.0
        return self._position_ms

    def pause_playback(self) -> None:
        self._record("pause_playback")
        if self.playing and self._started_at is not None:
            self._position_ms += (self._now() - self._started_at) * 1000.0
        self.playing = False
        self._started_at = None

    async def resume_playback(self) -> None:
        self._record("resume_playback")
        if not self.playing:
            self._started_at = self._now()
            self.playing = True

    def stop_playback(self) -> None:
        self._record("stop_playback")
        self.playing = False
        self._started_at = None
        self._position_ms = 0.0
