"""PlaybackController — record/play state machine and the replay loop.

States::

    idle ──start──▶ recording ──stop──▶ processing ──▶ stopped
                                                        │  ▲
                                                   play │  │ stop / timeline end
                                                        ▼  │
                                      paused ◀──pause── playing
                                             ──resume──▶

Every command is idempotent: calling it in a state where it does not apply
is a silent no-op and returns ``False``.

Timing.  While playing, ``elapsed`` is read from the audio collaborator
(``position_ms() - origin_offset``) whenever the session has narration; the
host :class:`SessionClock` is used for visual-only sessions and as the
fallback when the audio device fails mid-playback.  Pausing stores the
elapsed position; resuming re-derives the origin from the position the
audio reports at that moment, so wall time spent paused is never counted.

Each tick applies every discrete event in ``(last_tick_elapsed, elapsed]``
in timeline order, then the interpolated continuous state, and finishes
playback once ``elapsed >= duration``.  :meth:`tick` is synchronous and
public; the background loop merely calls it at ``tick_hz``.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Callable

from walkthrough_recorder.config import PlaybackConfig, SamplingConfig
from walkthrough_recorder.exceptions import AudioPermissionDeniedError, PlaybackDesyncError
from walkthrough_recorder.logging import bind_session_context, clear_session_context, get_logger
from walkthrough_recorder.recording.applier import StateApplier
from walkthrough_recorder.recording.clock import SessionClock, TimeSource
from walkthrough_recorder.recording.collaborators import (
    AudioCollaborator,
    DocumentCollaborator,
    SceneCollaborator,
)
from walkthrough_recorder.recording.event_log import EventLog
from walkthrough_recorder.recording.instrumentation import (
    InstrumentationAdapter,
    InstrumentedDocument,
    InstrumentedScene,
    InteractionClass,
)
from walkthrough_recorder.recording.interpolator import Interpolator, Resolution
from walkthrough_recorder.recording.models import (
    EntryKind,
    RecordedSession,
    StateSnapshot,
    TimestampedEntry,
)
from walkthrough_recorder.recording.sampler import StateSampler
from walkthrough_recorder.recording.schema import dump_session, parse_session
from walkthrough_recorder.recording.snapshot import capture_snapshot

log = get_logger(__name__)


class PlaybackState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


StateListener = Callable[[PlaybackState, PlaybackState], None]


class PlaybackController:
    """Owns one RecordedSession through its record-or-play cycle.

    The scene and document passed in are wrapped in instrumented proxies,
    exposed as :attr:`scene` and :attr:`document`.  Shell code must drive
    user interactions through those proxies so they are recorded.
    """

    def __init__(
        self,
        scene: SceneCollaborator | None,
        document: DocumentCollaborator | None = None,
        audio: AudioCollaborator | None = None,
        sampling: SamplingConfig | None = None,
        playback: PlaybackConfig | None = None,
        time_source: TimeSource | None = None,
    ) -> None:
        self._playback_config = playback or PlaybackConfig()
        self.instrumentation = InstrumentationAdapter(listener=self._on_interaction)
        self.scene = InstrumentedScene(scene, self.instrumentation) if scene is not None else None
        self.document = (
            InstrumentedDocument(document, self.instrumentation) if document is not None else None
        )
        self._audio = audio
        self._clock = SessionClock(time_source or time.monotonic)

        self._event_log = EventLog(self.capture)
        self._sampler = StateSampler(self.capture, sampling)
        self._interpolator = Interpolator()
        self._applier = StateApplier(self.scene, self.document, self.instrumentation)

        self._state = PlaybackState.IDLE
        self._session: RecordedSession | None = None
        self._listeners: list[StateListener] = []

        # Recording
        self._capturing_audio = False

        # Playback
        self._tick_task: asyncio.Task[None] | None = None
        self._generation = 0
        self._audio_clock = False
        self._origin_offset = 0.0
        self._paused_at = 0.0
        self._last_tick_elapsed = -1.0
        self._cursor = 0
        self.applied_events: list[TimestampedEntry] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def session(self) -> RecordedSession | None:
        return self._session

    @property
    def last_tick_elapsed(self) -> float:
        return self._last_tick_elapsed

    @property
    def using_audio_clock(self) -> bool:
        return self._audio_clock

    def capture(self) -> StateSnapshot:
        return capture_snapshot(self.scene, self.document)

    def add_state_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_state(self, new: PlaybackState) -> None:
        old = self._state
        if old == new:
            return
        self._state = new
        log.debug("controller_state_changed", old=old.value, new=new.value)
        for listener in list(self._listeners):
            try:
                listener(old, new)
            except Exception as exc:
                log.error("state_listener_failed", error=str(exc))

    def _ignored(self, command: str) -> bool:
        log.debug("command_ignored", command=command, state=self._state.value)
        return False

    # ------------------------------------------------------------------
    # Instrumentation
    # ------------------------------------------------------------------

    def _on_interaction(
        self, event_type: str, data: dict[str, Any], kind: InteractionClass
    ) -> None:
        if self._state != PlaybackState.RECORDING:
            return
        if kind == InteractionClass.DISCRETE:
            self._event_log.record_discrete_event(event_type, data)
        elif kind == InteractionClass.CAMERA:
            self._sampler.sample(EntryKind.CAMERA_STATE)
        else:
            self._sampler.sample(EntryKind.CONTINUOUS_STATE)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Begin a new recording.  From ``stopped`` the previous session is superseded."""
        if self._state not in (PlaybackState.IDLE, PlaybackState.STOPPED):
            return self._ignored("start")

        if self._session is not None:
            log.info("session_superseded", previous_id=self._session.session_id)

        session = RecordedSession.begin(self.capture())
        self._session = session
        bind_session_context(session.session_id)
        self._set_state(PlaybackState.RECORDING)
        self._clock.reset(0)

        self._capturing_audio = False
        if self._audio is not None:
            try:
                await self._audio.start_capture()
                self._capturing_audio = True
            except AudioPermissionDeniedError as exc:
                log.warning("audio_unavailable_visual_only", reason=exc.reason)
            except Exception as exc:
                log.error("audio_capture_failed", error=str(exc))

        if self._session is not session or self._state != PlaybackState.RECORDING:
            # Stopped or superseded while the device was being acquired.
            if self._capturing_audio and self._audio is not None:
                try:
                    await self._audio.stop_capture()
                except Exception as exc:
                    log.error("audio_finalize_failed", error=str(exc))
                self._capturing_audio = False
            return False

        self._clock.reset(0)
        self._event_log.open(session, self._clock)
        self._sampler.attach(session, self._clock)
        self._sampler.start()
        log.info("recording_started", audio=self._capturing_audio)
        return True

    async def _stop_recording(self) -> None:
        session = self._session
        assert session is not None
        self._sampler.stop()
        self._event_log.close()
        duration = self._clock.timestamp()
        self._set_state(PlaybackState.PROCESSING)

        audio_track: Any = None
        if self._capturing_audio and self._audio is not None:
            try:
                audio_track = await self._audio.stop_capture()
            except Exception as exc:
                log.error("audio_finalize_failed", error=str(exc))
        self._capturing_audio = False

        session.finalize(duration, audio_track)
        self._set_state(PlaybackState.STOPPED)
        log.info(
            "recording_stopped",
            duration_ms=session.duration_ms,
            entries=len(session.events),
            has_audio=session.has_audio,
        )
        clear_session_context()

    async def stop(self) -> bool:
        """Stop recording (finalizing the session) or stop playback."""
        if self._state == PlaybackState.RECORDING:
            await self._stop_recording()
            return True
        if self._state in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            self._stop_playback("stopped")
            return True
        return self._ignored("stop")

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    async def play(self) -> bool:
        """Play the finalized session from the start.  While paused, resume."""
        if self._state == PlaybackState.PAUSED:
            return await self.resume()
        if self._state != PlaybackState.STOPPED or self._session is None:
            return self._ignored("play")

        session = self._session
        bind_session_context(session.session_id)
        self._set_state(PlaybackState.PLAYING)
        self._generation += 1
        generation = self._generation

        self._last_tick_elapsed = -1.0
        self._cursor = 0
        self.applied_events = []
        self._applier.restore(session.initial_state)

        self._audio_clock = False
        if session.has_audio and self._audio is not None:
            try:
                await self._audio.start_playback(session.audio_track)
                self._origin_offset = self._audio.position_ms()
                self._audio_clock = True
            except Exception as exc:
                log.warning("audio_playback_unavailable", error=str(exc))

        if generation != self._generation or self._state != PlaybackState.PLAYING:
            if self._audio_clock:
                self._release_stale_audio()
            return False

        self._clock.reset(0)
        log.info(
            "playback_started",
            duration_ms=session.duration_ms,
            audio_clock=self._audio_clock,
        )
        self.tick()
        self._schedule_ticks()
        return True

    async def pause(self) -> bool:
        if self._state != PlaybackState.PLAYING:
            return self._ignored("pause")

        self._cancel_ticks()
        self._paused_at = max(0.0, self._elapsed_ms())
        if self._audio_clock and self._audio is not None:
            try:
                self._audio.pause_playback()
            except Exception as exc:
                self._fall_back_to_host_clock(self._paused_at, exc)
        self._set_state(PlaybackState.PAUSED)
        log.info("playback_paused", elapsed_ms=round(self._paused_at))
        return True

    async def resume(self) -> bool:
        if self._state != PlaybackState.PAUSED:
            return self._ignored("resume")

        generation = self._generation
        resumed = False
        if self._audio_clock and self._audio is not None:
            try:
                await self._audio.resume_playback()
                resumed = True
                self._origin_offset = self._audio.position_ms() - self._paused_at
            except Exception as exc:
                self._fall_back_to_host_clock(self._paused_at, exc)
        if generation != self._generation or self._state != PlaybackState.PAUSED:
            if resumed:
                self._release_stale_audio()
            return False
        if not self._audio_clock:
            self._clock.reset(self._paused_at)

        self._set_state(PlaybackState.PLAYING)
        log.info("playback_resumed", elapsed_ms=round(self._paused_at))
        self.tick()
        self._schedule_ticks()
        return True

    def tick(self) -> Resolution | None:
        """Advance playback to the current elapsed time.

        Returns the resolved continuous state, or ``None`` when not playing.
        """
        if self._state != PlaybackState.PLAYING or self._session is None:
            return None
        session = self._session
        elapsed = self._elapsed_ms()

        events = session.events
        while self._cursor < len(events) and events[self._cursor].timestamp <= elapsed:
            entry = events[self._cursor]
            self._cursor += 1
            if entry.is_discrete and entry.timestamp > self._last_tick_elapsed:
                self._applier.apply_event(entry)
                self.applied_events.append(entry)

        resolution = self._interpolator.resolve(session, elapsed)
        self._applier.apply_continuous(resolution.snapshot, self._playback_config.change_tolerance)
        self._last_tick_elapsed = elapsed

        if elapsed >= session.duration_ms:
            self._stop_playback("completed")
        return resolution

    async def join(self) -> None:
        """Wait until the current run of the replay loop ends."""
        task = self._tick_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _elapsed_ms(self) -> float:
        if self._audio_clock and self._audio is not None:
            try:
                return self._audio.position_ms() - self._origin_offset
            except Exception as exc:
                self._fall_back_to_host_clock(max(0.0, self._last_tick_elapsed), exc)
        return self._clock.elapsed_ms()

    def _fall_back_to_host_clock(self, elapsed_ms: float, cause: Exception) -> None:
        err = PlaybackDesyncError(elapsed_ms, cause)
        log.warning("playback_desync_host_clock", error=err.message, elapsed_ms=round(elapsed_ms))
        self._audio_clock = False
        self._clock.reset(elapsed_ms)

    def _schedule_ticks(self) -> None:
        if self._state != PlaybackState.PLAYING:
            return
        self._tick_task = asyncio.create_task(
            self._tick_loop(self._generation), name="playback_ticks"
        )

    def _cancel_ticks(self) -> None:
        self._generation += 1
        task = self._tick_task
        self._tick_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _tick_loop(self, generation: int) -> None:
        interval = 1.0 / self._playback_config.tick_hz
        while True:
            await asyncio.sleep(interval)
            # A tick scheduled before stop/pause must not act.
            if generation != self._generation or self._state != PlaybackState.PLAYING:
                return
            try:
                self.tick()
            except Exception as exc:
                log.error("playback_tick_failed", error=str(exc))

    def _release_stale_audio(self) -> None:
        """Stop audio started by a play/resume that was overtaken while awaiting the device."""
        if self._audio is not None:
            try:
                self._audio.stop_playback()
            except Exception as exc:
                log.warning("audio_stop_failed", error=str(exc))
        self._audio_clock = False

    def _stop_playback(self, reason: str) -> None:
        self._cancel_ticks()
        if self._audio_clock and self._audio is not None:
            try:
                self._audio.stop_playback()
            except Exception as exc:
                log.warning("audio_stop_failed", error=str(exc))
        self._audio_clock = False
        self._set_state(PlaybackState.STOPPED)
        log.info(
            "playback_stopped",
            reason=reason,
            elapsed_ms=round(max(0.0, self._last_tick_elapsed)),
            events_applied=len(self.applied_events),
        )
        clear_session_context()

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    def export_session(self) -> dict[str, Any] | None:
        """Serialized form of the finalized session, or ``None``."""
        if self._session is None or not self._session.finalized:
            return None
        return dump_session(self._session)

    def load_session(self, payload: str | bytes | dict[str, Any]) -> RecordedSession | None:
        """Replace the current session with a serialized one.

        Only allowed in ``idle`` or ``stopped``.  On
        :class:`MalformedSessionError` the current session is left untouched
        and the error propagates.
        """
        if self._state not in (PlaybackState.IDLE, PlaybackState.STOPPED):
            self._ignored("load_session")
            return None
        session = parse_session(payload)
        self._session = session
        self._set_state(PlaybackState.STOPPED)
        log.info("session_loaded", session_id=session.session_id, entries=len(session.events))
        return session

    def clear_session(self) -> bool:
        if self._state not in (PlaybackState.IDLE, PlaybackState.STOPPED):
            return self._ignored("clear_session")
        self._session = None
        self._set_state(PlaybackState.IDLE)
        return True
