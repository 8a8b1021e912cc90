"""Walkthrough Recorder — Exception hierarchy.

All exceptions raised by the recorder inherit from WalkthroughError so that
callers can catch the full family with a single except clause when needed.

Hierarchy:
    WalkthroughError
    ├── AudioError
    │   ├── AudioPermissionDeniedError
    │   └── PlaybackDesyncError
    ├── AssetNotFoundError
    └── SessionError
        ├── MalformedSessionError
        ├── SessionNotFoundError
        └── SessionStoreError

Only MalformedSessionError is surfaced to callers of the playback controller.
Every other failure is recovered locally: audio failures degrade to a
visual-only session or host-clock timing, and a missing asset skips one
state application.
"""

from __future__ import annotations

from typing import Any


class WalkthroughError(Exception):
    """Base exception for all Walkthrough Recorder errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Audio collaborator
# ---------------------------------------------------------------------------


class AudioError(WalkthroughError):
    """Base for audio collaborator failures."""


class AudioPermissionDeniedError(AudioError):
    """No audio input device could be acquired (missing device or permission)."""

    def __init__(self, reason: str = "permission denied") -> None:
        super().__init__(
            f"Audio capture unavailable: {reason}",
            context={"reason": reason},
        )
        self.reason = reason


class PlaybackDesyncError(AudioError):
    """The audio collaborator stopped reporting a usable position mid-playback."""

    def __init__(self, elapsed_ms: float, cause: Exception | None = None) -> None:
        super().__init__(
            f"Audio clock lost at {elapsed_ms:.0f}ms"
            + (f": {cause}" if cause is not None else ""),
            context={"elapsed_ms": elapsed_ms, "cause": str(cause) if cause else None},
        )
        self.elapsed_ms = elapsed_ms
        self.cause = cause


# ---------------------------------------------------------------------------
# Scene / document collaborators
# ---------------------------------------------------------------------------


class AssetNotFoundError(WalkthroughError):
    """A model or document asset referenced by the timeline does not exist."""

    def __init__(self, asset_id: str) -> None:
        super().__init__(
            f"Asset '{asset_id}' not found",
            context={"asset_id": asset_id},
        )
        self.asset_id = asset_id


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class SessionError(WalkthroughError):
    """Base for recorded-session errors."""


class MalformedSessionError(SessionError):
    """A serialized session is missing required fields or breaks timeline invariants."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message, context={"validation_errors": errors or []})
        self.errors = errors or []


class SessionNotFoundError(SessionError):
    """No stored session with the given name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Session '{name}' not found", context={"name": name})
        self.name = name


class SessionStoreError(SessionError):
    """SQLite session store operation failed."""
