"""Shared pytest fixtures for the walkthrough-recorder test suite."""

from __future__ import annotations

import pytest

from walkthrough_recorder.recording.collaborators import (
    InMemoryDocument,
    InMemoryScene,
    SimulatedAudio,
)


class ManualClock:
    """Deterministic monotonic time source, advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms / 1000.0


# ---------------------------------------------------------------------------
# Time and collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scene() -> InMemoryScene:
    return InMemoryScene(
        parts=("housing", "gear", "shaft"),
        animations=("assemble", "rotate"),
        models=("models/pump.glb", "models/valve.glb"),
    )


@pytest.fixture
def document() -> InMemoryDocument:
    return InMemoryDocument(assets={"manual.pdf": 12, "datasheet.pdf": 3})


@pytest.fixture
def audio(manual_clock: ManualClock) -> SimulatedAudio:
    return SimulatedAudio(time_source=manual_clock)
