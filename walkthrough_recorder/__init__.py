"""Walkthrough Recorder — narrated recording and replay of 3D inspection sessions.

Records a spoken narration together with everything the user did in an
interactive 3D inspection view (explode/slice/x-ray, part focus, animation,
paired document viewing) and replays both in lockstep.

Layers (bottom to top):
    1. Recording model — snapshots, timeline entries, wire schema
    2. Capture         — EventLog (discrete actions), StateSampler (continuous state)
    3. Replay          — Interpolator, StateApplier
    4. Control         — PlaybackController state machine and replay loop
    5. Shell           — SQLite session store, ``walkthrough`` CLI
"""

__version__ = "0.1.0"
__author__ = "Walkthrough Recorder Contributors"
__license__ = "Apache-2.0"

from walkthrough_recorder.recording.controller import PlaybackController, PlaybackState
from walkthrough_recorder.recording.models import RecordedSession

__all__ = [
    "__version__",
    "PlaybackController",
    "PlaybackState",
    "RecordedSession",
]
