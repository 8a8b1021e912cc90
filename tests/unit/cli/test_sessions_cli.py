"""Unit tests — CLI session and config commands."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from walkthrough_recorder.cli.main import app
from walkthrough_recorder.recording.models import (
    EntryKind,
    RecordedSession,
    StateSnapshot,
    TimestampedEntry,
)
from walkthrough_recorder.recording.schema import dump_session
from walkthrough_recorder.recording.store import SessionStore

runner = CliRunner()


def _make_session() -> RecordedSession:
    session = RecordedSession.begin(StateSnapshot())
    session.append(
        TimestampedEntry(
            400,
            EntryKind.DISCRETE_EVENT,
            StateSnapshot(focused_part="gear"),
            event_type="scene.focus_part",
            event_data={"part": "gear"},
        )
    )
    session.finalize(900)
    return session


def _seed(db: Path, name: str, session: RecordedSession) -> None:
    async def _run() -> None:
        async with SessionStore(db) as store:
            await store.save(name, session)

    asyncio.run(_run())


@pytest.fixture
def db(tmp_path: Path) -> Path:
    return tmp_path / "sessions.db"


@pytest.mark.unit
class TestSessionsList:
    def test_empty(self, db: Path) -> None:
        result = runner.invoke(app, ["sessions", "list", "--db", str(db)])
        assert result.exit_code == 0
        assert "No stored sessions" in result.output

    def test_lists_saved_sessions(self, db: Path) -> None:
        _seed(db, "tour", _make_session())
        result = runner.invoke(app, ["sessions", "list", "--db", str(db)])
        assert result.exit_code == 0
        assert "tour" in result.output


@pytest.mark.unit
class TestSessionsShow:
    def test_show(self, db: Path) -> None:
        _seed(db, "tour", _make_session())
        result = runner.invoke(app, ["sessions", "show", "tour", "--db", str(db)])
        assert result.exit_code == 0
        assert "900 ms" in result.output
        assert "discreteEvent" in result.output

    def test_show_missing_exits_1(self, db: Path) -> None:
        result = runner.invoke(app, ["sessions", "show", "nope", "--db", str(db)])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_events(self, db: Path) -> None:
        _seed(db, "tour", _make_session())
        result = runner.invoke(app, ["sessions", "events", "tour", "--db", str(db)])
        assert result.exit_code == 0
        assert "scene.focus_part" in result.output


@pytest.mark.unit
class TestSessionsExportImport:
    def test_export_to_stdout(self, db: Path) -> None:
        session = _make_session()
        _seed(db, "tour", session)
        result = runner.invoke(app, ["sessions", "export", "tour", "--db", str(db)])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["sessionId"] == session.session_id
        assert data["duration"] == 900

    def test_export_to_file(self, db: Path, tmp_path: Path) -> None:
        _seed(db, "tour", _make_session())
        out = tmp_path / "tour.json"
        result = runner.invoke(app, ["sessions", "export", "tour", "-o", str(out), "--db", str(db)])
        assert result.exit_code == 0
        assert json.loads(out.read_text())["states"][0]["type"] == "initial"

    def test_import_valid_file(self, db: Path, tmp_path: Path) -> None:
        src = tmp_path / "in.json"
        src.write_text(json.dumps(dump_session(_make_session())))
        result = runner.invoke(app, ["sessions", "import", str(src), "imported", "--db", str(db)])
        assert result.exit_code == 0
        listed = runner.invoke(app, ["sessions", "list", "--db", str(db)])
        assert "imported" in listed.output

    def test_import_malformed_exits_1(self, db: Path, tmp_path: Path) -> None:
        src = tmp_path / "bad.json"
        src.write_text('{"states": []}')
        result = runner.invoke(app, ["sessions", "import", str(src), "bad", "--db", str(db)])
        assert result.exit_code == 1
        assert "Invalid session" in result.output

    def test_import_missing_file_exits_1(self, db: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["sessions", "import", str(tmp_path / "nope.json"), "x", "--db", str(db)]
        )
        assert result.exit_code == 1


@pytest.mark.unit
class TestSessionsDelete:
    def test_delete(self, db: Path) -> None:
        _seed(db, "tour", _make_session())
        result = runner.invoke(app, ["sessions", "delete", "tour", "--db", str(db)])
        assert result.exit_code == 0
        again = runner.invoke(app, ["sessions", "delete", "tour", "--db", str(db)])
        assert again.exit_code == 1


@pytest.mark.unit
class TestConfigShow:
    def test_show_includes_sampling(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("sampling:\n  camera_hz: 24\n")
        result = runner.invoke(app, ["config", "show", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "camera_hz" in result.output
        assert "24" in result.output
