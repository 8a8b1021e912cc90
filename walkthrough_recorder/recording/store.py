"""Walkthrough Recorder — SQLite persistence for named RecordedSessions."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import aiosqlite

from walkthrough_recorder.exceptions import SessionStoreError
from walkthrough_recorder.logging import get_logger
from walkthrough_recorder.recording.models import RecordedSession
from walkthrough_recorder.recording.schema import dump_session, parse_session

log = get_logger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS sessions (
    name         TEXT PRIMARY KEY,
    session_id   TEXT NOT NULL,
    created_at   TEXT,
    duration_ms  INTEGER NOT NULL DEFAULT 0,
    entry_count  INTEGER NOT NULL DEFAULT 0,
    event_count  INTEGER NOT NULL DEFAULT 0,
    has_audio    INTEGER NOT NULL DEFAULT 0,
    payload      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sessions_created_at ON sessions (created_at);
"""


class SessionStore:
    """Async SQLite store for serialized sessions, keyed by a user-chosen name."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def init(self) -> None:
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(str(self._db_path))
            await self._conn.executescript(_SCHEMA_SQL)
            await self._conn.commit()
        except (OSError, sqlite3.Error) as exc:
            raise SessionStoreError(
                f"Cannot open session store at {self._db_path}: {exc}",
                context={"db_path": str(self._db_path)},
            ) from exc
        log.debug("session_store_init", path=str(self._db_path))

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "SessionStore":
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise SessionStoreError("Session store is not initialised; call init() first.")
        return self._conn

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def save(self, name: str, session: RecordedSession) -> None:
        """Insert or replace the session stored under *name*."""
        conn = self._require_conn()
        summary = session.to_summary_dict()
        payload = json.dumps(dump_session(session))
        try:
            await conn.execute(
                """INSERT OR REPLACE INTO sessions
                   (name, session_id, created_at, duration_ms, entry_count,
                    event_count, has_audio, payload)
                   VALUES (?,?,?,?,?,?,?,?)""",
                (
                    name, session.session_id, summary["created_at"], session.duration_ms,
                    summary["entry_count"], summary["event_count"], int(session.has_audio),
                    payload,
                ),
            )
            await conn.commit()
        except sqlite3.Error as exc:
            raise SessionStoreError(f"Failed to save session '{name}': {exc}") from exc
        log.info("session_saved", name=name, session_id=session.session_id)

    async def delete(self, name: str) -> bool:
        """Delete a stored session. Returns True if found."""
        conn = self._require_conn()
        cursor = await conn.execute("DELETE FROM sessions WHERE name=?", (name,))
        await conn.commit()
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def get(self, name: str) -> RecordedSession | None:
        """Load and validate a stored session.

        Raises:
            MalformedSessionError: The stored payload no longer validates.
        """
        conn = self._require_conn()
        async with conn.execute("SELECT payload FROM sessions WHERE name=?", (name,)) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return parse_session(row[0])

    async def list(self) -> list[dict[str, Any]]:
        """Summaries of every stored session, newest first."""
        conn = self._require_conn()
        results: list[dict[str, Any]] = []
        async with conn.execute(
            "SELECT name, session_id, created_at, duration_ms, entry_count, event_count, has_audio "
            "FROM sessions ORDER BY created_at DESC, name"
        ) as cursor:
            async for row in cursor:
                results.append(
                    {
                        "name": row[0],
                        "session_id": row[1],
                        "created_at": row[2],
                        "duration_ms": row[3],
                        "entry_count": row[4],
                        "event_count": row[5],
                        "has_audio": bool(row[6]),
                    }
                )
        return results
