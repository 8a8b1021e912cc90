"""Unit tests — structured logging helpers."""

from __future__ import annotations

import logging

import pytest
import structlog

from walkthrough_recorder.logging import (
    _inject_context_vars,
    bind_session_context,
    clear_session_context,
    configure_logging,
    get_logger,
)


@pytest.mark.unit
class TestSessionContext:
    def test_bound_session_id_is_injected(self) -> None:
        bind_session_context("ses-abc")
        try:
            event = _inject_context_vars(None, "info", {"event": "x"})
        finally:
            clear_session_context()
        assert event["session_id"] == "ses-abc"

    def test_cleared_context_adds_nothing(self) -> None:
        clear_session_context()
        assert "session_id" not in _inject_context_vars(None, "info", {"event": "x"})


@pytest.mark.unit
class TestConfigureLogging:
    def test_json_to_file(self, tmp_path) -> None:
        log_file = tmp_path / "walkthrough.log"
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(level="debug", format="json", log_file=str(log_file))
            get_logger("walkthrough_recorder.test").info("hello_event", answer=42)
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved_handlers
            root.setLevel(saved_level)
            structlog.reset_defaults()
        contents = log_file.read_text()
        assert "hello_event" in contents
        assert '"answer": 42' in contents
