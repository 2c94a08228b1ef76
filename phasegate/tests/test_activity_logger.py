"""Tests for the activity logger."""

import json
import re
from unittest.mock import patch

from phasegate.core import Domain, Phase
from phasegate.tracking import (
    ActivityEvent,
    ActivityLogger,
    EventType,
    NullActivityLogger,
    generate_session_id,
)


class TestActivityLogger:
    """Test JSONL activity logging."""

    def test_session_id_format(self):
        assert re.match(r"^pg-\d{8}-\d{6}-[0-9a-f]{8}$", generate_session_id())

    def test_log_file_location(self, tmp_path):
        logger = ActivityLogger(tmp_path, session_id="abc")
        assert logger.main_log_file == tmp_path / "sessions" / "abc" / "activity.jsonl"
        assert not logger.main_log_file.exists()

    def test_log_event(self, tmp_path):
        """Test events are appended as single JSON lines."""
        logger = ActivityLogger(tmp_path, session_id="abc")
        logger.log_event(
            EventType.PHASE_ADVANCE,
            "Advanced",
            domain=Domain.LOGGING,
            phase=Phase.BUILD,
            completed=3,
        )
        logger.log_info("second")

        lines = logger.main_log_file.read_text().splitlines()
        assert len(lines) == 2

        first = json.loads(lines[0])
        assert first["event_type"] == "phase_advance"
        assert first["session_id"] == "abc"
        assert first["domain"] == "logging"
        assert first["phase"] == "build"
        assert first["data"] == {"completed": 3}

    def test_helpers(self, tmp_path):
        logger = ActivityLogger(tmp_path)
        logger.log_vcs_operation("commit", commit="abc123")
        logger.log_warning("careful")
        logger.log_error("broken", action="advance")

        events = logger.get_recent_events()
        assert [e.event_type for e in events] == [
            EventType.VCS_OPERATION,
            EventType.WARNING,
            EventType.ERROR,
        ]
        assert events[0].message == "Git commit"
        assert events[0].data == {"git_operation": "commit", "commit": "abc123"}
        assert events[2].data == {"error": "broken", "action": "advance"}

    def test_recent_events_limit_and_bad_lines(self, tmp_path):
        logger = ActivityLogger(tmp_path, session_id="abc")
        for i in range(5):
            logger.log_info(f"event {i}")
        with open(logger.main_log_file, "a", encoding="utf-8") as f:
            f.write("not json\n")

        events = logger.get_recent_events(limit=3)
        assert [e.message for e in events] == ["event 3", "event 4"]
        assert all(isinstance(e, ActivityEvent) for e in events)

    def test_write_failure_does_not_raise(self, tmp_path, capsys):
        logger = ActivityLogger(tmp_path, session_id="abc")
        with patch("builtins.open", side_effect=PermissionError("denied")):
            logger.log_info("lost")
        assert "Failed to write activity log" in capsys.readouterr().out

    def test_level_filters_events(self, tmp_path):
        """Test events below the configured level are not written."""
        logger = ActivityLogger(tmp_path, session_id="abc", level="warn")
        logger.log_info("quiet")
        logger.log_event(EventType.PHASE_ADVANCE, "Advanced")
        logger.log_warning("careful")
        logger.log_error("broken")

        events = logger.get_recent_events()
        assert [e.event_type for e in events] == [EventType.WARNING, EventType.ERROR]

    def test_error_level_keeps_only_errors(self, tmp_path):
        logger = ActivityLogger(tmp_path, session_id="abc", level="ERROR")
        logger.log_warning("careful")
        assert not logger.main_log_file.exists()
        logger.log_error("broken")
        assert [e.message for e in logger.get_recent_events()] == ["broken"]

    def test_debug_level_keeps_everything(self, tmp_path):
        logger = ActivityLogger(tmp_path, session_id="abc", level="DEBUG")
        logger.log_info("one")
        logger.log_warning("two")
        assert len(logger.get_recent_events()) == 2


class TestNullActivityLogger:
    """Test the disabled logger."""

    def test_writes_nothing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        logger = NullActivityLogger()
        logger.log_info("ignored")
        logger.log_error("ignored")
        assert logger.get_recent_events() == []
        assert list(tmp_path.iterdir()) == []
