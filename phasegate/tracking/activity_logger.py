"""Activity logging for orchestration operations."""

import json
import threading
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events that can be logged."""

    SESSION_INIT = "session_init"
    PHASE_ADVANCE = "phase_advance"
    CHECKPOINT = "checkpoint"
    HANDOFF = "handoff"
    VCS_OPERATION = "vcs_operation"
    ROLLBACK = "rollback"
    FINALIZE = "finalize"
    RESET = "reset"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


def event_level(event_type: EventType) -> str:
    if event_type == EventType.ERROR:
        return "ERROR"
    if event_type == EventType.WARNING:
        return "WARN"
    return "INFO"


class ActivityEvent(BaseModel):
    """Activity event model."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: EventType = Field(..., description="Type of event")
    session_id: str = Field(..., description="Logger session identifier")
    message: str = Field(..., description="Event message")
    domain: Optional[str] = Field(None, description="Domain the event concerns")
    phase: Optional[str] = Field(None, description="Phase the event concerns")
    data: Dict[str, Any] = Field(
        default_factory=dict, description="Additional event data"
    )


def generate_session_id() -> str:
    """Generate a unique logger session ID."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    short_uuid = str(uuid.uuid4())[:8]
    return f"pg-{timestamp}-{short_uuid}"


class ActivityLogger:
    """Thread-safe JSONL activity logger.

    Each CLI invocation gets its own session directory under
    ``<logs_dir>/sessions/<session_id>/``. A failure to write a log entry is
    never allowed to fail the operation being logged.
    """

    def __init__(
        self, logs_dir: Path, session_id: Optional[str] = None, level: str = "INFO"
    ):
        """Initialize activity logger.

        Args:
            logs_dir: Directory to store log files
            session_id: Logger session identifier (generated if omitted)
            level: Minimum level written (DEBUG, INFO, WARN or ERROR)
        """
        self.min_level = LEVELS.index(level.upper())
        self.session_id = session_id or generate_session_id()
        self.logs_dir = Path(logs_dir)
        self.session_log_dir = self.logs_dir / "sessions" / self.session_id
        self.main_log_file = self.session_log_dir / "activity.jsonl"
        self._lock = threading.Lock()

    def log_event(
        self,
        event_type: EventType,
        message: str,
        domain: Optional[Any] = None,
        phase: Optional[Any] = None,
        **data: Any,
    ) -> None:
        """Log an activity event.

        Args:
            event_type: Type of event
            message: Event message
            domain: Domain the event concerns
            phase: Phase the event concerns
            **data: Additional event data
        """
        if LEVELS.index(event_level(event_type)) < self.min_level:
            return

        event = ActivityEvent(
            event_type=event_type,
            session_id=self.session_id,
            message=message,
            domain=getattr(domain, "value", domain),
            phase=getattr(phase, "value", phase),
            data=data,
        )
        self._write_event(event)

    def log_vcs_operation(self, operation: str, **details: Any) -> None:
        self.log_event(
            EventType.VCS_OPERATION, f"Git {operation}", git_operation=operation, **details
        )

    def log_warning(self, message: str, **data: Any) -> None:
        self.log_event(EventType.WARNING, message, **data)

    def log_error(self, error: str, **data: Any) -> None:
        self.log_event(EventType.ERROR, error, error=error, **data)

    def log_info(self, message: str, **data: Any) -> None:
        self.log_event(EventType.INFO, message, **data)

    def get_recent_events(self, limit: int = 100) -> List[ActivityEvent]:
        """Get recent events from this logger's session.

        Args:
            limit: Maximum number of events to return
        """
        events: List[ActivityEvent] = []

        if self.main_log_file.exists():
            with open(self.main_log_file, "r", encoding="utf-8") as f:
                lines = f.readlines()

            for line in lines[-limit:]:
                try:
                    events.append(ActivityEvent(**json.loads(line.strip())))
                except ValueError:
                    continue

        return events

    def _write_event(self, event: ActivityEvent) -> None:
        """Append an event as one JSON line."""
        with self._lock:
            try:
                self.session_log_dir.mkdir(parents=True, exist_ok=True)
                with open(self.main_log_file, "a", encoding="utf-8") as f:
                    json.dump(
                        event.model_dump(mode="json"),
                        f,
                        default=str,
                        separators=(",", ":"),
                    )
                    f.write("\n")
            except OSError as e:
                print(f"Warning: Failed to write activity log: {e}")


class NullActivityLogger(ActivityLogger):
    """Logger used when activity logging is disabled."""

    def __init__(self) -> None:
        super().__init__(logs_dir=Path("."), session_id="disabled")

    def _write_event(self, event: ActivityEvent) -> None:
        return None

    def get_recent_events(self, limit: int = 100) -> List[ActivityEvent]:
        return []
