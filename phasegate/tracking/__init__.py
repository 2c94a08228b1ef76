"""Activity tracking for phasegate."""

from .activity_logger import (
    ActivityEvent,
    ActivityLogger,
    EventType,
    NullActivityLogger,
    generate_session_id,
)

__all__ = [
    "ActivityEvent",
    "ActivityLogger",
    "EventType",
    "NullActivityLogger",
    "generate_session_id",
]
