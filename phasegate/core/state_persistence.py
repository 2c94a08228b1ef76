"""Persistence of the orchestration session snapshot."""

import json
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from .exceptions import PersistenceError
from .session_state import OrchestrationSession, utcnow

if TYPE_CHECKING:
    from ..tracking.activity_logger import ActivityLogger

STATE_FILE_NAME = "orchestrator-state.json"


def default_state_file(project_root: Optional[Path] = None) -> Path:
    root = Path(project_root) if project_root else Path.cwd()
    return root / ".phasegate" / "state" / STATE_FILE_NAME


class SessionStore:
    """
    Saves and loads the single session snapshot of a workspace.

    The snapshot keeps the handoff queue beside the session rather than
    inside it::

        {"orchestrator": {...}, "handoffs": [...], "savedAt": "<iso>"}
    """

    def __init__(
        self,
        state_file: Optional[Path] = None,
        logger: Optional["ActivityLogger"] = None,
    ):
        """
        Initialize the store.

        Args:
            state_file: Snapshot path (default: .phasegate/state/orchestrator-state.json)
            logger: Activity logger used to report unreadable snapshots
        """
        self.state_file = Path(state_file) if state_file else default_state_file()
        self.logger = logger
        self._lock = threading.Lock()

    def exists(self) -> bool:
        return self.state_file.exists()

    def _serialize(self, session: OrchestrationSession) -> Dict[str, Any]:
        orchestrator = session.model_dump(mode="json", exclude={"pending_handoffs"})
        handoffs = [h.model_dump(mode="json") for h in session.pending_handoffs]
        return {
            "orchestrator": orchestrator,
            "handoffs": handoffs,
            "savedAt": utcnow().isoformat(),
        }

    def _deserialize(self, data: Dict[str, Any]) -> OrchestrationSession:
        if not isinstance(data, dict) or "orchestrator" not in data:
            raise ValueError("snapshot has no 'orchestrator' section")
        orchestrator = dict(data["orchestrator"])
        orchestrator["pending_handoffs"] = data.get("handoffs") or []
        return OrchestrationSession.model_validate(orchestrator)

    def save(self, session: OrchestrationSession) -> None:
        """
        Write the snapshot atomically.

        Raises:
            PersistenceError: If the snapshot cannot be written
        """
        with self._lock:
            try:
                self.state_file.parent.mkdir(parents=True, exist_ok=True)
                temp_file = self.state_file.with_suffix(".tmp")
                with open(temp_file, "w", encoding="utf-8") as f:
                    json.dump(self._serialize(session), f, indent=2, default=str)
                temp_file.replace(self.state_file)
            except OSError as e:
                raise PersistenceError(
                    f"Failed to save orchestrator state to {self.state_file}: {e}"
                ) from e

    def load(self) -> Optional[OrchestrationSession]:
        """
        Load the snapshot.

        Returns:
            The stored session, or None when there is no usable snapshot
        """
        with self._lock:
            if not self.state_file.exists():
                return None

            try:
                with open(self.state_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
                return self._deserialize(data)
            except (OSError, ValueError, TypeError, PydanticValidationError) as e:
                message = f"Ignoring unreadable orchestrator state {self.state_file}: {e}"
                if self.logger is not None:
                    self.logger.log_warning(message, state_file=str(self.state_file))
                else:
                    print(f"Warning: {message}")
                return None

    def delete(self) -> bool:
        """
        Remove the snapshot.

        Returns:
            True if deleted, False if there was nothing to delete

        Raises:
            PersistenceError: If the file cannot be removed
        """
        with self._lock:
            if not self.state_file.exists():
                return False
            try:
                self.state_file.unlink()
                return True
            except OSError as e:
                raise PersistenceError(
                    f"Failed to delete orchestrator state {self.state_file}: {e}"
                ) from e
