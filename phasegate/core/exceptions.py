"""phasegate exception classes.

Every error carries a remediation hint so callers can tell the user what to do
next. The orchestrator facade converts these into structured results.
"""

from typing import Optional


class PhasegateError(Exception):
    """Base exception for all phasegate errors."""

    kind = "error"
    default_hint: Optional[str] = None

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint if hint is not None else self.default_hint

    def to_dict(self) -> dict:
        """Structured error detail for JSON output."""
        return {"error": self.message, "error_kind": self.kind, "hint": self.hint}


class InitializationError(PhasegateError):
    """Raised when a session cannot be initialized."""

    kind = "initialization"
    default_hint = "Check the domain, phase and VCS mode, then run init again"


class StateError(PhasegateError):
    """Raised when an operation is invalid for the current session state."""

    kind = "state"
    default_hint = "Run 'phasegate status' to inspect the current session"


class ValidationError(PhasegateError):
    """Raised when a request is malformed."""

    kind = "validation"
    default_hint = "Fix the request fields and try again"


class VcsOperationError(PhasegateError):
    """Raised when a git or gh operation fails or times out."""

    kind = "vcs"
    default_hint = "Resolve the git problem shown above and re-issue the command"


class PersistenceError(PhasegateError):
    """Raised when the session snapshot cannot be read or written."""

    kind = "persistence"
    default_hint = "Run 'phasegate reset' and initialize a new session"


class ConfigurationError(PhasegateError):
    """Raised when configuration is invalid."""

    kind = "configuration"
    default_hint = "Fix .phasegate/config.yaml"
