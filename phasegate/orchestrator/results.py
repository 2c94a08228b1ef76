"""Structured results returned by the orchestrator facade."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..core.exceptions import PhasegateError


@dataclass
class OperationResult:
    """Outcome of one orchestrator operation."""

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    hint: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[Dict[str, Any]] = None) -> "OperationResult":
        return cls(success=True, data=data or {})

    @classmethod
    def failure(cls, error: PhasegateError) -> "OperationResult":
        return cls(
            success=False,
            error=error.message,
            error_kind=error.kind,
            hint=error.hint,
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form; error fields are only present on failure."""
        result: Dict[str, Any] = {"success": self.success, **self.data}
        if not self.success:
            result.update(error=self.error, error_kind=self.error_kind, hint=self.hint)
        return result
