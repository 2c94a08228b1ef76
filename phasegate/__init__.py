"""
phasegate: multi-domain phase orchestrator

Coordinates specialist workers through a fixed design → validate-design →
build → test → validate sequence, with human approval checkpoints, a
cross-domain handoff queue and a git branch per run.
"""

__version__ = "0.1.0"

from phasegate.core.exceptions import PhasegateError
from phasegate.orchestrator import OperationResult, Orchestrator

__all__ = ["Orchestrator", "OperationResult", "PhasegateError", "__version__"]
