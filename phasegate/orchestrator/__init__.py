"""Orchestrator facade.

Loads the session snapshot, runs one core operation and saves the result,
returning structured results instead of raising.
"""

from .results import OperationResult
from .service import Orchestrator

__all__ = ["Orchestrator", "OperationResult"]
