"""Configuration management for phasegate."""

from .loader import load_config
from .models import GitConfig, LoggingConfig, PhasegateConfig, StateConfig

__all__ = [
    "PhasegateConfig",
    "GitConfig",
    "StateConfig",
    "LoggingConfig",
    "load_config",
]
