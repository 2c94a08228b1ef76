"""Configuration models for phasegate."""

import os
import re
from pathlib import Path
from typing import Any, List

from pydantic import BaseModel, Field, field_validator

from phasegate.core.session_state import VcsMode
from phasegate.tracking.activity_logger import LEVELS


def parse_duration(value: str) -> float:
    """Convert '30s', '5m' or '1h' to seconds."""
    match = re.match(r"^(\d+)([hms])$", value)
    if not match:
        raise ValueError(f"Invalid duration: {value}")
    amount, unit = int(match.group(1)), match.group(2)
    return float(amount * {"h": 3600, "m": 60, "s": 1}[unit])


class GitConfig(BaseModel):
    """Git workflow configuration."""

    protected_branches: List[str] = Field(
        default=["main", "master", "production", "develop", "staging", "release"],
        description="Branches the workflow never commits to directly",
    )
    branch_type: str = Field(
        default="feature", description="Prefix type for workflow branches"
    )
    remote: str = Field(default="origin", description="Remote to push to")
    default_mode: VcsMode = Field(
        default=VcsMode.AUTO, description="VCS mode used when init gets none"
    )
    command_timeout: str = Field(default="30s", description="Per-command timeout")

    @field_validator("branch_type")
    @classmethod
    def validate_branch_type(cls, v: str) -> str:
        """Validate branch type is a single ref component."""
        if not re.match(r"^[a-z][a-z0-9-]*$", v):
            raise ValueError("branch_type must be lowercase letters, digits or '-'")
        return v

    @field_validator("command_timeout")
    @classmethod
    def validate_timeout(cls, v: str) -> str:
        """Validate timeout format."""
        if not re.match(r"^\d+[hms]$", v):
            raise ValueError("Timeout must be in format like '30s', '2m', or '1h'")
        if parse_duration(v) <= 0:
            raise ValueError("Timeout must be positive")
        return v

    def timeout_seconds(self) -> float:
        return parse_duration(self.command_timeout)


class StateConfig(BaseModel):
    """Snapshot storage configuration."""

    state_dir: str = Field(
        default=".phasegate/state", description="Directory for the session snapshot"
    )
    state_file: str = Field(
        default="orchestrator-state.json", description="Snapshot file name"
    )


class LoggingConfig(BaseModel):
    """Activity logging configuration."""

    enabled: bool = Field(default=True, description="Write activity logs")
    output_dir: str = Field(default=".phasegate/logs", description="Log output directory")
    level: str = Field(default="INFO", description="Log level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        if v.upper() not in LEVELS:
            raise ValueError(f"level must be one of: {', '.join(LEVELS)}")
        return v.upper()


class PhasegateConfig(BaseModel):
    """Main phasegate configuration."""

    git: GitConfig = Field(default_factory=GitConfig, description="Git configuration")
    state: StateConfig = Field(
        default_factory=StateConfig, description="State configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    def resolve_env_vars(self) -> "PhasegateConfig":
        """Resolve environment variables in configuration values."""
        config_dict = self.model_dump(mode="json")
        resolved_dict = _resolve_env_vars_recursive(config_dict)
        return PhasegateConfig(**resolved_dict)

    def get_state_file(self, project_root: Path) -> Path:
        state_dir = Path(self.state.state_dir).expanduser()
        if not state_dir.is_absolute():
            state_dir = project_root / state_dir
        return state_dir / self.state.state_file

    def get_log_dir(self, project_root: Path) -> Path:
        log_dir = Path(self.logging.output_dir).expanduser()
        if not log_dir.is_absolute():
            log_dir = project_root / log_dir
        return log_dir


def _resolve_env_vars_recursive(obj: Any) -> Any:
    """Recursively resolve environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _resolve_env_vars_recursive(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_resolve_env_vars_recursive(item) for item in obj]
    elif isinstance(obj, str):
        return _resolve_env_var_string(obj)
    else:
        return obj


def _resolve_env_var_string(value: str) -> str:
    """Resolve ${VAR_NAME} or ${VAR_NAME:default} in a string."""
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replace_var(match):
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.getenv(var_name, default_value)

    return re.sub(pattern, replace_var, value)
