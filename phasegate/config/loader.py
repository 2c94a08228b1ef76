"""Locating, reading and merging phasegate config files."""

import os
from functools import reduce
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from phasegate.config.models import PhasegateConfig
from phasegate.core.exceptions import ConfigurationError

CONFIG_FILE_NAME = "config.yaml"
PROJECT_DIR_NAME = ".phasegate"


def global_config_path() -> Path:
    base = os.getenv("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / "phasegate" / CONFIG_FILE_NAME


def project_config_path(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Closest ``.phasegate/config.yaml`` at or above ``start_dir``."""
    start = Path(start_dir) if start_dir else Path.cwd()
    for directory in (start, *start.parents):
        if (directory / PROJECT_DIR_NAME).is_dir():
            return directory / PROJECT_DIR_NAME / CONFIG_FILE_NAME
    return None


def config_sources(
    project_config: Optional[Path] = None,
    global_config: Optional[Path] = None,
    start_dir: Optional[Path] = None,
) -> List[Path]:
    """Existing config files, lowest precedence first."""
    candidates = [
        global_config or global_config_path(),
        project_config or project_config_path(start_dir),
    ]
    return [path for path in candidates if path is not None and path.is_file()]


def load_config(
    project_config_path: Optional[Path] = None,
    global_config_path: Optional[Path] = None,
    start_dir: Optional[Path] = None,
) -> PhasegateConfig:
    """Build the effective configuration.

    Built-in defaults are overlaid by the global file, then the project file.
    ``${VAR}`` references are expanded after merging.

    Raises:
        ConfigurationError: If a file is unreadable or the result is invalid
    """
    sources = config_sources(project_config_path, global_config_path, start_dir)
    merged = reduce(_merge_config, (_read_mapping(path) for path in sources), {})
    try:
        return PhasegateConfig(**merged).resolve_env_vars()
    except ValidationError as e:
        origin = ", ".join(str(path) for path in sources) or "defaults"
        raise ConfigurationError(f"Configuration validation failed ({origin}): {e}") from e


def _read_mapping(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{path} must contain a mapping, got {type(data).__name__}"
        )
    return data


def _merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    # Nested sections merge key by key; everything else is replaced
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged
