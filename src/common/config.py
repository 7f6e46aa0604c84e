"""Shared configuration utilities."""

import os
from pathlib import Path

import yaml

YAML_SUFFIXES = (".yaml", ".yml")


def find_config_path(
    config_name: str | None,
    config_dir: Path,
    default_name: str = "prod",
    env_var: str | None = None,
) -> Path:
    """Find config file path, checking env var and defaults.

    A name ending in .yaml/.yml is treated as a path and used as-is.

    Args:
        config_name: Name of config (without .yaml), a path, or None for default
        config_dir: Directory containing named config files
        default_name: Default config name if config_name is None
        env_var: Environment variable to check for config name

    Returns:
        Path to the config file

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    if config_name is None:
        config_name = os.environ.get(env_var, default_name) if env_var else default_name

    if config_name.endswith(YAML_SUFFIXES):
        config_path = Path(config_name)
    else:
        config_path = config_dir / f"{config_name}.yaml"

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return config_path


def load_yaml(path: Path) -> dict:
    """Load YAML file and return dict (empty files give an empty dict)."""
    with open(path) as f:
        return yaml.safe_load(f) or {}
