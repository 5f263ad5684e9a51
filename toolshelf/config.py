"""
Toolshelf Configuration Module

Load and manage configuration from config.yaml.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any
import yaml


DEFAULT_CONFIG = {
    "database": {
        "path": "db/toolshelf.db"
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
    },
    "review": {
        "page_size": 20
    },
    "auth": {
        "token_expire_minutes": 60 * 24
    },
}


def find_config_file() -> Path | None:
    """Find the config file, checking common locations."""
    locations = [
        Path("config.yaml"),
        Path("config.yml"),
        Path.home() / ".config" / "toolshelf" / "config.yaml",
    ]

    for path in locations:
        if path.exists():
            return path

    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Optional explicit path to config file.

    Returns:
        Configuration dictionary with defaults applied.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path:
        path = Path(config_path)
    else:
        path = find_config_file()

    if path and path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
            config = _deep_merge(config, file_config)

    # Override with environment variables
    if os.environ.get("TOOLSHELF_DB_PATH"):
        config["database"]["path"] = os.environ["TOOLSHELF_DB_PATH"]

    if os.environ.get("TOOLSHELF_LOG_LEVEL"):
        config["logging"]["level"] = os.environ["TOOLSHELF_LOG_LEVEL"]

    return config


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def configure_logging(config: dict) -> None:
    """Apply the configured log level and format to the root logger."""
    log_config = config.get("logging", {})
    level = str(log_config.get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=log_config.get("format", DEFAULT_CONFIG["logging"]["format"]),
    )
