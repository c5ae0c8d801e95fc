"""Configuration utilities for the notecompanion CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path

from notecompanion.core.config import PipelineSettings, ServerConfig

DEFAULT_SERVER_URL = "https://app.notecompanion.ai"


def get_config_dir() -> Path:
    """Get the configuration directory for notecompanion.

    Returns:
        Path to ~/.notecompanion or equivalent.
    """
    return Path.home() / ".notecompanion"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_data_dir() -> Path:
    """Get the local-first data directory.

    Returns:
        Path to the configured data directory (default: the config directory).
    """
    config = load_config()
    if config.get("data_dir"):
        return Path(config["data_dir"]).expanduser().resolve()
    return get_config_dir()


def build_settings(server_url: str | None = None) -> PipelineSettings:
    """Build pipeline settings from the config file.

    Args:
        server_url: Server URL overriding the configured one.

    Returns:
        Settings for the pipeline components.
    """
    config = load_config()
    url = server_url or config.get("server_url") or DEFAULT_SERVER_URL
    return PipelineSettings(
        server=ServerConfig(server_url=url),
        data_dir=get_data_dir(),
    )
