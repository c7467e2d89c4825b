"""Configuration management for ankiserver."""

import json
import os
import shutil
from dataclasses import dataclass, asdict

from dotenv import load_dotenv

from . import paths
from .paths import atomic_json_write

DEFAULT_ANKI_CONNECT_URL = "http://localhost:8765"

# Environment variable -> Config field
ENV_OVERRIDES: dict[str, str] = {
    "ANKI_CONNECT_URL": "anki_connect_url",
    "ANKISERVER_LOG_LEVEL": "log_level",
    "ANKISERVER_TIMEOUT": "request_timeout",
}


@dataclass
class Config:
    """Application configuration."""

    anki_connect_url: str = DEFAULT_ANKI_CONNECT_URL
    api_version: int = 6
    # None means wait for AnkiConnect indefinitely
    request_timeout: float | None = None
    log_level: str = "WARNING"
    server_name: str = "anki-server"


def _apply_env(config: Config) -> Config:
    for var, field_name in ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if not value:
            continue
        if field_name == "request_timeout":
            try:
                config.request_timeout = float(value)
            except ValueError:
                continue
        elif field_name == "log_level":
            config.log_level = value.upper()
        else:
            setattr(config, field_name, value)
    return config


def load_config() -> Config:
    """Load config from disk, then apply environment overrides.

    Missing or corrupt files fall back to defaults; a corrupt file is
    backed up next to the original first.
    """
    load_dotenv()
    load_dotenv(paths.ENV_FILE)

    config = Config()
    if paths.CONFIG_FILE.exists():
        try:
            with open(paths.CONFIG_FILE) as f:
                data = json.load(f)
            config = Config(
                **{k: v for k, v in data.items() if k in Config.__dataclass_fields__}
            )
        except (json.JSONDecodeError, TypeError, AttributeError):
            backup_path = paths.CONFIG_FILE.with_suffix(".json.bak")
            try:
                shutil.copy2(paths.CONFIG_FILE, backup_path)
            except OSError:
                pass

    return _apply_env(config)


def save_config(config: Config) -> None:
    """Save config to disk."""
    atomic_json_write(paths.CONFIG_FILE, asdict(config))


def format_config_display(config: Config) -> str:
    """Format config for display."""
    lines = ["ankiserver configuration", "=" * 50]
    for key, value in asdict(config).items():
        shown = "none" if value is None else value
        lines.append(f"  {key:<18} {shown}")
    lines.append("=" * 50)
    return "\n".join(lines)
