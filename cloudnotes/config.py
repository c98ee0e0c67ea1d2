"""
Client configuration for cloudnotes.

Centralizes endpoints and behavior flags so callers can tune defaults without
touching core logic. Values resolve in this order:

  explicit keyword > CLOUDNOTES_* environment variable > config file > default

The config file lives at ~/.config/cloudnotes/config.json (override the
directory with CLOUDNOTES_CONFIG_DIR).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

LOGGER = logging.getLogger(__name__)

FAILURE_POLICIES = ("revert", "mark")


def config_dir() -> str:
    return os.path.expanduser(
        os.getenv("CLOUDNOTES_CONFIG_DIR") or "~/.config/cloudnotes"
    )


def config_path() -> str:
    return os.path.join(config_dir(), "config.json")


def _coerce(value: Any, default: Any) -> Any:
    """Coerce a string from the environment to the type of ``default``."""
    if not isinstance(value, str):
        return value
    if isinstance(default, bool):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


@dataclass(frozen=True)
class ClientConfig:
    # Endpoints
    api_url: str = "http://localhost:20002/graphql"
    auth_url: str = "http://localhost:20002/auth"
    storage_url: str = "http://localhost:20005/storage"
    # Object keys are stored under this prefix (e.g. "public/")
    storage_prefix: str = "public/"

    # Transport
    request_timeout: float = 30.0
    retry_attempts: int = 3
    retry_min_wait: float = 0.5
    retry_max_wait: float = 8.0
    chunk_size: int = 65_536

    # Workers
    api_workers: int = 4
    image_workers: int = 4

    # Relay behavior
    failure_policy: str = "revert"
    refresh_after_edit: bool = False
    delete_images_with_notes: bool = True

    # Logging
    log_level: str = "WARNING"

    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if self.failure_policy not in FAILURE_POLICIES:
            raise ValueError(
                f"Invalid failure_policy '{self.failure_policy}'. "
                f"Must be one of: {FAILURE_POLICIES}"
            )
        if self.image_workers < 1 or self.api_workers < 1:
            raise ValueError("Worker counts must be at least 1")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

    @classmethod
    def load(cls, path: Optional[str] = None, **overrides: Any) -> "ClientConfig":
        """Build a config from defaults, the config file, the environment and overrides."""
        values: Dict[str, Any] = {}
        known = {f.name: f for f in fields(cls) if f.name != "extra"}
        defaults = cls()

        file_values = load_config_file(path)
        extra = {k: v for k, v in file_values.items() if k not in known}
        for name in known:
            if name in file_values:
                values[name] = file_values[name]
            env = os.getenv(f"CLOUDNOTES_{name.upper()}")
            if env is not None:
                values[name] = _coerce(env, getattr(defaults, name))
        values.update({k: v for k, v in overrides.items() if v is not None})
        LOGGER.debug("Resolved config keys: %s", sorted(values))
        return cls(extra=extra, **values)

    def with_overrides(self, **overrides: Any) -> "ClientConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config_file(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the JSON config file, returning an empty dict if it is missing or broken."""
    path = path or config_path()
    try:
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                return data
            LOGGER.warning("Ignoring config file %s: not a JSON object", path)
    except (json.JSONDecodeError, OSError) as exc:
        LOGGER.warning("Could not load config file %s: %s", path, exc)
    return {}


def save_config_file(data: Dict[str, Any], path: Optional[str] = None) -> None:
    """Write the JSON config file with restrictive permissions."""
    path = path or config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    os.chmod(path, 0o600)
