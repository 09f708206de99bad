"""Configuration loading for the CLI.

Values come from (lowest to highest precedence) built-in defaults, a YAML
config file, ``VERSIONTRIM_*`` environment variables and command-line options.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from versiontrim.store.s3 import DEFAULT_SYSTEM_PREFIXES
from versiontrim.trim.state import STATE_FILENAME

logger = logging.getLogger(__name__)

ENV_PREFIX = "VERSIONTRIM_"
CONFIG_ENV = "VERSIONTRIM_CONFIG"
DEFAULT_STORAGE_PATH = str(Path.home() / ".versiontrim")


@dataclass
class Config:
    """CLI configuration."""

    older_than_days: int = 45
    batch_percent: int = 25
    max_batch_minutes: int = 5
    version_batch_size: int = 50
    chunk_pause_ms: int = 250
    max_retry_attempts: int = 5
    auto_continue: bool = False
    bypass_batching: bool = False
    storage_path: str = DEFAULT_STORAGE_PATH
    aws_profile: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    policy_bucket: Optional[str] = None
    policy_key: str = "retention-policy.json"
    system_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_SYSTEM_PREFIXES))
    log_level: str = "INFO"
    action_log: Optional[str] = None
    size_log: Optional[str] = None
    event_log: Optional[str] = None

    @property
    def state_file(self) -> str:
        return str(Path(self.storage_path).expanduser() / STATE_FILENAME)

    @property
    def audit_dir(self) -> str:
        return str(Path(self.storage_path).expanduser() / "audit-logs")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load configuration from file and environment.

        Args:
            path: Config file (default: $VERSIONTRIM_CONFIG or ~/.versiontrim/config.yaml)

        Returns:
            Config instance

        Raises:
            ValueError: If the file is not a YAML mapping or holds unknown keys
        """
        config = cls()

        config_path = Path(path or os.environ.get(CONFIG_ENV) or Path(DEFAULT_STORAGE_PATH) / "config.yaml")
        if config_path.exists():
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Config file {config_path} must contain a mapping")
            config.update(data)
            logger.debug(f"Loaded config from {config_path}")

        config.update(cls._from_env())
        return config

    @classmethod
    def _from_env(cls) -> dict[str, str]:
        values = {}
        for f in fields(cls):
            env_name = ENV_PREFIX + f.name.upper()
            if env_name in os.environ:
                values[f.name] = os.environ[env_name]
        return values

    def update(self, values: dict[str, Any]) -> None:
        """Apply overrides, converting strings to each field's type.

        None values are ignored so unset CLI options keep the loaded value.
        """
        known = {f.name: f for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                raise ValueError(f"Unknown config key: {key}")
            if value is None:
                continue
            setattr(self, key, self._coerce(key, getattr(self, key), value))

    @staticmethod
    def _coerce(key: str, current: Any, value: Any) -> Any:
        if not isinstance(value, str):
            return value

        if isinstance(current, bool):
            return value.strip().lower() in ("1", "true", "yes", "on")
        if isinstance(current, int):
            try:
                return int(value)
            except ValueError:
                raise ValueError(f"Config value for {key} must be an integer, got '{value}'")
        if isinstance(current, list):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value
