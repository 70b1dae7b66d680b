"""Configuration for the transcript relay.

Settings come from a dataclass with sensible defaults, optionally loaded
from a YAML file and overridden by ``RELAY_*`` environment variables.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .models import SessionIdentity, SourceType

logger = logging.getLogger(__name__)

SOURCE_ROOTS: dict[SourceType, str] = {
    SourceType.CLAUDECODE: "~/.claude/projects",
    SourceType.CODEX: "~/.codex/sessions",
}

TRANSCRIPT_SUFFIX = ".jsonl"
POSITIONS_FILENAME = ".transcript-relay-positions.json"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_list(value: str) -> list[str]:
    return [token.strip() for token in value.split(",") if token.strip()]


# env var -> (field name, converter)
_ENV_FIELDS: dict[str, tuple[str, Any]] = {
    "RELAY_PLAYER_ID": ("player_id", str),
    "RELAY_SOURCE_TYPE": ("source_type", str),
    "RELAY_ROOT": ("root_path", str),
    "RELAY_ENDPOINT": ("endpoint", str),
    "RELAY_API_KEY": ("api_key", str),
    "RELAY_VERBOSE": ("verbose", _parse_bool),
    "RELAY_STATE_DIR": ("state_dir", str),
    "RELAY_POLL_INTERVAL": ("poll_interval_seconds", float),
    "RELAY_STABILITY_THRESHOLD": ("stability_threshold_seconds", float),
    "RELAY_REQUEST_TIMEOUT": ("request_timeout_seconds", float),
    "RELAY_LOG_LEVEL": ("log_level", str),
    "RELAY_LOG_DIR": ("log_dir", str),
    "RELAY_DEBUG": ("debug_components", _parse_list),
}


def _env_values(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect field values from the set ``RELAY_*`` variables."""
    values: dict[str, Any] = {}
    for var, (name, convert) in _ENV_FIELDS.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            values[name] = convert(raw)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {var}: {raw!r}") from e
    return values


def expand_user_path(path_value: str) -> Path:
    """Expand ``~`` and ``%USERPROFILE%`` and return an absolute path.

    Args:
        path_value: User-supplied path.

    Returns:
        Absolute, resolved path.
    """
    home = str(Path.home())
    normalized = path_value
    if normalized.startswith("~"):
        normalized = home + normalized[1:]
    normalized = normalized.replace("%USERPROFILE%", home)
    return Path(normalized).resolve()


@dataclass
class RelayConfig:
    """Configuration for one relay session.

    Attributes:
        player_id: Player identifier sent with every payload (required).
        source_type: Transcript source; selects the default root directory.
        root_path: Directory to watch; defaults to the source's root.
        endpoint: Collector URL. Empty means dry run (payloads are printed).
        api_key: Value for the ``x-api-key`` header, if any.
        verbose: Log at DEBUG and include failed message details.
        state_dir: Directory holding the position file.
        poll_interval_seconds: Seconds between directory polls.
        stability_threshold_seconds: Quiet period before a write is reported.
        stability_poll_interval_seconds: Poll interval while writes settle.
        request_timeout_seconds: Timeout for one delivery attempt.
        dedup_window_seconds: Window for suppressing identical content.
        log_level: Console log level.
        log_dir: Directory for the rotating JSON log file (optional).
        debug_components: Component names whose loggers run at DEBUG.
    """

    player_id: str
    source_type: SourceType = SourceType.CLAUDECODE
    root_path: str | None = None
    endpoint: str = ""
    api_key: str = ""
    verbose: bool = False
    state_dir: str = "."
    poll_interval_seconds: float = 0.5
    stability_threshold_seconds: float = 0.5
    stability_poll_interval_seconds: float = 0.1
    request_timeout_seconds: float = 10.0
    dedup_window_seconds: float = 0.5
    log_level: str = "INFO"
    log_dir: str | None = None
    debug_components: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.player_id or not str(self.player_id).strip():
            raise ConfigError("player_id is required")

        if not isinstance(self.source_type, SourceType):
            try:
                self.source_type = SourceType(str(self.source_type).lower())
            except ValueError:
                choices = ", ".join(s.value for s in SourceType)
                raise ConfigError(
                    f"Invalid source type '{self.source_type}'. Allowed: {choices}"
                ) from None

        for name in (
            "poll_interval_seconds",
            "stability_threshold_seconds",
            "stability_poll_interval_seconds",
            "request_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.dedup_window_seconds < 0:
            raise ConfigError("dedup_window_seconds must not be negative")

        if self.verbose and self.log_level.upper() == "INFO":
            self.log_level = "DEBUG"
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Unknown log level: {self.log_level}")

    @property
    def resolved_root(self) -> Path:
        """Absolute directory being watched."""
        return expand_user_path(self.root_path or SOURCE_ROOTS[self.source_type])

    @property
    def state_file(self) -> Path:
        """Path of the persisted position table."""
        return expand_user_path(self.state_dir) / POSITIONS_FILENAME

    @property
    def identity(self) -> SessionIdentity:
        return SessionIdentity(player_id=self.player_id, source_type=self.source_type)

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **defaults: Any
    ) -> RelayConfig:
        """Build a config from ``RELAY_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            **defaults: Field values used when the variable is unset.

        Raises:
            ConfigError: If a value is missing or invalid.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = dict(defaults)
        values.update(_env_values(env))
        values.setdefault("player_id", "")
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> RelayConfig:
        """Load a config from a YAML mapping of field names.

        Args:
            path: YAML file to read.
            **overrides: Field values that take precedence over the file.

        Raises:
            ConfigError: If the file is missing, unparsable or has unknown keys.
        """
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse configuration YAML: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {config_path}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        logger.debug(f"Loaded relay configuration from {config_path}")
        data.update(overrides)
        data.setdefault("player_id", "")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dict with the API key masked."""
        return {
            "player_id": self.player_id,
            "source_type": self.source_type.value,
            "root_path": str(self.resolved_root),
            "endpoint": self.endpoint,
            "api_key": "set" if self.api_key else "",
            "verbose": self.verbose,
            "state_file": str(self.state_file),
            "poll_interval_seconds": self.poll_interval_seconds,
            "stability_threshold_seconds": self.stability_threshold_seconds,
            "request_timeout_seconds": self.request_timeout_seconds,
            "log_level": self.log_level,
            "log_dir": self.log_dir,
            "debug_components": list(self.debug_components),
        }


def load_config(environ: Mapping[str, str] | None = None) -> RelayConfig:
    """Build the launcher config: YAML from ``RELAY_CONFIG``, then env vars.

    Environment variables take precedence over values from the YAML file.
    """
    env = os.environ if environ is None else environ
    config_file = env.get("RELAY_CONFIG")
    if config_file:
        return RelayConfig.from_yaml(expand_user_path(config_file), **_env_values(env))
    return RelayConfig.from_env(env)
