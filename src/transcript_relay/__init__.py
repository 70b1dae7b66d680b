"""Live relay of AI coding-assistant transcripts to a remote collector.

This package tails a tree of append-only JSONL transcript files, extracts
user and assistant messages as they are appended, and forwards each one to
a collector endpoint without re-sending history on restart.

Key Components:
    - parsing: Pure per-line parsers for Claude Code and Codex transcripts
    - position_tracker: Persistent per-file consumed-line counts
    - change_detector: Polling directory watcher with backlog/live tagging
    - coordinator: Incremental per-file ingestion
    - forwarder: Duplicate suppression and single-attempt delivery
    - service: Session lifecycle tying the pieces together

Example:
    >>> from transcript_relay import RelayConfig, RelayService
    >>> config = RelayConfig(player_id="player-01", endpoint="https://collector/ingest")
    >>> service = RelayService(config)
    >>> await service.start()
"""

from __future__ import annotations

from .config import RelayConfig, load_config
from .change_detector import ChangeDetector
from .coordinator import IngestionCoordinator
from .errors import (
    ConfigError,
    DeliveryError,
    NoResponseError,
    RelayError,
    RemoteRejectedError,
    RequestSetupError,
)
from .forwarder import Forwarder, HttpTransport
from .models import (
    FileEvent,
    FileEventKind,
    NormalizedMessage,
    OutboundPayload,
    Role,
    SessionIdentity,
    SourceType,
)
from .parsing import parse_message
from .position_tracker import PositionTracker
from .service import RelayService

__all__ = [
    "ChangeDetector",
    "ConfigError",
    "DeliveryError",
    "FileEvent",
    "FileEventKind",
    "Forwarder",
    "HttpTransport",
    "IngestionCoordinator",
    "NoResponseError",
    "NormalizedMessage",
    "OutboundPayload",
    "PositionTracker",
    "RelayConfig",
    "RelayError",
    "RelayService",
    "RemoteRejectedError",
    "RequestSetupError",
    "Role",
    "SessionIdentity",
    "SourceType",
    "load_config",
    "parse_message",
]

__version__ = "1.0.0"
