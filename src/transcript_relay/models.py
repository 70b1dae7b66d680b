"""Data models for the transcript relay.

This module defines the value types passed between the pipeline stages:
normalized messages produced by the parsers, the outbound payload sent to
the collector, and the file events emitted by the change detector.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Speaker of a transcript message."""

    USER = "user"
    ASSISTANT = "assistant"


class SourceType(str, Enum):
    """Kind of assistant whose transcripts are being relayed.

    Attributes:
        CLAUDECODE: Claude Code session logs (nested-block entries).
        CODEX: Codex CLI session logs (flat and enveloped entries).
    """

    CLAUDECODE = "claudecode"
    CODEX = "codex"


class FileEventKind(str, Enum):
    """Kind of filesystem change reported by the change detector."""

    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass(frozen=True)
class NormalizedMessage:
    """One user or assistant turn extracted from a transcript line.

    Attributes:
        role: Who produced the message.
        content: Non-empty text; multiple fragments are joined with newlines.
        timestamp: ISO 8601 timestamp of the entry.
    """

    role: Role
    content: str
    timestamp: str


@dataclass(frozen=True)
class SessionIdentity:
    """Static identity attached to every outbound payload."""

    player_id: str
    source_type: SourceType


@dataclass(frozen=True)
class OutboundPayload:
    """Wire shape delivered to the collector.

    Attributes:
        player_id: Player identifier from the session config.
        source_type: Transcript source type from the session config.
        role: Message role.
        content: Message text.
        timestamp: Message timestamp.
    """

    player_id: str
    source_type: SourceType
    role: Role
    content: str
    timestamp: str

    @classmethod
    def from_message(
        cls, identity: SessionIdentity, message: NormalizedMessage
    ) -> OutboundPayload:
        """Build the payload for a message under the given session identity."""
        return cls(
            player_id=identity.player_id,
            source_type=identity.source_type,
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body sent to the collector."""
        return {
            "playerId": self.player_id,
            "type": self.source_type.value,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FileEvent:
    """A change observed on a watched transcript file.

    Attributes:
        kind: Added, changed or removed.
        path: Absolute path of the file.
        live: False for events emitted during the initial scan (backlog),
            True once the detector has signalled ready.
    """

    kind: FileEventKind
    path: str
    live: bool
