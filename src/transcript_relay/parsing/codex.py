"""Parser for Codex CLI transcript entries.

Codex has used two layouts over time:

* flat messages: ``{"type": "message", "role": ..., "content": ...}``
* enveloped items: ``{"type": "response_item", "payload": {"type": "message", ...}}``

In both, content is an arbitrarily nested structure, so text is gathered
with the recursive collector rather than a fixed block schema.
"""

from __future__ import annotations

import logging
from typing import Any

from ..models import NormalizedMessage, Role
from .text_extraction import collect_texts, entry_timestamp, join_texts

logger = logging.getLogger(__name__)

ENVELOPE_TYPE = "response_item"
MESSAGE_TYPE = "message"


def _flat_message(entry: dict[str, Any]) -> NormalizedMessage | None:
    content = join_texts(collect_texts(entry["content"]))
    if not content:
        logger.debug(f"No text in flat message entry: {entry!r:.200}")
        return None

    role = Role.ASSISTANT if entry["role"] == "assistant" else Role.USER
    return NormalizedMessage(role=role, content=content, timestamp=entry_timestamp(entry))


def _enveloped_message(entry: dict[str, Any]) -> NormalizedMessage | None:
    payload = entry.get("payload")
    if not isinstance(payload, dict) or payload.get("type") != MESSAGE_TYPE:
        return None

    role = payload.get("role")
    if role not in ("user", "assistant"):
        return None

    content = join_texts(collect_texts(payload.get("content")))
    if not content:
        logger.debug(f"No text in response_item payload: {payload!r:.200}")
        return None

    return NormalizedMessage(role=Role(role), content=content, timestamp=entry_timestamp(entry))


def parse_codex_entry(entry: Any) -> NormalizedMessage | None:
    """Convert a Codex entry (flat or enveloped) into a NormalizedMessage."""
    if not isinstance(entry, dict):
        return None

    entry_type = entry.get("type")
    if entry_type == MESSAGE_TYPE and entry.get("role") and "content" in entry:
        return _flat_message(entry)
    if entry_type == ENVELOPE_TYPE:
        return _enveloped_message(entry)
    return None
