"""Parser for Claude Code transcript entries.

Claude Code writes one entry per line with a ``type`` of ``user`` or
``assistant`` and the turn itself nested under ``message``. Content is
either a plain string or a list of typed blocks, of which only ``text``
blocks are relayed (tool calls and tool results are dropped).
"""

from __future__ import annotations

import logging
from typing import Any

from ..models import NormalizedMessage, Role
from .text_extraction import coerce_block_text, entry_timestamp

logger = logging.getLogger(__name__)

_ROLES = {"user": Role.USER, "assistant": Role.ASSISTANT}


def _text_blocks(blocks: list[Any]) -> list[str]:
    """Return the non-blank text of every ``text`` block, in order."""
    texts = []
    for block in blocks:
        if not isinstance(block, dict) or block.get("type") != "text":
            continue
        text = coerce_block_text(block.get("text"))
        if text.strip():
            texts.append(text)
    return texts


def extract_message_text(content: Any) -> str | None:
    """Extract relayable text from a message's ``content`` field.

    Args:
        content: A string or a list of content blocks.

    Returns:
        The text, or None if nothing relayable is present.
    """
    if isinstance(content, str):
        return content.strip() or None

    if isinstance(content, list):
        texts = _text_blocks(content)
        if texts:
            return "\n".join(texts)

    return None


def parse_claude_code_entry(entry: Any) -> NormalizedMessage | None:
    """Convert a Claude Code entry into a NormalizedMessage.

    Returns:
        The message, or None if the entry is not a user/assistant turn with
        text content.
    """
    if not isinstance(entry, dict):
        return None

    role = _ROLES.get(entry.get("type"))
    message = entry.get("message")
    if role is None or not isinstance(message, dict) or not message.get("content"):
        return None

    content = extract_message_text(message["content"])
    if content is None:
        logger.debug(f"Skipping {role.value} entry without text content")
        return None

    return NormalizedMessage(role=role, content=content, timestamp=entry_timestamp(entry))
