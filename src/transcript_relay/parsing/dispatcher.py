"""Line-level dispatch across the transcript parsers."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from ..models import NormalizedMessage
from .claude_code import parse_claude_code_entry
from .codex import parse_codex_entry

ParserFunction = Callable[[Any], NormalizedMessage | None]

# Tried in order; the first parser returning a message wins.
PARSERS: tuple[ParserFunction, ...] = (
    parse_claude_code_entry,
    parse_codex_entry,
)

DEBUG_MARKER = "[DEBUG]"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_message(line: str) -> NormalizedMessage | None:
    """Parse one JSONL line into a NormalizedMessage.

    Lines that are blank, debug output, not JSON, partially written, or of
    an unrecognized shape all yield None. This function never raises for
    bad input and has no side effects.

    Args:
        line: Raw line from a transcript file.

    Returns:
        The first message produced by ``PARSERS``, or None.
    """
    trimmed = line.strip()
    if not trimmed or trimmed.startswith(DEBUG_MARKER) or trimmed[0] not in "{[":
        return None

    try:
        entry = json.loads(trimmed, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return None

    for parser in PARSERS:
        message = parser(entry)
        if message is not None:
            return message
    return None
