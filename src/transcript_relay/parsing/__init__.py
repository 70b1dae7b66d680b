"""Transcript line parsers.

Each parser is a plain function from one decoded JSON value to a
``NormalizedMessage`` or None; ``parse_message`` tries them in order.
"""

from __future__ import annotations

from .claude_code import parse_claude_code_entry
from .codex import parse_codex_entry
from .dispatcher import PARSERS, parse_message
from .text_extraction import MAX_TEXT_DEPTH, collect_texts, join_texts, utc_now_iso

__all__ = [
    "PARSERS",
    "MAX_TEXT_DEPTH",
    "collect_texts",
    "join_texts",
    "parse_claude_code_entry",
    "parse_codex_entry",
    "parse_message",
    "utc_now_iso",
]
