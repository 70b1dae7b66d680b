"""Text extraction helpers shared by the transcript parsers.

All functions here are pure: they take decoded JSON values and return
strings or lists of strings without touching any state.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

logger = logging.getLogger(__name__)

# Child keys searched, in order, after an object's own "text" key.
NESTED_TEXT_KEYS = ("content", "children", "elements", "value", "body")

MAX_TEXT_DEPTH = 32


def utc_now_iso() -> str:
    """Return the current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def entry_timestamp(entry: dict[str, Any]) -> str:
    """Return the entry's timestamp, or the current time if it has none."""
    timestamp = entry.get("timestamp")
    if isinstance(timestamp, str) and timestamp:
        return timestamp
    return utc_now_iso()


def stringify_scalar(value: bool | int | float) -> str:
    """Render a JSON number or boolean as JavaScript's ``String()`` would.

    Numbers are treated as IEEE doubles and laid out with the ECMAScript
    Number-to-String rules: plain digits for magnitudes in [1e-6, 1e21),
    ``1e+21`` / ``1.5e-7`` style exponents outside that range, and
    ``Infinity`` for values that overflow a double.
    """
    if isinstance(value, bool):
        return "true" if value else "false"

    try:
        number = float(value)
    except OverflowError:
        number = math.inf if value > 0 else -math.inf

    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number == 0:
        return "0"
    if number < 0:
        return "-" + stringify_scalar(-number)

    # repr() yields the shortest digits that round-trip, as ECMAScript requires.
    _, digit_tuple, exponent = Decimal(repr(number)).normalize().as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = exponent + k  # number == 0.<digits> * 10**n

    if k <= n <= 21:
        return digits + "0" * (n - k)
    if 0 < n <= 21:
        return digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return "0." + "0" * -n + digits

    e = n - 1
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{mantissa}e{'+' if e > 0 else '-'}{abs(e)}"


def coerce_block_text(value: Any) -> str:
    """Coerce the ``text`` field of a content block to a string.

    Strings pass through, numbers and booleans are stringified, objects and
    arrays are serialized as compact JSON. Anything else becomes ``""``.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool | int | float):
        return stringify_scalar(value)
    if isinstance(value, dict | list):
        try:
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError):
            return ""
    return ""


def collect_texts(value: Any, depth: int = 0) -> list[str]:
    """Recursively collect text fragments from an arbitrary JSON value.

    Strings are collected verbatim, numbers and booleans stringified, lists
    walked element by element. Objects contribute their ``text`` key first,
    then each of ``NESTED_TEXT_KEYS`` that is present.

    Args:
        value: Decoded JSON value.
        depth: Current nesting depth; values deeper than ``MAX_TEXT_DEPTH``
            contribute nothing.

    Returns:
        Fragments in document order (not yet trimmed or filtered).
    """
    if depth > MAX_TEXT_DEPTH:
        logger.debug(f"Text extraction stopped at depth {depth}")
        return []

    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, bool | int | float):
        return [stringify_scalar(value)]

    collected: list[str] = []
    if isinstance(value, list):
        for item in value:
            collected.extend(collect_texts(item, depth + 1))
    elif isinstance(value, dict):
        if "text" in value:
            collected.extend(collect_texts(value["text"], depth + 1))
        for key in NESTED_TEXT_KEYS:
            if key in value:
                collected.extend(collect_texts(value[key], depth + 1))
    return collected


def join_texts(fragments: list[str]) -> str:
    """Trim fragments, drop empty ones, and join the rest with newlines."""
    return "\n".join(text for text in (fragment.strip() for fragment in fragments) if text)
