"""Pull the JSON object out of a model reply, tolerating fences and chatter."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def extract_json_object(text: str | None) -> dict[str, Any] | None:
    """Return the first JSON object found in *text*, or ``None``.

    Order of attempts:
    1. ``json.loads`` on the whole reply (with a markdown fence removed).
    2. Scan for each ``{`` and parse the brace-balanced span starting there.

    Top-level arrays and scalars are not objects and yield ``None``.
    """
    if not text or not text.strip():
        return None

    stripped = text.strip()
    fenced = _FENCE_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1)

    try:
        parsed = json.loads(stripped)
    except (json.JSONDecodeError, ValueError):
        parsed = None
    else:
        return parsed if isinstance(parsed, dict) else None

    for i, ch in enumerate(stripped):
        if ch != "{":
            continue
        candidate = _balanced_span(stripped, i)
        if candidate is None:
            continue
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.debug("No JSON object found in reply: %s", stripped[:200])
    return None


def _balanced_span(text: str, start: int) -> str | None:
    """Slice from *start* to its matching ``}``; strings are skipped."""
    depth = 0
    in_string = False
    escape = False

    for i in range(start, len(text)):
        ch = text[i]

        if escape:
            escape = False
            continue

        if ch == "\\":
            if in_string:
                escape = True
            continue

        if ch == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None
