"""Pull a JSON object out of loosely formatted model output.

Models wrap JSON in markdown fences or prose despite being asked not to.
``extract_json_object`` finds the first balanced ``{...}`` region, skipping
braces inside string literals, and parses only that region.
"""

from __future__ import annotations

import json
from typing import Any, Optional


def _balanced_region(text: str, start: int) -> Optional[str]:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def extract_json_object(text: Any) -> Optional[dict[str, Any]]:
    """
    First JSON object embedded in ``text``.

    Returns None when there is no opening brace, the region never closes,
    it fails to parse, or it parses to something other than an object.

    Usage:
        extract_json_object('```json\\n{"en": "Hi"}\\n```') -> {"en": "Hi"}
    """
    if not isinstance(text, str):
        return None
    start = text.find("{")
    if start < 0:
        return None
    region = _balanced_region(text, start)
    if region is None:
        return None
    try:
        parsed = json.loads(region)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
