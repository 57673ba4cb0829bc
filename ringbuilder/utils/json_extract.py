"""Pull a JSON object out of a model's free-text reply.

Claude is asked for bare JSON but may still wrap it in a code fence or
surround it with commentary. Handles:

1. Pure JSON: '{"style": "Halo"}'
2. Fenced: '```json\\n{"style": "Halo"}\\n```'
3. Preamble/postamble: 'Here is my analysis: {"style": "Halo"} Hope it helps.'

Truncated or malformed objects yield None rather than raising.
"""

from __future__ import annotations

import json
from typing import Any


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, with or without language tag."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = text.removeprefix("```")
    for lang in ("json", "JSON"):
        text = text.removeprefix(lang)
    text = text.lstrip("\n")
    return text.rsplit("```", 1)[0].strip()


def _balanced_object_end(text: str, start: int) -> int | None:
    """Index of the brace closing the object opened at ``start``."""
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if in_string:
            if ch == "\\":
                escape_next = True
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
                return i
    return None


def extract_first_json_object(text: str | None) -> dict[str, Any] | None:
    """Parse the first balanced ``{...}`` span in ``text``.

    Returns None when there is no object, it never closes, or it is not
    valid JSON. A top-level value that is not an object also yields None.
    """
    if not text:
        return None
    text = strip_code_fence(text)

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        pass
    else:
        return parsed if isinstance(parsed, dict) else None

    start = text.find("{")
    while start != -1:
        end = _balanced_object_end(text, start)
        if end is None:
            return None
        try:
            parsed = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        return parsed if isinstance(parsed, dict) else None
    return None
