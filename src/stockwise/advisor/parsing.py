"""Decoding of raw provider text into a structured payload.

Providers are asked for bare JSON but often wrap it in code fences or
prose.  Decoding is lenient: anything that cannot be turned into a JSON
object becomes a ``DegradedResponse`` rather than an exception.
"""

from __future__ import annotations

import json
import re

from .models import DegradedResponse, ParsedResponse, RawResponse

_FENCE_RE = re.compile(r"```[a-zA-Z]*[ \t]*\n?|\n?[ \t]*```")


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers (```json ... ```) and surrounding whitespace."""
    return _FENCE_RE.sub("", text).strip()


def find_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` block in *text*, or None.

    Braces inside JSON string literals (including escaped quotes) are
    ignored when balancing.
    """
    start = text.find("{")
    if start == -1:
        return None

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


def decode_response(content: str | None) -> RawResponse:
    """Turn provider text into ``ParsedResponse`` or ``DegradedResponse``."""
    if not content or not content.strip():
        return DegradedResponse(reason="empty response", raw_content=content or "")

    cleaned = strip_code_fences(content)
    block = find_json_object(cleaned)
    if block is None:
        return DegradedResponse(reason="no JSON object found", raw_content=content)

    try:
        payload = json.loads(block)
    except json.JSONDecodeError as e:
        return DegradedResponse(reason=f"invalid JSON: {e.msg} at line {e.lineno}", raw_content=content)

    if not isinstance(payload, dict):
        return DegradedResponse(reason=f"expected a JSON object, got {type(payload).__name__}", raw_content=content)

    return ParsedResponse(payload=payload, raw_content=content)
