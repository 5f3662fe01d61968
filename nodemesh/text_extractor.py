"""
JSON extraction from free-text model output.

Gemini does not reliably honour "return only JSON": some responses are fenced
with ```json, some are bare objects surrounded by prose. extract_json() tries
the fence first, then the first balanced {...} span, and resolves every
parse failure to None.
"""

import re
import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)


def _first_brace_span(text: str) -> Optional[str]:
    """Return the first balanced {...} span, ignoring braces inside JSON strings."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
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
                return text[start:idx + 1]
    return None


def _parse_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(candidate.strip())
    except (json.JSONDecodeError, ValueError) as e:
        logger.debug(f"JSON candidate rejected: {e}")
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Pull a JSON object out of raw model output.

    Args:
        text: Raw response text (may be None or empty)

    Returns:
        Parsed dict, or None when no well-formed object is present
    """
    if not text:
        return None

    fence = _JSON_FENCE.search(text)
    if fence:
        parsed = _parse_object(fence.group(1))
        if parsed is not None:
            return parsed

    span = _first_brace_span(text)
    if span is None:
        return None

    parsed = _parse_object(span)
    if parsed is None:
        logger.warning(f"⚠️ Failed to parse JSON from model response: {text[:200]!r}")
    return parsed
