"""Extract JSON from model text.

Models asked for JSON frequently wrap it in markdown code fences or add a
sentence around it. Callers get the decoded value or None, never an
exception; what None means (allow, approve, default route, fallback
missions) is each caller's policy.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


def _decode(text: Optional[str], open_char: str, close_char: str) -> Any:
    """Decode the whole cleaned text, else the outermost bracketed span."""
    if not text or not text.strip():
        return None

    cleaned = _FENCE_PATTERN.sub("", text).strip()

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Prose around the payload: fall back to the outermost brackets
    start = cleaned.find(open_char)
    end = cleaned.rfind(close_char)
    if start != -1 and end > start:
        try:
            return json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            pass

    logger.warning("JSON_REPLY_UNPARSEABLE", extra={"text_length": len(text)})
    return None


def parse_json_reply(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse the first JSON object out of a model reply.

    Args:
        text: Raw model text, possibly fenced with ```json ... ```

    Returns:
        The decoded object, or None when no JSON object can be decoded
    """
    parsed = _decode(text, "{", "}")
    if parsed is None:
        return None

    if not isinstance(parsed, dict):
        logger.warning(
            "JSON_REPLY_NOT_OBJECT",
            extra={"parsed_type": type(parsed).__name__},
        )
        return None

    return parsed


def parse_json_array_reply(text: Optional[str]) -> Optional[List[Any]]:
    """Parse a JSON array out of a model reply; None if there is none."""
    parsed = _decode(text, "[", "]")
    if parsed is None:
        return None

    if not isinstance(parsed, list):
        logger.warning(
            "JSON_REPLY_NOT_ARRAY",
            extra={"parsed_type": type(parsed).__name__},
        )
        return None

    return parsed
