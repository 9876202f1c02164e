"""
Best-effort extraction of the human-readable answer from an agent response.

Response shapes are not fixed: the final ``response`` event carries ``{"content": [...]}`` while
other payloads nest the interesting part under ``response`` or ``data``.  The search is depth-first
and the first match wins:

1. ``content`` list of parts with a ``text`` field (joined with newlines)
2. a non-blank ``text`` field
3. whatever is found under ``response``
4. whatever is found under ``data``

Lists are searched left to right; a blank string never counts as an answer.
"""

from typing import (
    Any,
    List,
    Optional,
)


def _content_text(content: List[Any]) -> Optional[str]:
    parts = [
        entry["text"]
        for entry in content
        if isinstance(entry, dict) and isinstance(entry.get("text"), str) and entry["text"]
    ]
    return "\n".join(parts) if parts else None


def extract_answer_text(payload: Any) -> Optional[str]:
    """Return the first usable answer text inside *payload*, or ``None``."""
    if payload is None:
        return None

    if isinstance(payload, str):
        return payload if payload.strip() else None

    if isinstance(payload, list):
        for item in payload:
            nested = extract_answer_text(item)
            if nested:
                return nested
        return None

    if isinstance(payload, dict):
        content = payload.get("content")
        if isinstance(content, list):
            joined = _content_text(content)
            if joined:
                return joined

        text = payload.get("text")
        if isinstance(text, str) and text.strip():
            return text

        for key in ("response", "data"):
            if payload.get(key):
                nested = extract_answer_text(payload[key])
                if nested:
                    return nested

    # numbers, booleans and anything else carry no answer
    return None
