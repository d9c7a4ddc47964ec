"""Markdown code-fence removal for LLM responses."""

from __future__ import annotations

import re

from prdforge.recovery.scanner import scan

FENCE = "```"

# Optional language tag and the rest of the fence line, e.g. "json\n".
_FENCE_TAG_RE = re.compile(r"[A-Za-z0-9_+.\-]*[ \t]*\r?\n?")


def _find_fence(text: str) -> int:
    """Return the index of the first fence outside a string literal, or -1."""
    for index, char, state in scan(text):
        if char == "`" and not state.in_string and text.startswith(FENCE, index):
            return index
    return -1


def strip_fences(text: str) -> str:
    """Remove a markdown code fence wrapped around the payload.

    The opening fence may carry a language tag (```` ```json ````).  Fences
    inside JSON string literals are ignored.  When the opening fence never
    closes (the response was cut off), everything after it is returned so
    the repair stages still get a chance at it.

    Args:
        text: Raw LLM response text.

    Returns:
        The fenced content trimmed of surrounding whitespace, or *text*
        unchanged when it contains no fence.
    """
    opening = _find_fence(text)
    if opening == -1:
        return text

    body_start = opening + len(FENCE)
    tag = _FENCE_TAG_RE.match(text, body_start)
    if tag is not None:
        body_start = tag.end()
    body = text[body_start:]

    closing = _find_fence(body)
    if closing != -1:
        return body[:closing].strip()

    # Content with an unbalanced quote hides the closing fence from the
    # scanner; a fence at the very end is still a closing fence.
    trimmed = body.rstrip()
    if trimmed.endswith(FENCE):
        return trimmed[: -len(FENCE)].strip()
    return body.strip()
