"""Balanced-delimiter extraction of the first JSON structure in free text."""

from __future__ import annotations

from typing import Optional

from prdforge.recovery.scanner import scan

OPENERS = "{["
CLOSERS: dict[str, str] = {"{": "}", "[": "]"}


def find_json_start(text: str) -> tuple[int, Optional[str]]:
    """Locate whichever of ``{`` or ``[`` appears first in *text*.

    Returns:
        ``(index, open_char)``, or ``(-1, None)`` when neither occurs.
    """
    brace = text.find("{")
    bracket = text.find("[")
    if brace == -1 and bracket == -1:
        return -1, None
    if bracket == -1 or (brace != -1 and brace < bracket):
        return brace, "{"
    return bracket, "["


def extract_balanced(text: str, open_char: str) -> Optional[str]:
    """Return the span from the first *open_char* to its matching closer.

    Delimiters inside string literals are ignored.  Only the chosen pair is
    counted, so ``[`` inside an object does not disturb ``{`` matching.

    Args:
        text: Text that may contain a JSON structure.
        open_char: ``"{"`` or ``"["``.

    Returns:
        The balanced substring, or ``None`` when the structure never closes
        (the text was cut off) or *open_char* does not occur.

    Raises:
        ValueError: If *open_char* is not a JSON structure opener.
    """
    if open_char not in CLOSERS:
        raise ValueError(f"open_char must be one of {OPENERS!r}, got {open_char!r}")

    start = text.find(open_char)
    if start == -1:
        return None

    close_char = CLOSERS[open_char]
    segment = text[start:]
    depth = 0
    for index, char, state in scan(segment):
        if state.in_string:
            continue
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return segment[: index + 1]
    return None
