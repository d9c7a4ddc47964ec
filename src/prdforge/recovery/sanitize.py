"""Escaping of raw control characters inside JSON string literals."""

from __future__ import annotations

from prdforge.recovery.scanner import scan

_NAMED_ESCAPES: dict[str, str] = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}


def escape_control_char(char: str) -> str:
    """Return the JSON escape sequence for a control character."""
    named = _NAMED_ESCAPES.get(char)
    if named is not None:
        return named
    return f"\\u{ord(char):04x}"


def sanitize_control_chars(text: str) -> str:
    """Escape control characters inside strings and drop dangling commas.

    Code points below 0x20 that appear inside a string literal become their
    JSON escapes (``\\n``, ``\\t``, ... or ``\\u00XX``).  Characters outside
    string literals pass through unchanged, except that a comma followed
    only by whitespace before ``}`` or ``]`` is removed.  Applying the
    function to its own output changes nothing.

    Args:
        text: JSON-like text, typically an extracted span.

    Returns:
        The sanitized text.
    """
    out: list[str] = []
    pending_commas: list[int] = []

    for _, char, state in scan(text):
        if state.in_string:
            if ord(char) >= 0x20:
                out.append(char)
            elif state.escape_next:
                # The backslash is already in the output: "\<newline>" -> "\n".
                out.append(escape_control_char(char)[1:])
            else:
                out.append(escape_control_char(char))
            continue

        if char in "}]" and pending_commas:
            for index in reversed(pending_commas):
                del out[index]
            pending_commas.clear()
        elif char == ",":
            pending_commas.append(len(out))
        elif not char.isspace():
            pending_commas.clear()
        out.append(char)

    return "".join(out)
