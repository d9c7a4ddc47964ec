"""Single-pass string-literal scanner shared by every recovery stage.

The scanner answers one question per character: is the cursor inside a JSON
string literal, and is the next character escaped?  Bracket counting, comma
tracking and control-character rewriting all build on the state it yields,
so the rule lives in exactly one place.

Example::

    for index, char, state in scan('{"a": "}"}'):
        if not state.in_string and char == "}":
            ...
"""

from __future__ import annotations

from typing import Iterator, NamedTuple


class ScanState(NamedTuple):
    """Immutable snapshot of the scanner state before a character."""

    in_string: bool = False
    escape_next: bool = False


class Scanner:
    """Iterate over *text* yielding ``(index, char, state_before_char)``.

    Rules, applied in order to every character:

    1. If ``escape_next`` is set, the character is literal; the flag clears.
    2. Else a backslash inside a string sets ``escape_next``.
    3. Else a double quote toggles ``in_string``.

    After iteration, :attr:`state` holds the state after the last character,
    which tells callers whether the text ended inside a string.  A scanner is
    single-use; state always starts at the beginning of *text*.
    """

    def __init__(self, text: str) -> None:
        self._text = text
        self._state = ScanState()

    @property
    def state(self) -> ScanState:
        """State after the most recently consumed character."""
        return self._state

    def __iter__(self) -> Iterator[tuple[int, str, ScanState]]:
        in_string = False
        escape_next = False
        for index, char in enumerate(self._text):
            before = ScanState(in_string, escape_next)
            if escape_next:
                escape_next = False
            elif char == "\\" and in_string:
                escape_next = True
            elif char == '"':
                in_string = not in_string
            self._state = ScanState(in_string, escape_next)
            yield index, char, before


def scan(text: str) -> Iterator[tuple[int, str, ScanState]]:
    """Shortcut for ``iter(Scanner(text))``."""
    return iter(Scanner(text))


def final_state(text: str) -> ScanState:
    """Return the scanner state after consuming all of *text*."""
    scanner = Scanner(text)
    for _ in scanner:
        pass
    return scanner.state
