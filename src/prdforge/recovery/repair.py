"""Truncation repair and partial-array salvage.

All three functions target output that an upstream token limit cut short:

- :func:`repair_truncated` closes what is open (string, objects, arrays)
  after trimming an incomplete trailing key or value.
- :func:`extract_complete_objects` keeps only the array elements whose own
  braces balance and rebuilds a fresh array from them.
- :func:`salvage_open_array` applies that salvage to the array a cut-off
  left open, whether it is the document or a wrapper object's value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from prdforge.recovery.extract import CLOSERS, OPENERS
from prdforge.recovery.scanner import Scanner, ScanState, scan

_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_BARE_TAIL_RE = re.compile(r"[A-Za-z0-9.+\-]+$")
_PARTIAL_UNICODE_RE = re.compile(r"(\\+)u[0-9a-fA-F]{0,3}$")
_LITERALS = frozenset({"true", "false", "null"})
_EMPTY_OPENERS = OPENERS + " \t\r\n"


@dataclass
class _Profile:
    """Structural summary of a text, produced by one forward scan."""

    frames: list[str] = field(default_factory=list)
    frame_starts: list[int] = field(default_factory=list)
    state: ScanState = ScanState()
    last_comma: int = -1
    last_colon: int = -1
    last_string_start: int = -1


@dataclass
class RepairReport:
    """Repaired text plus the names of the repairs that were applied."""

    text: str
    actions: list[str] = field(default_factory=list)


def _profile(text: str) -> _Profile:
    profile = _Profile()
    scanner = Scanner(text)
    for index, char, state in scanner:
        if state.in_string:
            continue
        if char == '"':
            profile.last_string_start = index
        elif char in OPENERS:
            profile.frames.append(char)
            profile.frame_starts.append(index)
        elif char in "}]":
            if profile.frames and CLOSERS[profile.frames[-1]] == char:
                profile.frames.pop()
                profile.frame_starts.pop()
        elif char == ",":
            profile.last_comma = index
        elif char == ":":
            profile.last_colon = index
    profile.state = scanner.state
    return profile


def _close_string(text: str, state: ScanState) -> str:
    if state.escape_next:
        text = text[:-1]
    partial = _PARTIAL_UNICODE_RE.search(text)
    if partial is not None and len(partial.group(1)) % 2 == 1:
        text = text[: partial.end(1) - 1]
    return text + '"'


def _is_complete_literal(token: str) -> bool:
    return token in _LITERALS or _NUMBER_RE.fullmatch(token) is not None


def _dangling_key_start(text: str) -> int:
    """Index of a trailing object key that has no colon yet, or -1."""
    profile = _profile(text)
    if profile.state.in_string or not profile.frames or profile.frames[-1] != "{":
        return -1
    if profile.last_string_start == -1:
        return -1
    head = text[: profile.last_string_start].rstrip()
    return profile.last_string_start if head.endswith(("{", ",")) else -1


def _trim_incomplete_tail(text: str) -> str:
    """Drop a dangling comma, key, partial literal or empty opener.

    An opener is only ever left at the tail with nothing inside it, so it is
    dropped wherever it stands; a document that was nothing but openers
    trims down to the empty string and fails to parse.
    """
    while True:
        stripped = text.rstrip()
        if stripped.endswith(","):
            text = stripped[:-1]
            continue
        if stripped.endswith(":"):
            key_start = _profile(stripped).last_string_start
            text = stripped[:key_start] if key_start != -1 else stripped[:-1]
            continue
        if stripped.endswith('"'):
            key_start = _dangling_key_start(stripped)
            if key_start != -1:
                text = stripped[:key_start]
                continue
        if stripped and stripped[-1] in OPENERS:
            text = stripped.rstrip(_EMPTY_OPENERS)
            continue
        bare = _BARE_TAIL_RE.search(stripped)
        if bare is not None and not _is_complete_literal(bare.group()):
            text = stripped[: bare.start()]
            continue
        return stripped


def repair_with_report(text: str) -> RepairReport:
    """Repair truncated JSON and report which repairs were applied.

    See :func:`repair_truncated` for the rules.  The action names are
    ``closed_string``, ``cut_at_comma``, ``trimmed_tail`` and
    ``closed_frames:<closers>``.
    """
    repaired = text.strip()
    actions: list[str] = []

    profile = _profile(repaired)
    if profile.state.in_string:
        if profile.last_colon > profile.last_comma:
            repaired = _close_string(repaired, profile.state)
            actions.append("closed_string")
        elif profile.last_comma != -1:
            repaired = repaired[: profile.last_comma]
            actions.append("cut_at_comma")
        else:
            repaired = _close_string(repaired, profile.state)
            actions.append("closed_string")

    trimmed = _trim_incomplete_tail(repaired)
    if trimmed != repaired.rstrip():
        actions.append("trimmed_tail")
    repaired = trimmed

    frames = _profile(repaired).frames
    if frames:
        closers = "".join(CLOSERS[frame] for frame in reversed(frames))
        repaired += closers
        actions.append(f"closed_frames:{closers}")

    return RepairReport(text=repaired, actions=actions)


def repair_truncated(text: str) -> str:
    """Close a JSON structure that was cut off mid-output.

    1. If the text ends inside a string and a colon is more recent than the
       last comma, the cursor is inside a property value: the string is
       closed (dropping a dangling backslash or partial ``\\u`` escape).
       Otherwise the incomplete trailing key or element is discarded by
       cutting back to just before the last comma.  With no comma at all
       the string is simply closed.
    2. A trailing comma, dangling ``"key"`` or ``"key":``, partial bare
       literal such as ``tru`` or ``12.``, or an empty ``{`` or ``[`` is
       trimmed, repeatedly, so ``[{"ti`` trims to nothing at all.
    3. One closer is appended per still-open frame, last opened first.

    Args:
        text: JSON-like text whose structures may not all be closed.

    Returns:
        Text whose brackets balance.  Well-formed input is returned stripped
        but otherwise unchanged.
    """
    return repair_with_report(text).text


def _complete_object_spans(segment: str) -> tuple[list[str], bool]:
    """Complete ``{...}`` elements of the array opening *segment*.

    Also reports whether any object element was started at all.
    """
    spans: list[str] = []
    started = False
    object_depth = 0
    array_depth = 0
    object_start = -1

    for index, char, state in scan(segment):
        if state.in_string:
            continue
        if char == "{":
            if object_depth == 0:
                object_start = index
                started = True
            object_depth += 1
        elif char == "}":
            if object_depth == 0:
                continue
            object_depth -= 1
            if object_depth == 0 and object_start != -1:
                spans.append(segment[object_start : index + 1])
                object_start = -1
        elif object_depth == 0:
            if char == "[":
                array_depth += 1
            elif char == "]":
                array_depth -= 1
                if array_depth == 0:
                    break

    return spans, started


def extract_complete_objects(text: str) -> str:
    """Rebuild an array from its complete ``{...}`` elements only.

    Scanning starts at the first ``[`` and tracks object depth on its own;
    every element whose braces close back to depth zero is kept, and the
    partially written element at the end is dropped.  Scanning stops if the
    outer array closes.

    Args:
        text: Array-shaped JSON-like text, possibly cut off.

    Returns:
        A fresh array literal built from the complete elements, or *text*
        unchanged when no element completed.
    """
    array_start = text.find("[")
    if array_start == -1:
        return text

    spans, _ = _complete_object_spans(text[array_start:])
    if not spans:
        return text
    return "[" + ",".join(spans) + "]"


def _open_array_start(text: str) -> int:
    profile = _profile(text)
    frames, starts = profile.frames, profile.frame_starts
    if frames[:1] == ["["]:
        return starts[0]
    if frames[:2] == ["{", "["]:
        return starts[1]
    return -1


def salvage_open_array(text: str) -> str:
    """Cut a truncated document back to the complete elements of its open array.

    The array is the one still open where the text ends: either the
    document itself or a value of the top-level object, such as the list
    under ``{"features": [...``.  Text before the array is kept as is, so a
    wrapper object still needs its closing brace afterwards.  When object
    elements were started but none of them completed, the array becomes
    ``[]``.

    Args:
        text: JSON-like text, possibly cut off.

    Returns:
        The salvaged text, or *text* unchanged when no open array holds
        object elements.
    """
    array_start = _open_array_start(text)
    if array_start == -1:
        return text

    spans, started = _complete_object_spans(text[array_start:])
    if not started:
        return text
    return text[:array_start] + "[" + ",".join(spans) + "]"
