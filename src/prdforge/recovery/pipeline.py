"""Ordered fallback strategies that turn LLM text into a parsed JSON value.

Each strategy transforms the text and then attempts a standard
:func:`json.loads`.  Strategies run from least to most invasive and the
first one that yields a JSON object or array wins:

====  ==================  ==================================================
  #   name                transform
====  ==================  ==================================================
  1   ``direct``          fence-stripped text
  2   ``extract``         first balanced ``{...}`` / ``[...]`` span
  3   ``sanitize``        control characters escaped in the span
  4   ``repair``          truncation repaired on the sanitized span
  5   ``salvage``         complete elements of the array left open
  6   ``salvage_repair``  salvage, then close remaining frames
====  ==================  ==================================================

When the cut-off lands inside an array of objects, either the document
itself or the list under a wrapper object, the salvage strategies run
before the bare repair.  An element cut off mid-way is dropped instead of
being completed, and an array whose first element never closed recovers as
``[]``.
Strategy numbers identify the transform, not the attempt order.

Usage::

    from prdforge.recovery import recover

    result = recover(llm_text, wrapper_keys=("features",))
    if result.success:
        print(result.strategy_index, result.value)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional, Sequence

from prdforge.recovery.events import (
    EventBuilder,
    RecoveryEvent,
    RecoveryListener,
    log_event,
)
from prdforge.recovery.extract import extract_balanced, find_json_start
from prdforge.recovery.fences import strip_fences
from prdforge.recovery.repair import (
    extract_complete_objects,
    repair_with_report,
    salvage_open_array,
)
from prdforge.recovery.sanitize import sanitize_control_chars

logger = logging.getLogger(__name__)

STRATEGY_DIRECT = 1
STRATEGY_EXTRACT = 2
STRATEGY_SANITIZE = 3
STRATEGY_REPAIR = 4
STRATEGY_SALVAGE = 5
STRATEGY_SALVAGE_REPAIR = 6

STRATEGY_NAMES: dict[int, str] = {
    STRATEGY_DIRECT: "direct",
    STRATEGY_EXTRACT: "extract",
    STRATEGY_SANITIZE: "sanitize",
    STRATEGY_REPAIR: "repair",
    STRATEGY_SALVAGE: "salvage",
    STRATEGY_SALVAGE_REPAIR: "salvage_repair",
}

_PREVIEW_LEN = 500


class FailurePolicy(str, Enum):
    """What a caller does when every strategy fails.

    EMPTY: Treat the response as containing no records.
    RAISE: Raise :class:`~prdforge.recovery.exceptions.RecoveryError`.
    """

    EMPTY = "empty"
    RAISE = "raise"


@dataclass(frozen=True)
class StrategyAttempt:
    """The text one strategy tried to parse, and why it failed (if it did)."""

    index: int
    name: str
    text: str
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class StrategyResult:
    """Outcome of :func:`recover`.

    Attributes:
        success: Whether any strategy produced a JSON object or array.
        value: The parsed value, unwrapped from a wrapper object when one of
            the requested wrapper keys held a list.  ``None`` on failure.
        strategy_index: 1-based index of the winning strategy, 0 on failure.
        document: The top-level parsed value before unwrapping.
        attempts: Every attempt made, in order, for diagnostics.
    """

    success: bool
    value: Any = None
    strategy_index: int = 0
    document: Any = None
    attempts: tuple[StrategyAttempt, ...] = ()

    @property
    def strategy_name(self) -> Optional[str]:
        """Name of the winning strategy, or ``None`` on failure."""
        return STRATEGY_NAMES.get(self.strategy_index)


# ---------------------------------------------------------------------------
# Candidate generation
# ---------------------------------------------------------------------------


def _candidates(
    stripped: str,
) -> Iterator[tuple[int, str, Optional[list[str]]]]:
    """Yield ``(strategy_index, text, repair_actions)`` lazily, in attempt order.

    Later candidates are only computed if earlier ones failed to parse.
    """
    yield STRATEGY_DIRECT, stripped, None

    start, open_char = find_json_start(stripped)
    if open_char is None:
        return

    balanced = extract_balanced(stripped, open_char)
    if balanced is not None:
        yield STRATEGY_EXTRACT, balanced, None
    span = balanced if balanced is not None else stripped[start:]

    sanitized = sanitize_control_chars(span)
    yield STRATEGY_SANITIZE, sanitized, None

    if balanced is None:
        salvaged = salvage_open_array(sanitized)
    elif open_char == "[":
        salvaged = extract_complete_objects(sanitized)
    else:
        salvaged = sanitized
    if salvaged != sanitized:
        yield STRATEGY_SALVAGE, salvaged, None
        report = repair_with_report(salvaged)
        yield STRATEGY_SALVAGE_REPAIR, report.text, report.actions

    report = repair_with_report(sanitized)
    yield STRATEGY_REPAIR, report.text, report.actions


def _parse(text: str) -> Any:
    """Parse *text* as a JSON object or array; raise ValueError otherwise."""
    try:
        value = json.loads(text)
    except RecursionError as exc:
        raise ValueError("JSON nesting too deep") from exc
    if not isinstance(value, (dict, list)):
        raise ValueError(f"top-level JSON value is a {type(value).__name__}, not an object or array")
    return value


def _unwrap(value: Any, wrapper_keys: Sequence[str]) -> Any:
    if isinstance(value, dict):
        for key in wrapper_keys:
            inner = value.get(key)
            if isinstance(inner, list):
                return inner
    return value


def _emit(listener: RecoveryListener, event: RecoveryEvent) -> None:
    try:
        listener(event)
    except Exception as exc:
        logger.warning("Recovery listener failed on event %s: %s", event.type, exc)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def recover(
    raw_text: str,
    *,
    wrapper_keys: Sequence[str] = (),
    listener: RecoveryListener | None = None,
) -> StrategyResult:
    """Recover a JSON object or array from unreliable LLM output.

    Never raises on malformed input; total failure is reported through
    ``StrategyResult.success``.

    Args:
        raw_text: The verbatim LLM response.
        wrapper_keys: Keys to look under when the top-level value is an
            object wrapping the expected array, e.g. ``("features",)``.
        listener: Receives :class:`RecoveryEvent` diagnostics.  Defaults to
            :func:`~prdforge.recovery.events.log_event`.

    Returns:
        A :class:`StrategyResult`.
    """
    emit_to = listener or log_event
    attempts: list[StrategyAttempt] = []

    if raw_text and raw_text.strip():
        tried: set[str] = set()
        for index, text, repair_actions in _candidates(strip_fences(raw_text)):
            if text in tried:
                continue
            tried.add(text)

            name = STRATEGY_NAMES[index]
            if repair_actions:
                _emit(emit_to, EventBuilder.repair_applied(index, name, repair_actions))
            _emit(emit_to, EventBuilder.strategy_attempted(index, name, text))

            try:
                document = _parse(text)
            except ValueError as exc:
                attempts.append(StrategyAttempt(index, name, text, str(exc)))
                _emit(emit_to, EventBuilder.strategy_failed(index, name, str(exc)))
                continue

            attempts.append(StrategyAttempt(index, name, text))
            _emit(emit_to, EventBuilder.strategy_succeeded(index, name, document))
            return StrategyResult(
                success=True,
                value=_unwrap(document, wrapper_keys),
                strategy_index=index,
                document=document,
                attempts=tuple(attempts),
            )

    _emit(
        emit_to,
        EventBuilder.recovery_failed(len(attempts), (raw_text or "")[:_PREVIEW_LEN]),
    )
    return StrategyResult(success=False, attempts=tuple(attempts))
