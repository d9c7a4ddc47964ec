"""Diagnostic events emitted by the recovery pipeline.

Events describe what the pipeline tried, what it repaired and what finally
worked.  They are handed to an injectable listener instead of being printed,
so callers decide whether to log, collect or ignore them.  The default
listener, :func:`log_event`, forwards them to :mod:`logging` at DEBUG.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Literal

logger = logging.getLogger(__name__)

EventType = Literal[
    "strategy.attempted",
    "strategy.succeeded",
    "strategy.failed",
    "repair.applied",
    "recovery.failed",
]

_ALL_EVENT_TYPES: frozenset[str] = frozenset([
    "strategy.attempted",
    "strategy.succeeded",
    "strategy.failed",
    "repair.applied",
    "recovery.failed",
])


@dataclass(frozen=True, slots=True)
class RecoveryEvent:
    """One immutable diagnostic record from a single ``recover()`` call.

    ``strategy_index`` is 1-based and ``0`` for call-level events such as
    ``recovery.failed``.
    """

    type: EventType
    strategy_index: int
    strategy_name: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


RecoveryListener = Callable[[RecoveryEvent], None]


class EventBuilder:
    """Factory methods for the five recovery event types."""

    @staticmethod
    def strategy_attempted(index: int, name: str, text: str) -> RecoveryEvent:
        """Emit before a strategy calls the JSON parser."""
        return RecoveryEvent(
            "strategy.attempted", index, name, {"text_length": len(text)}
        )

    @staticmethod
    def strategy_succeeded(index: int, name: str, value: Any) -> RecoveryEvent:
        """Emit when a strategy produced a parseable value."""
        return RecoveryEvent(
            "strategy.succeeded", index, name, {"value_type": type(value).__name__}
        )

    @staticmethod
    def strategy_failed(index: int, name: str, error: str) -> RecoveryEvent:
        """Emit when a strategy's output did not parse."""
        return RecoveryEvent("strategy.failed", index, name, {"error": error})

    @staticmethod
    def repair_applied(index: int, name: str, actions: list[str]) -> RecoveryEvent:
        """Emit when the truncation repairer changed the text."""
        return RecoveryEvent("repair.applied", index, name, {"actions": list(actions)})

    @staticmethod
    def recovery_failed(attempt_count: int, preview: str) -> RecoveryEvent:
        """Emit once every strategy has failed."""
        return RecoveryEvent(
            "recovery.failed",
            0,
            "",
            {"attempts": attempt_count, "preview": preview},
        )


def log_event(event: RecoveryEvent) -> None:
    """Default listener: write the event to the module logger."""
    if event.type == "recovery.failed":
        logger.debug(
            "All %d recovery strategies failed; content preview: %r",
            event.data.get("attempts", 0),
            event.data.get("preview", ""),
        )
        return
    logger.debug(
        "[%s] strategy %d (%s) %s",
        event.type,
        event.strategy_index,
        event.strategy_name,
        event.data,
    )


def null_listener(event: RecoveryEvent) -> None:
    """Listener that ignores every event."""
    return


class EventCollector:
    """Listener that keeps every event it receives, in order.

    Example::

        collector = EventCollector()
        recover(text, listener=collector)
        [e.type for e in collector.events]
    """

    def __init__(self) -> None:
        self.events: list[RecoveryEvent] = []

    def __call__(self, event: RecoveryEvent) -> None:
        if event.type not in _ALL_EVENT_TYPES:
            raise ValueError(f"Unknown recovery event type: {event.type!r}")
        self.events.append(event)

    def of_type(self, event_type: str) -> list[RecoveryEvent]:
        """Return the collected events of one type."""
        return [e for e in self.events if e.type == event_type]
