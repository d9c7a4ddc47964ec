"""Structured-output recovery engine.

Turns unreliable LLM text (fenced, truncated, with raw control characters or
wrapper objects) into a parsed JSON value.  The package is pure and
synchronous; every call owns its scanner state.

- :func:`recover` – ordered fallback strategies (the entry point)
- :func:`scan` / :class:`Scanner` – shared string-literal state machine
- :func:`strip_fences`, :func:`extract_balanced`,
  :func:`sanitize_control_chars`, :func:`repair_truncated`,
  :func:`extract_complete_objects`, :func:`salvage_open_array` – the
  individual stages
"""

from prdforge.recovery.events import (
    EventBuilder,
    EventCollector,
    RecoveryEvent,
    RecoveryListener,
    log_event,
    null_listener,
)
from prdforge.recovery.exceptions import RecoveryError
from prdforge.recovery.extract import extract_balanced, find_json_start
from prdforge.recovery.fences import strip_fences
from prdforge.recovery.pipeline import (
    STRATEGY_NAMES,
    FailurePolicy,
    StrategyAttempt,
    StrategyResult,
    recover,
)
from prdforge.recovery.repair import (
    extract_complete_objects,
    repair_truncated,
    repair_with_report,
    salvage_open_array,
)
from prdforge.recovery.sanitize import sanitize_control_chars
from prdforge.recovery.scanner import Scanner, ScanState, final_state, scan

__all__ = [
    "EventBuilder",
    "EventCollector",
    "FailurePolicy",
    "RecoveryError",
    "RecoveryEvent",
    "RecoveryListener",
    "STRATEGY_NAMES",
    "ScanState",
    "Scanner",
    "StrategyAttempt",
    "StrategyResult",
    "extract_balanced",
    "extract_complete_objects",
    "final_state",
    "find_json_start",
    "log_event",
    "null_listener",
    "recover",
    "repair_truncated",
    "repair_with_report",
    "salvage_open_array",
    "sanitize_control_chars",
    "scan",
    "strip_fences",
]
