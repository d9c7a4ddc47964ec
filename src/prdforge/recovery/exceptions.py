"""Custom exceptions for the recovery engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from prdforge.recovery.pipeline import StrategyAttempt


class RecoveryError(Exception):
    """Raised when a caller asks for failure to be fatal and no strategy parsed.

    The engine itself never raises this; it is raised on behalf of callers
    that selected :attr:`FailurePolicy.RAISE`.

    Attributes:
        attempts: Every strategy attempt, with the text it tried to parse.
    """

    def __init__(self, message: str, attempts: Sequence[StrategyAttempt] = ()) -> None:
        super().__init__(message)
        self.attempts = tuple(attempts)
