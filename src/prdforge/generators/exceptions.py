"""Custom exceptions for the generator services."""

from __future__ import annotations


class GenerationError(Exception):
    """Raised when an LLM response cannot be turned into the records a caller needs.

    Used where an empty result is not an acceptable answer: single-feature
    enhancement and every template-section operation.
    """
