"""Errors raised while prompting a model for PRD, feature, task or section output.

Malformed model output is not an error at this layer: :meth:`LLMGateway.complete`
returns whatever text came back and the recovery engine deals with it.
These exceptions cover the call itself and the prompt that feeds it.
"""

from __future__ import annotations

from typing import Optional


class LLMGatewayError(Exception):
    """Base exception for failed LLM calls and prompt rendering."""


class ConfigurationError(LLMGatewayError):
    """No usable model for the call.

    Examples: the ``provider`` in ``.prdforge/config.toml`` is unknown, or
    neither it nor any fallback provider has a model configured.
    """


class RetryExhaustedError(LLMGatewayError):
    """Every attempt at a completion failed with a transient error.

    Attributes:
        attempts: Number of attempts made, the first call included.
        last_error: The last error encountered before giving up.
        model: The model that was being called, when known.
    """

    def __init__(
        self,
        attempts: int,
        last_error: Exception,
        model: Optional[str] = None,
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.model = model
        target = f" to {model}" if model else ""
        super().__init__(
            f"LLM call{target} failed after {attempts} attempt(s). "
            f"Last error: {type(last_error).__name__}: {last_error}"
        )


class TemplateError(LLMGatewayError):
    """A prompt template could not be rendered.

    Examples: a generator passed too few variables, a custom template
    directory has a syntax error, or the template does not exist.

    Attributes:
        template_name: The template involved, without the ``.jinja2``
            extension.  ``None`` when the whole template directory is bad.
    """

    def __init__(self, message: str, template_name: Optional[str] = None) -> None:
        self.template_name = template_name
        super().__init__(message)
