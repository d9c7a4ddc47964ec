"""LLM Gateway – unified interface for multi-provider LLM access via LiteLLM.

Provides:
- Multi-provider completion via LiteLLM
- Provider default model selection
- Request/response logging, including the provider finish reason
- Retry logic with exponential backoff

The gateway returns raw text.  Turning that text into records is the job of
:mod:`prdforge.recovery` and :mod:`prdforge.records`.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any
from uuid import uuid4

import litellm
from litellm import completion as litellm_completion
from litellm.exceptions import (
    APIConnectionError as LiteLLMAPIConnectionError,
    AuthenticationError as LiteLLMAuthenticationError,
    BadRequestError as LiteLLMBadRequestError,
    RateLimitError as LiteLLMRateLimitError,
    Timeout as LiteLLMTimeout,
)

from prdforge.llm.exceptions import (
    ConfigurationError,
    LLMGatewayError,
    RetryExhaustedError,
)
from prdforge.llm.models import (
    PROVIDER_PRIORITY,
    TOKEN_PRICING,
    GatewayConfig,
    LLMLogEntry,
)

logger = logging.getLogger(__name__)

# Errors that should trigger a retry
_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    LiteLLMRateLimitError,
    LiteLLMAPIConnectionError,
    LiteLLMTimeout,
    TimeoutError,
)
_NON_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    LiteLLMAuthenticationError,
    LiteLLMBadRequestError,
)

# Everything complete() can raise for a failed call; callers with a
# fallback answer catch this tuple.
LLM_ERRORS: tuple[type[Exception], ...] = (
    LLMGatewayError,
    *_RETRYABLE_ERRORS,
    *_NON_RETRYABLE_ERRORS,
)

# Maximum truncation length for logged messages / responses.
_LOG_TRUNCATE_LEN = 1000


def _truncate(text: str, max_len: int = _LOG_TRUNCATE_LEN) -> str:
    """Truncate text to *max_len* characters, appending '…' if clipped."""
    if len(text) <= max_len:
        return text
    return text[:max_len] + "…"


def _truncate_messages(
    messages: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Return a copy of *messages* with ``content`` values truncated."""
    truncated: list[dict[str, Any]] = []
    for msg in messages:
        entry = dict(msg)
        if isinstance(entry.get("content"), str):
            entry["content"] = _truncate(entry["content"])
        truncated.append(entry)
    return truncated


def _estimate_cost(
    model: str,
    prompt_tokens: int,
    completion_tokens: int,
) -> float:
    """Estimate the USD cost for a request."""
    pricing = TOKEN_PRICING.get(model)
    if pricing is None:
        return 0.0
    return (
        (prompt_tokens / 1_000_000) * pricing["input"]
        + (completion_tokens / 1_000_000) * pricing["output"]
    )


class LLMGateway:
    """Unified LLM interface with provider defaults, retry and logging.

    Example::

        gw = LLMGateway()
        text = gw.complete(
            messages=[{"role": "user", "content": "List three features"}],
            model="gpt-4o-mini",
        )
    """

    def __init__(self, config: GatewayConfig | None = None) -> None:
        self._config = config or GatewayConfig()
        self._logs: list[LLMLogEntry] = []

        # Suppress litellm's own verbose logging by default
        litellm.suppress_debug_info = True

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def logs(self) -> list[LLMLogEntry]:
        """Access the request/response log."""
        return list(self._logs)

    # ------------------------------------------------------------------
    # Model selection
    # ------------------------------------------------------------------

    def select_model(self, provider: str | None = None) -> str:
        """Return the default model for *provider*.

        Args:
            provider: Provider name (e.g. ``"anthropic"``).  Defaults to the
                configured default provider.  Unknown providers fall back
                through :data:`PROVIDER_PRIORITY`.

        Returns:
            A LiteLLM model identifier.

        Raises:
            ConfigurationError: If no provider has a configured model.
        """
        mapping = self._config.provider_models
        preferred = provider or self._config.default_provider
        if preferred in mapping:
            return mapping[preferred]

        for fallback in PROVIDER_PRIORITY:
            if fallback in mapping:
                logger.warning(
                    "No model configured for provider %r, falling back to %r",
                    preferred,
                    fallback,
                )
                return mapping[fallback]

        raise ConfigurationError(f"No model configured for provider={preferred!r}")

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def complete(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Send a chat completion request and return the response text.

        Transparently retries on transient errors (rate limits, timeouts,
        connection errors) with exponential backoff.

        Args:
            messages: A list of chat messages (``{"role": …, "content": …}``).
            model: The model identifier.  Defaults to the configured
                provider's model.
            **kwargs: Additional keyword arguments forwarded to
                ``litellm.completion()`` (``temperature``, ``max_tokens`` …).

        Returns:
            The assistant's response text (possibly empty).

        Raises:
            ConfigurationError: If no model can be selected.
            RetryExhaustedError: If all retry attempts are exhausted.
        """
        model = model or self.select_model()
        request_id = uuid4()
        start = time.monotonic()
        last_error: Exception | None = None

        for attempt in range(self._config.max_retries + 1):
            try:
                response = litellm_completion(
                    model=model,
                    messages=messages,
                    **kwargs,
                )
                elapsed_ms = (time.monotonic() - start) * 1000

                choice = response.choices[0]
                text = choice.message.content or ""
                finish_reason = getattr(choice, "finish_reason", None)

                usage = getattr(response, "usage", None)
                prompt_tokens = usage.prompt_tokens if usage else 0
                completion_tokens = usage.completion_tokens if usage else 0
                total_tokens = usage.total_tokens if usage else 0

                log_entry = LLMLogEntry(
                    request_id=request_id,
                    model=model,
                    messages=_truncate_messages(messages),
                    response=_truncate(text),
                    finish_reason=finish_reason,
                    tokens_prompt=prompt_tokens,
                    tokens_completion=completion_tokens,
                    tokens_total=total_tokens,
                    latency_ms=elapsed_ms,
                    cost_usd=_estimate_cost(model, prompt_tokens, completion_tokens),
                )
                self._logs.append(log_entry)

                if log_entry.truncated:
                    logger.warning(
                        "Response from %s hit the token limit after %d completion "
                        "tokens; output is likely truncated",
                        model,
                        completion_tokens,
                    )
                logger.debug(
                    "LLM call %s to %s finished in %.0f ms (%d tokens)",
                    request_id,
                    model,
                    elapsed_ms,
                    total_tokens,
                )
                return text

            except _NON_RETRYABLE_ERRORS:
                # Re-raise immediately – do NOT retry authentication /
                # invalid-request errors.
                raise

            except _RETRYABLE_ERRORS as exc:
                last_error = exc
                if attempt < self._config.max_retries:
                    delay = self._config.base_retry_delay * (2 ** attempt)
                    logger.info(
                        "Transient LLM error (%s); retry %d/%d in %.1fs",
                        type(exc).__name__,
                        attempt + 1,
                        self._config.max_retries,
                        delay,
                    )
                    time.sleep(delay)

        # All retries exhausted
        assert last_error is not None
        raise RetryExhaustedError(
            attempts=self._config.max_retries + 1,
            last_error=last_error,
            model=model,
        )

    # ------------------------------------------------------------------
    # Log retrieval
    # ------------------------------------------------------------------

    def get_logs(
        self,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> list[LLMLogEntry]:
        """Return log entries optionally filtered by time range.

        Args:
            start_time: Inclusive lower bound (UTC).
            end_time: Inclusive upper bound (UTC).

        Returns:
            List of log entries within the time range.
        """
        result: list[LLMLogEntry] = []
        for entry in self._logs:
            if start_time and entry.timestamp < start_time:
                continue
            if end_time and entry.timestamp > end_time:
                continue
            result.append(entry)
        return result
