"""Data models and provider tables for the LLM gateway module."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Provider defaults
# ---------------------------------------------------------------------------

DEFAULT_PROVIDER_MODELS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-20241022",
    "gemini": "gemini/gemini-1.5-flash",
}

# Ordered list of providers used as fallback priority.
PROVIDER_PRIORITY: list[str] = ["openai", "anthropic", "gemini"]

# ---------------------------------------------------------------------------
# Token pricing table (approximate USD per 1 M tokens)
# ---------------------------------------------------------------------------

TOKEN_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4o": {"input": 2.50, "output": 10.0},
    "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.0},
    "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
    "gemini/gemini-1.5-flash": {"input": 0.075, "output": 0.30},
}


# ---------------------------------------------------------------------------
# Request / Response log entry
# ---------------------------------------------------------------------------


class LLMLogEntry(BaseModel):
    """Structured log entry for a single LLM request/response cycle."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="ISO 8601 timestamp of the request",
    )
    request_id: UUID = Field(
        default_factory=uuid4,
        description="Unique identifier for this request",
    )
    model: str = Field(..., description="Model identifier used for the request")
    messages: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Request messages (truncated if >1000 chars)",
    )
    response: str = Field(
        default="",
        description="Response text (truncated if >1000 chars)",
    )
    finish_reason: Optional[str] = Field(
        default=None,
        description="Provider finish reason; 'length' means the output was cut off",
    )
    tokens_prompt: int = Field(default=0, description="Prompt token count")
    tokens_completion: int = Field(default=0, description="Completion token count")
    tokens_total: int = Field(default=0, description="Total token count")
    latency_ms: float = Field(default=0.0, description="Request latency in ms")
    cost_usd: float = Field(default=0.0, description="Estimated cost in USD")

    @property
    def truncated(self) -> bool:
        """Whether the provider stopped because it hit the token limit."""
        return self.finish_reason == "length"


# ---------------------------------------------------------------------------
# Gateway configuration
# ---------------------------------------------------------------------------


class GatewayConfig(BaseModel):
    """Configuration for the LLM gateway."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    provider_models: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_PROVIDER_MODELS),
        description="Mapping of provider -> default model name",
    )
    max_retries: int = Field(
        default=4,
        ge=0,
        le=10,
        description="Maximum retry attempts on transient errors",
    )
    base_retry_delay: float = Field(
        default=1.0,
        gt=0,
        description="Base delay in seconds for exponential backoff",
    )
    default_provider: str = Field(
        default="openai",
        description="Default LLM provider when no model is given",
    )
