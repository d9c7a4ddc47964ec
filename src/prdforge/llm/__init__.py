"""PRDForge LLM gateway – multi-provider LLM access and prompt rendering.

- :class:`LLMGateway` – completion via LiteLLM with retry and logging
- :class:`GatewayConfig` – provider defaults and retry policy
- :class:`PromptTemplate` – Jinja2-based prompt template management
"""

from prdforge.llm.exceptions import (
    ConfigurationError,
    LLMGatewayError,
    RetryExhaustedError,
    TemplateError,
)
from prdforge.llm.gateway import LLM_ERRORS, LLMGateway
from prdforge.llm.models import GatewayConfig, LLMLogEntry
from prdforge.llm.prompt_templates import PromptTemplate

__all__ = [
    "ConfigurationError",
    "GatewayConfig",
    "LLM_ERRORS",
    "LLMGateway",
    "LLMGatewayError",
    "LLMLogEntry",
    "PromptTemplate",
    "RetryExhaustedError",
    "TemplateError",
]
