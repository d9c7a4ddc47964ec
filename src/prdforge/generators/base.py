"""Shared plumbing for the generator services: prompt, call, recover."""

from __future__ import annotations

import logging
from typing import Any

from prdforge.generators.models import GeneratorConfig
from prdforge.llm.gateway import LLMGateway
from prdforge.llm.prompt_templates import PromptTemplate
from prdforge.recovery.events import RecoveryListener

logger = logging.getLogger(__name__)


class BaseGenerator:
    """Holds the gateway, templates and config every generator needs.

    Attributes:
        config: LLM call settings.
        gateway: LLMGateway used for completions.
        templates: PromptTemplate used to render prompts.
        listener: Optional recovery event listener passed to the engine.
    """

    def __init__(
        self,
        config: GeneratorConfig | None = None,
        gateway: LLMGateway | None = None,
        templates: PromptTemplate | None = None,
        listener: RecoveryListener | None = None,
    ) -> None:
        """Initialise the generator.

        Args:
            config: Generator configuration. Defaults to GeneratorConfig().
            gateway: Pre-configured LLMGateway. If None, creates a new one.
            templates: Pre-configured PromptTemplate. If None, creates one
                using the default template directory.
            listener: Receives recovery diagnostics; defaults to debug logging.
        """
        self.config = config or GeneratorConfig()
        self.gateway = gateway or LLMGateway()
        self.templates = templates or PromptTemplate()
        self.listener = listener

    def _call_llm(
        self,
        prompt: str,
        *,
        system_template: str | None = None,
        system_vars: dict[str, Any] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Render the system prompt, call the LLM and return the raw text.

        Args:
            prompt: The rendered user prompt.
            system_template: Template for the system message; ``None`` uses
                the configured one.
            system_vars: Variables for the system template.
            temperature: Overrides the configured temperature.
            max_tokens: Overrides the configured token limit.

        Returns:
            Raw response text from the LLM.
        """
        system = self.templates.render(
            system_template or self.config.system_template,
            **(system_vars or {}),
        )
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]
        text = self.gateway.complete(
            messages=messages,
            model=self.config.model,
            temperature=self.config.temperature if temperature is None else temperature,
            max_tokens=self.config.max_tokens if max_tokens is None else max_tokens,
        )
        logger.debug("LLM response received (%d chars)", len(text))
        return text
