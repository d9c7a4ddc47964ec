"""Configuration and result models for the generator services."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from prdforge.records.models import TemplateSection
from prdforge.recovery.pipeline import FailurePolicy


class GeneratorConfig(BaseModel):
    """Per-generator LLM call settings."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    model: Optional[str] = Field(
        default=None,
        description="Model identifier; None uses the gateway's provider default",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_tokens: int = Field(
        default=4000,
        gt=0,
        description="Completion token limit per call",
    )
    failure_policy: FailurePolicy = Field(
        default=FailurePolicy.EMPTY,
        description="What list-returning operations do when nothing can be recovered",
    )
    system_template: str = Field(
        default="system_product_manager",
        description="Prompt template used as the system message",
    )


class HoursSummary(BaseModel):
    """Total effort for a set of tasks, broken down by role and priority."""

    model_config = ConfigDict(frozen=True)

    total: float = 0.0
    by_role: dict[str, float] = Field(default_factory=dict)
    by_priority: dict[str, float] = Field(default_factory=dict)


class SectionResult(BaseModel):
    """Sections produced by a section operation, with the model's reasoning."""

    sections: list[TemplateSection] = Field(default_factory=list)
    reasoning: Optional[str] = None
