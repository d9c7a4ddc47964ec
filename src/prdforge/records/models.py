"""Domain record models produced from recovered LLM output.

Pydantic models for the three record types the generators hand to the
persistence and UI layers:

    - Feature: a product feature extracted from a PRD
    - Task: an actionable development task belonging to a feature
    - TemplateSection: one section of a PRD template

Identity fields (``id``, ``feature_id``, ``is_selected``) are filled in by the
generators after normalization; the normalizer never sets them.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class FeaturePriority(str, Enum):
    """Priority level for a feature."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskPriority(str, Enum):
    """Priority level for a task."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskRole(str, Enum):
    """Primary discipline responsible for a task."""

    FRONTEND = "Frontend"
    BACKEND = "Backend"
    DESIGN = "Design"
    QA = "QA"
    DEVOPS = "DevOps"
    PRODUCT = "Product"
    FULL_STACK = "Full Stack"


# ---------------------------------------------------------------------------
# Record models
# ---------------------------------------------------------------------------


class Feature(BaseModel):
    """A product feature with acceptance criteria and user stories."""

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    id: Optional[str] = Field(default=None, description="Identifier assigned by the caller")
    title: str = Field(default="Untitled Feature", description="Feature name")
    description: str = Field(default="", description="What the feature does and why")
    priority: FeaturePriority = Field(
        default=FeaturePriority.MEDIUM,
        description="Delivery priority",
    )
    phase: str = Field(default="Phase 1", description="Development phase")
    estimated_effort: str = Field(default="Medium", description="T-shirt size estimate")
    acceptance_criteria: list[str] = Field(
        default_factory=list,
        description="Testable acceptance criteria",
    )
    user_stories: list[str] = Field(
        default_factory=list,
        description="User stories in 'As a ... I want ...' form",
    )
    is_selected: bool = Field(default=True, description="Whether the user kept this feature")


class Task(BaseModel):
    """A development task, optionally linked to its parent feature."""

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    id: Optional[str] = Field(default=None, description="Identifier assigned by the caller")
    feature_id: Optional[str] = Field(default=None, description="Parent feature identifier")
    title: str = Field(default="Untitled Task", description="Action-oriented task title")
    description: str = Field(default="", description="Technical description")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    estimated_hours: float = Field(default=4.0, gt=0, le=100, description="Effort estimate in hours")
    role: TaskRole = Field(default=TaskRole.FULL_STACK, description="Responsible discipline")
    dependencies: list[str] = Field(
        default_factory=list,
        description="Titles of tasks that must be completed first",
    )
    is_selected: bool = Field(default=True, description="Whether the user kept this task")


class TemplateSection(BaseModel):
    """One section of a PRD template."""

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    id: str = Field(default="", description="Section slug")
    title: str = Field(default="Untitled Section", description="Section heading")
    description: str = Field(default="", description="What belongs in the section")
    order: int = Field(default=0, ge=0, description="1-based position; 0 when unknown")
