"""Record specifications: which fields each record type has and how to read them.

Each :class:`RecordSpec` pairs a pydantic model with an ordered list of
:class:`~prdforge.records.fields.FieldSpec` entries and the wrapper keys an
LLM may nest the record array under.  Adding a record type means adding a
spec here; the normalizer itself stays generic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel

from prdforge.records.fields import FieldKind, FieldSpec
from prdforge.records.models import (
    Feature,
    FeaturePriority,
    Task,
    TaskPriority,
    TaskRole,
    TemplateSection,
)

RecordT = TypeVar("RecordT", bound=BaseModel)


@dataclass(frozen=True)
class RecordSpec(Generic[RecordT]):
    """How to build one record model from a loosely-shaped dict."""

    name: str
    model: type[RecordT]
    fields: tuple[FieldSpec, ...]
    wrapper_keys: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        unknown = [f.attr for f in self.fields if f.attr not in self.model.model_fields]
        if unknown:
            raise ValueError(
                f"Record spec '{self.name}' names fields missing from "
                f"{self.model.__name__}: {', '.join(unknown)}"
            )


# ---------------------------------------------------------------------------
# Built-in record specs
# ---------------------------------------------------------------------------

FEATURE_SPEC: RecordSpec[Feature] = RecordSpec(
    name="feature",
    model=Feature,
    wrapper_keys=("features",),
    fields=(
        FieldSpec("title", FieldKind.STRING, ("title", "name"), "Untitled Feature"),
        FieldSpec("description", FieldKind.STRING, ("description",), ""),
        FieldSpec(
            "priority",
            FieldKind.ENUM,
            ("priority",),
            FeaturePriority.MEDIUM.value,
            choices=tuple(p.value for p in FeaturePriority),
        ),
        FieldSpec("phase", FieldKind.STRING, ("phase",), "Phase 1"),
        FieldSpec(
            "estimated_effort",
            FieldKind.STRING,
            ("estimatedEffort", "estimated_effort"),
            "Medium",
        ),
        FieldSpec(
            "acceptance_criteria",
            FieldKind.STRING_ARRAY,
            ("acceptanceCriteria", "acceptance_criteria"),
            (),
        ),
        FieldSpec(
            "user_stories",
            FieldKind.STRING_ARRAY,
            ("userStories", "user_stories"),
            (),
        ),
    ),
)

TASK_SPEC: RecordSpec[Task] = RecordSpec(
    name="task",
    model=Task,
    wrapper_keys=("tasks",),
    fields=(
        FieldSpec("title", FieldKind.STRING, ("title", "name"), "Untitled Task"),
        FieldSpec("description", FieldKind.STRING, ("description",), ""),
        FieldSpec(
            "priority",
            FieldKind.ENUM,
            ("priority",),
            TaskPriority.MEDIUM.value,
            choices=tuple(p.value for p in TaskPriority),
        ),
        FieldSpec(
            "estimated_hours",
            FieldKind.NUMBER,
            ("estimatedHours", "estimated_hours", "hours"),
            4.0,
            minimum=0,
            maximum=100,
        ),
        FieldSpec(
            "role",
            FieldKind.ENUM,
            ("role",),
            TaskRole.FULL_STACK.value,
            choices=tuple(r.value for r in TaskRole),
            substring_match=True,
        ),
        FieldSpec("dependencies", FieldKind.STRING_ARRAY, ("dependencies",), ()),
    ),
)

SECTION_SPEC: RecordSpec[TemplateSection] = RecordSpec(
    name="section",
    model=TemplateSection,
    wrapper_keys=("sections", "descriptions"),
    fields=(
        FieldSpec("id", FieldKind.STRING, ("id",), ""),
        FieldSpec("title", FieldKind.STRING, ("title", "name"), "Untitled Section"),
        FieldSpec("description", FieldKind.STRING, ("description",), ""),
        FieldSpec(
            "order",
            FieldKind.NUMBER,
            ("order", "position"),
            0,
            minimum=0,
            integer=True,
        ),
    ),
)

BUILTIN_SPECS: dict[str, RecordSpec] = {
    "features": FEATURE_SPEC,
    "tasks": TASK_SPEC,
    "sections": SECTION_SPEC,
}
