"""Record models and the declarative normalizer.

- :class:`Feature`, :class:`Task`, :class:`TemplateSection` – record models
- :class:`FieldSpec` / :class:`RecordSpec` – declarative field tables
- :func:`normalize`, :func:`recover_records` – dict/text to records
"""

from prdforge.records.fields import FieldKind, FieldSpec, coerce
from prdforge.records.models import (
    Feature,
    FeaturePriority,
    Task,
    TaskPriority,
    TaskRole,
    TemplateSection,
)
from prdforge.records.normalizer import (
    RecordBatch,
    normalize,
    normalize_many,
    records_from_value,
    recover_batch,
    recover_records,
)
from prdforge.records.specs import (
    BUILTIN_SPECS,
    FEATURE_SPEC,
    SECTION_SPEC,
    TASK_SPEC,
    RecordSpec,
)

__all__ = [
    "BUILTIN_SPECS",
    "FEATURE_SPEC",
    "Feature",
    "FeaturePriority",
    "FieldKind",
    "FieldSpec",
    "RecordBatch",
    "RecordSpec",
    "SECTION_SPEC",
    "TASK_SPEC",
    "Task",
    "TaskPriority",
    "TaskRole",
    "TemplateSection",
    "coerce",
    "normalize",
    "normalize_many",
    "records_from_value",
    "recover_batch",
    "recover_records",
]
