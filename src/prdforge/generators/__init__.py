"""LLM-backed generators for features, tasks and PRD template sections.

- :class:`FeatureGenerator` – features from PRDs and descriptions
- :class:`TaskGenerator` – tasks per feature, estimates, dependency order
- :class:`SectionGenerator` – template section generation and editing
"""

from prdforge.generators.exceptions import GenerationError
from prdforge.generators.features import FeatureGenerator
from prdforge.generators.models import GeneratorConfig, HoursSummary, SectionResult
from prdforge.generators.sections import SectionGenerator, slugify
from prdforge.generators.tasks import TaskGenerator

__all__ = [
    "FeatureGenerator",
    "GenerationError",
    "GeneratorConfig",
    "HoursSummary",
    "SectionGenerator",
    "SectionResult",
    "TaskGenerator",
    "slugify",
]
