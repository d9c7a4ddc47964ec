"""PRD template section operations: generate, rearrange, describe.

All three operations expect a JSON object wrapping a ``sections`` (or
``descriptions``) array and treat an unrecoverable response as an error: a
template editor has no sensible empty answer.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Sequence

from prdforge.generators.base import BaseGenerator
from prdforge.generators.exceptions import GenerationError
from prdforge.generators.models import SectionResult
from prdforge.records.models import TemplateSection
from prdforge.records.normalizer import RecordBatch, recover_batch
from prdforge.records.specs import SECTION_SPEC
from prdforge.recovery.exceptions import RecoveryError
from prdforge.recovery.pipeline import FailurePolicy

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_NON_SLUG_RE = re.compile(r"[^a-z0-9-]")


def slugify(title: str) -> str:
    """``"Success Metrics & KPIs"`` -> ``"success-metrics--kpis"``."""
    return _NON_SLUG_RE.sub("", _WHITESPACE_RE.sub("-", title.strip().lower()))


def _reasoning(batch: RecordBatch, fallback: str | None = None) -> str | None:
    document = batch.result.document if batch.result else None
    if isinstance(document, dict):
        value = document.get("reasoning")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback


class SectionGenerator(BaseGenerator):
    """Edits PRD templates section by section using an LLM."""

    def _recover_sections(self, text: str, operation: str) -> RecordBatch[TemplateSection]:
        if not text or not text.strip():
            raise GenerationError(f"Empty LLM response for {operation}")
        try:
            batch = recover_batch(
                text,
                SECTION_SPEC,
                policy=FailurePolicy.RAISE,
                listener=self.listener,
            )
        except RecoveryError as exc:
            logger.error("Failed to parse %s response: %s", operation, text[:500])
            raise GenerationError(
                f"Failed to parse AI response for {operation}. "
                f"Raw content: {text[:200]}"
            ) from exc

        if not isinstance(batch.result.value, list):
            raise GenerationError(
                f"AI response for {operation} does not contain a sections array"
            )
        return batch

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def generate_new_sections(
        self,
        template_name: str,
        template_description: str,
        existing_sections: Sequence[TemplateSection],
        count: int = 3,
    ) -> SectionResult:
        """Propose *count* new sections to append to a template.

        New sections get slug ids and orders continuing after the existing
        sections.

        Raises:
            GenerationError: If the response cannot be recovered.
        """
        prompt = self.templates.render(
            "sections_generate",
            template_name=template_name,
            template_description=template_description,
            existing_sections=sorted(existing_sections, key=lambda s: s.order),
            count=count,
        )
        text = self._call_llm(
            prompt,
            system_template="system_sections",
            system_vars={"concise": False},
            temperature=0.7,
            max_tokens=1500,
        )
        batch = self._recover_sections(text, "section generation")

        offset = len(existing_sections)
        sections = []
        for index, record in enumerate(batch.records, start=1):
            order = offset + index
            sections.append(
                TemplateSection(
                    id=slugify(record.title) or f"section-{order}",
                    title=record.title,
                    description=record.description,
                    order=order,
                )
            )
        return SectionResult(sections=sections, reasoning=_reasoning(batch))

    def rearrange_sections(
        self,
        template_name: str,
        template_description: str,
        sections: Sequence[TemplateSection],
    ) -> SectionResult:
        """Reorder sections into a logical PRD flow.

        Every input section is kept, matched by id.  Sections the model left
        out are appended after the ones it returned; orders are renumbered
        from 1.

        Raises:
            GenerationError: If the response cannot be recovered.
        """
        sections_json = json.dumps(
            [s.model_dump(include={"id", "title", "description", "order"}) for s in sections],
            indent=2,
        )
        prompt = self.templates.render(
            "sections_rearrange",
            template_name=template_name,
            template_description=template_description,
            sections_json=sections_json,
            section_count=len(sections),
        )
        text = self._call_llm(
            prompt,
            system_template="system_sections",
            system_vars={"concise": True},
            temperature=0.3,
            max_tokens=4000,
        )
        batch = self._recover_sections(text, "section rearrangement")

        returned = {record.id: record for record in batch.records if record.id}
        placed: list[tuple[int, int, TemplateSection]] = []
        missing: list[TemplateSection] = []
        for position, original in enumerate(sections):
            record = returned.get(original.id)
            if record is None:
                missing.append(original)
                continue
            placed.append((record.order or position + 1, position, original))
        if missing:
            logger.warning(
                "Rearrangement omitted %d section(s): %s",
                len(missing),
                ", ".join(s.id for s in missing),
            )

        ordered = [section for _, _, section in sorted(placed, key=lambda p: (p[0], p[1]))]
        ordered.extend(missing)
        final = [s.model_copy(update={"order": i}) for i, s in enumerate(ordered, start=1)]
        return SectionResult(
            sections=final,
            reasoning=_reasoning(batch, "Sections organized according to PRD best practices"),
        )

    def add_descriptions(
        self,
        template_name: str,
        template_description: str,
        sections: Sequence[TemplateSection],
    ) -> SectionResult:
        """Fill in blank section descriptions.

        Sections that already have a description are never changed.  Model
        answers are matched to sections by case-insensitive title.

        Raises:
            GenerationError: If the response cannot be recovered or no
                description could be matched to a section.
        """
        needing = [s for s in sections if not s.description.strip()]
        if not needing:
            return SectionResult(
                sections=[s.model_copy() for s in sections],
                reasoning="All sections already have descriptions",
            )

        prompt = self.templates.render(
            "sections_describe",
            template_name=template_name,
            template_description=template_description,
            sections=needing,
        )
        text = self._call_llm(
            prompt,
            system_template="system_sections",
            system_vars={"concise": False},
            temperature=0.5,
            max_tokens=4000,
        )
        batch = self._recover_sections(text, "description generation")

        descriptions: dict[str, str] = {}
        for record in batch.records:
            key = record.title.lower()
            if record.description and key not in descriptions:
                descriptions[key] = record.description

        applied = 0
        updated = []
        for section in sections:
            new_description = None
            if not section.description.strip():
                new_description = descriptions.get(section.title.lower())
            if new_description:
                applied += 1
                updated.append(section.model_copy(update={"description": new_description}))
            else:
                updated.append(section.model_copy())

        if applied == 0:
            raise GenerationError("No descriptions could be matched to sections")
        logger.info("Applied %d of %d description(s)", applied, len(needing))
        return SectionResult(
            sections=updated,
            reasoning=_reasoning(batch, f"Generated descriptions for {applied} sections"),
        )

