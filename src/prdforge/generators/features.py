"""Feature generation from PRD content via the LLM gateway.

Every operation renders a Jinja2 prompt, calls the LLM, and hands the raw
response to the recovery engine, so fenced, chatty or truncated output still
yields features.

Usage::

    from prdforge.generators import FeatureGenerator

    generator = FeatureGenerator()
    features = generator.generate_from_prd(prd_text, max_features=10)
    for feature in features:
        print(feature.priority.value, feature.title)
"""

from __future__ import annotations

import logging
from typing import Sequence
from uuid import uuid4

from prdforge.generators.base import BaseGenerator
from prdforge.generators.exceptions import GenerationError
from prdforge.llm.gateway import LLM_ERRORS
from prdforge.records.models import Feature, FeaturePriority
from prdforge.records.normalizer import recover_batch, recover_records
from prdforge.records.specs import FEATURE_SPEC
from prdforge.recovery.exceptions import RecoveryError
from prdforge.recovery.pipeline import FailurePolicy

logger = logging.getLogger(__name__)

DEFAULT_ENHANCE_ASPECTS: tuple[str, ...] = (
    "description",
    "acceptanceCriteria",
    "userStories",
)


class FeatureGenerator(BaseGenerator):
    """Extracts, enhances and splits product features using an LLM."""

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_from_prd(
        self,
        prd_content: str,
        product_description: str | None = None,
        max_features: int = 20,
        phases: Sequence[str] | None = None,
        priorities: Sequence[str] | None = None,
    ) -> list[Feature]:
        """Extract features from a PRD.

        Args:
            prd_content: The PRD text.
            product_description: Optional product overview for context.
            max_features: Upper bound passed to the model.
            phases: Restrict generation to these phases.
            priorities: Restrict generation to these priorities.

        Returns:
            Features with fresh ids, possibly empty when nothing could be
            recovered under the EMPTY failure policy.

        Raises:
            ValueError: If *prd_content* is blank.
            RecoveryError: If nothing was recovered under the RAISE policy.
        """
        if not prd_content or not prd_content.strip():
            raise ValueError("PRD content must not be empty")

        prompt = self.templates.render(
            "features_from_prd",
            prd_content=prd_content,
            product_description=product_description,
            max_features=max_features,
            phases=list(phases or []),
            priorities=list(priorities or []),
        )
        features = self._with_identity(self.parse_features(self._call_llm(prompt)))
        logger.info("Generated %d feature(s) from PRD", len(features))
        return features

    def enhance_feature(
        self,
        feature: Feature,
        prd_content: str | None = None,
        aspects: Sequence[str] | None = None,
    ) -> Feature:
        """Ask the model to flesh out a feature, keeping its id and selection.

        Raises:
            GenerationError: If the response holds no recoverable feature.
        """
        prompt = self.templates.render(
            "feature_enhance",
            feature=feature,
            prd_content=prd_content,
            aspects=list(aspects or DEFAULT_ENHANCE_ASPECTS),
        )
        enhanced = self.parse_single_feature(self._call_llm(prompt))
        enhanced.id = feature.id or str(uuid4())
        enhanced.is_selected = feature.is_selected
        return enhanced

    def breakdown_feature(
        self,
        feature: Feature,
        prd_content: str | None = None,
        target_count: int = 3,
    ) -> list[Feature]:
        """Split a large feature into *target_count* smaller ones."""
        prompt = self.templates.render(
            "feature_breakdown",
            feature=feature,
            prd_content=prd_content,
            target_count=target_count,
        )
        return self._with_identity(self.parse_features(self._call_llm(prompt)))

    def quick_generate(self, description: str) -> list[Feature]:
        """Generate features from a one-line product description."""
        prompt = self.templates.render("features_quick", description=description)
        return self._with_identity(self.parse_features(self._call_llm(prompt)))

    def suggest_priority(
        self,
        feature: Feature,
        prd_content: str | None = None,
    ) -> FeaturePriority:
        """Ask the model for a one-word priority.

        Falls back to ``MEDIUM`` on an unrecognised answer or a failed LLM
        call.
        """
        prompt = self.templates.render(
            "feature_priority",
            feature=feature,
            prd_content=prd_content,
        )
        try:
            answer = self._call_llm(prompt, max_tokens=10)
        except LLM_ERRORS as exc:
            logger.warning("Priority suggestion failed, using medium: %s", exc)
            return FeaturePriority.MEDIUM

        word = answer.strip().strip("\"'.").lower()
        try:
            return FeaturePriority(word)
        except ValueError:
            logger.debug("Unrecognised priority answer %r, using medium", answer[:50])
            return FeaturePriority.MEDIUM

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_features(self, content: str) -> list[Feature]:
        """Recover features from raw LLM text under the configured policy."""
        return recover_records(
            content,
            FEATURE_SPEC,
            policy=self.config.failure_policy,
            listener=self.listener,
        )

    def parse_single_feature(self, content: str) -> Feature:
        """Recover exactly one feature; the first one if the model sent several.

        Raises:
            GenerationError: If no feature could be recovered.
        """
        try:
            batch = recover_batch(
                content,
                FEATURE_SPEC,
                policy=FailurePolicy.RAISE,
                listener=self.listener,
            )
        except RecoveryError as exc:
            raise GenerationError(f"Failed to parse enhanced feature: {exc}") from exc

        if not batch.records:
            raise GenerationError("LLM response contained no feature")
        return batch.records[0]

    @staticmethod
    def _with_identity(features: list[Feature]) -> list[Feature]:
        for feature in features:
            feature.id = str(uuid4())
            feature.is_selected = True
        return features
