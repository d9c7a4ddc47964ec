"""Task generation, estimation and ordering for features.

LLM-backed operations recover their output through the recovery engine;
the bookkeeping helpers (:meth:`TaskGenerator.calculate_total_hours`,
:meth:`TaskGenerator.order_by_dependencies`) are pure.
"""

from __future__ import annotations

import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence
from uuid import uuid4

from prdforge.generators.base import BaseGenerator
from prdforge.generators.models import HoursSummary
from prdforge.llm.gateway import LLM_ERRORS
from prdforge.records.models import Feature, Task
from prdforge.records.normalizer import recover_records
from prdforge.records.specs import TASK_SPEC
from prdforge.recovery.pipeline import recover

logger = logging.getLogger(__name__)

# Features processed at once by generate_for_features.
CONCURRENCY_LIMIT = 3

DEFAULT_ESTIMATE_HOURS = 4.0

_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")


def _round_to_half(hours: float) -> float:
    """Round half-up to the nearest 0.5, never below 0.5."""
    return max(0.5, math.floor(hours * 2 + 0.5) / 2)


class TaskGenerator(BaseGenerator):
    """Breaks features into development tasks using an LLM."""

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_for_feature(
        self,
        feature: Feature,
        prd_content: str | None = None,
        max_tasks: int = 15,
        team_context: str | None = None,
        tech_stack: str | None = None,
    ) -> list[Task]:
        """Generate tasks for one feature; each task gets ``feature_id``."""
        prompt = self.templates.render(
            "tasks_for_feature",
            feature=feature,
            prd_content=prd_content,
            max_tasks=max_tasks,
            team_context=team_context,
            tech_stack=tech_stack,
        )
        tasks = self._with_identity(self.parse_tasks(self._call_llm(prompt)), feature.id)
        logger.info("Generated %d task(s) for feature %r", len(tasks), feature.title)
        return tasks

    def generate_for_features(
        self,
        features: Sequence[Feature],
        prd_content: str | None = None,
        max_tasks_per_feature: int = 10,
        tech_stack: str | None = None,
    ) -> dict[str, list[Task]]:
        """Generate tasks for several features, at most three at a time.

        Returns:
            Tasks keyed by feature id, in the order of *features*.

        Raises:
            ValueError: If a feature has no id.
        """
        missing = [f.title for f in features if not f.id]
        if missing:
            raise ValueError(f"Features need ids before task generation: {missing}")

        results: dict[str, list[Task]] = {}
        with ThreadPoolExecutor(max_workers=CONCURRENCY_LIMIT) as executor:
            futures = {
                executor.submit(
                    self.generate_for_feature,
                    feature,
                    prd_content=prd_content,
                    max_tasks=max_tasks_per_feature,
                    tech_stack=tech_stack,
                ): feature.id
                for feature in features
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()

        return {f.id: results[f.id] for f in features}

    def breakdown_task(
        self,
        task: Task,
        target_count: int = 3,
        context: str | None = None,
    ) -> list[Task]:
        """Split a task into *target_count* sub-tasks for the same feature."""
        prompt = self.templates.render(
            "task_breakdown",
            task=task,
            target_count=target_count,
            context=context,
        )
        return self._with_identity(self.parse_tasks(self._call_llm(prompt)), task.feature_id)

    def quick_generate(self, description: str) -> list[Task]:
        """Generate tasks from a short description of the work."""
        prompt = self.templates.render("tasks_quick", description=description)
        return self._with_identity(self.parse_tasks(self._call_llm(prompt)), None)

    # ------------------------------------------------------------------
    # Estimation and dependencies
    # ------------------------------------------------------------------

    def estimate_task(
        self,
        task: Task,
        similar_tasks: Sequence[tuple[str, float]] | None = None,
        team_context: str | None = None,
    ) -> float:
        """Ask the model for an hour estimate, rounded to the nearest 0.5.

        Returns 4.0 when the answer has no positive leading number or the
        LLM call fails.
        """
        prompt = self.templates.render(
            "task_estimate",
            task=task,
            similar_tasks=list(similar_tasks or []),
            team_context=team_context,
        )
        try:
            answer = self._call_llm(prompt, max_tokens=20)
        except LLM_ERRORS as exc:
            logger.warning("Task estimation failed, using default: %s", exc)
            return DEFAULT_ESTIMATE_HOURS

        match = _LEADING_NUMBER_RE.match(answer)
        if match:
            hours = float(match.group(1))
            if math.isfinite(hours) and hours > 0:
                return _round_to_half(hours)
        logger.debug("Unusable estimate %r, using default", answer[:50])
        return DEFAULT_ESTIMATE_HOURS

    def suggest_dependencies(self, task: Task, all_tasks: Sequence[Task]) -> list[str]:
        """Ask the model which of *all_tasks* must finish before *task*.

        Returns:
            Dependency titles; empty when there are no other tasks, the LLM
            call fails, or no array can be recovered.
        """
        others = [
            t for t in all_tasks
            if t is not task and (task.id is None or t.id != task.id)
        ]
        if not others:
            return []

        prompt = self.templates.render("task_dependencies", task=task, other_tasks=others)
        try:
            answer = self._call_llm(prompt, max_tokens=500)
        except LLM_ERRORS as exc:
            logger.warning("Dependency suggestion failed: %s", exc)
            return []

        result = recover(answer, wrapper_keys=("dependencies",), listener=self.listener)
        if not result.success or not isinstance(result.value, list):
            return []
        titles = []
        for item in result.value:
            if isinstance(item, (str, int, float)) and not isinstance(item, bool):
                title = str(item).strip()
                if title:
                    titles.append(title)
        return titles

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_total_hours(tasks: Sequence[Task]) -> HoursSummary:
        """Sum estimated hours overall, per role and per priority."""
        by_role: dict[str, float] = {}
        by_priority: dict[str, float] = {}
        total = 0.0
        for task in tasks:
            total += task.estimated_hours
            by_role[task.role.value] = by_role.get(task.role.value, 0.0) + task.estimated_hours
            by_priority[task.priority.value] = (
                by_priority.get(task.priority.value, 0.0) + task.estimated_hours
            )
        return HoursSummary(total=total, by_role=by_role, by_priority=by_priority)

    @staticmethod
    def order_by_dependencies(tasks: Sequence[Task]) -> list[Task]:
        """Order tasks so each comes after the tasks it depends on.

        Depth-first over dependency titles.  Unknown titles are ignored and
        cycles are broken at the first revisit.  When titles repeat, the last
        task with that title is the dependency target.
        """
        by_title = {task.title: task for task in tasks}
        visited: set[int] = set()
        ordered: list[Task] = []

        def visit(task: Task) -> None:
            if id(task) in visited:
                return
            visited.add(id(task))
            for title in task.dependencies:
                dependency = by_title.get(title)
                if dependency is not None:
                    visit(dependency)
            ordered.append(task)

        for task in tasks:
            visit(task)
        return ordered

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_tasks(self, content: str) -> list[Task]:
        """Recover tasks from raw LLM text under the configured policy."""
        return recover_records(
            content,
            TASK_SPEC,
            policy=self.config.failure_policy,
            listener=self.listener,
        )

    @staticmethod
    def _with_identity(tasks: list[Task], feature_id: str | None) -> list[Task]:
        for task in tasks:
            task.id = str(uuid4())
            task.feature_id = feature_id
            task.is_selected = True
        return tasks
