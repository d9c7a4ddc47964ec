"""Generic normalizer: loosely-shaped dicts in, validated record models out.

The normalizer never rejects input.  A missing, blank or malformed field
takes its default; a non-dict item in an array is skipped; a non-dict value
passed to :func:`normalize` yields an all-defaults record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Optional

from prdforge.records.fields import _MISSING, coerce, lookup
from prdforge.records.specs import RecordSpec, RecordT
from prdforge.recovery import (
    FailurePolicy,
    RecoveryError,
    RecoveryListener,
    StrategyResult,
    recover,
)

logger = logging.getLogger(__name__)


def normalize(data: Any, spec: RecordSpec[RecordT]) -> RecordT:
    """Build one ``spec.model`` instance from *data*.

    Args:
        data: A parsed JSON value, normally a dict.
        spec: The record specification to apply.

    Returns:
        A validated model instance; never raises on malformed field values.
    """
    source = data if isinstance(data, dict) else {}
    values: dict[str, Any] = {}
    for fs in spec.fields:
        raw = lookup(source, fs)
        values[fs.attr] = fs.default_value() if raw is _MISSING else coerce(raw, fs)
    return spec.model.model_validate(values)


def normalize_many(items: Iterable[Any], spec: RecordSpec[RecordT]) -> list[RecordT]:
    """Normalize every dict in *items*, skipping anything that is not a dict."""
    records: list[RecordT] = []
    skipped = 0
    for item in items:
        if isinstance(item, dict):
            records.append(normalize(item, spec))
        else:
            skipped += 1
    if skipped:
        logger.debug("Skipped %d non-object %s item(s)", skipped, spec.name)
    return records


def records_from_value(value: Any, spec: RecordSpec[RecordT]) -> list[RecordT]:
    """Turn a recovered value (array or single object) into records."""
    if isinstance(value, list):
        return normalize_many(value, spec)
    if isinstance(value, dict):
        return [normalize(value, spec)]
    return []


@dataclass
class RecordBatch(Generic[RecordT]):
    """Records recovered from one LLM response, with the recovery outcome."""

    records: list[RecordT] = field(default_factory=list)
    result: Optional[StrategyResult] = None

    @property
    def recovered(self) -> bool:
        return self.result is not None and self.result.success


def recover_batch(
    text: str,
    spec: RecordSpec[RecordT],
    *,
    policy: FailurePolicy = FailurePolicy.EMPTY,
    listener: RecoveryListener | None = None,
) -> RecordBatch[RecordT]:
    """Recover and normalize records, keeping the :class:`StrategyResult`.

    Raises:
        RecoveryError: If every strategy failed and *policy* is ``RAISE``.
    """
    result = recover(text, wrapper_keys=spec.wrapper_keys, listener=listener)
    if not result.success:
        if policy is FailurePolicy.RAISE:
            raise RecoveryError(
                f"Could not recover {spec.name} records from LLM response "
                f"after {len(result.attempts)} attempt(s)",
                result.attempts,
            )
        logger.warning(
            "No %s records recovered after %d attempt(s); treating as empty",
            spec.name,
            len(result.attempts),
        )
        return RecordBatch(records=[], result=result)

    records = records_from_value(result.value, spec)
    logger.debug(
        "Recovered %d %s record(s) via strategy %d (%s)",
        len(records),
        spec.name,
        result.strategy_index,
        result.strategy_name,
    )
    return RecordBatch(records=records, result=result)


def recover_records(
    text: str,
    spec: RecordSpec[RecordT],
    *,
    policy: FailurePolicy = FailurePolicy.EMPTY,
    listener: RecoveryListener | None = None,
) -> list[RecordT]:
    """Recover and normalize records from raw LLM text.

    Args:
        text: The verbatim LLM response.
        spec: Which record type to build.
        policy: ``EMPTY`` returns ``[]`` on total failure; ``RAISE`` raises.
        listener: Optional recovery event listener.

    Returns:
        The normalized records, possibly empty.

    Raises:
        RecoveryError: If every strategy failed and *policy* is ``RAISE``.
    """
    return recover_batch(text, spec, policy=policy, listener=listener).records
