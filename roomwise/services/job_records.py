"""
Job record state machine for Analysis, Recommendation and Visualization records.

    initial --(worker starts)--> in progress --(success)--> completed
                                             \--(failure)--> failed

Only the request handler (on creation or regeneration) and the single worker
processing a record write its status, result and error fields. A completed
record always carries its result and no error; a failed record carries an
error and no result.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.exceptions import InvalidTransitionError, JobSchedulingError
from roomwise.database.models import (
    Analysis,
    AnalysisStatus,
    Recommendation,
    RecommendationStatus,
    Visualization,
    VisualizationStatus,
)

logger = logging.getLogger(__name__)

COMPLETED = "completed"
FAILED = "failed"
TERMINAL_STATES = frozenset({COMPLETED, FAILED})


@dataclass(frozen=True)
class JobKind:
    name: str
    model: type
    initial: str
    in_progress: str
    result_fields: Tuple[str, ...]
    transitions: Dict[str, FrozenSet[str]] = field(default_factory=dict)

    @property
    def active_states(self) -> FrozenSet[str]:
        return frozenset({self.initial, self.in_progress})

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.transitions.get(current, frozenset())


ANALYSIS = JobKind(
    name="Analysis",
    model=Analysis,
    initial=AnalysisStatus.PENDING.value,
    in_progress=AnalysisStatus.PROCESSING.value,
    result_fields=("results",),
    transitions={
        AnalysisStatus.PENDING.value: frozenset({AnalysisStatus.PROCESSING.value, FAILED}),
        AnalysisStatus.PROCESSING.value: frozenset({COMPLETED, FAILED}),
    },
)

# Recommendations are created directly in the generating state
RECOMMENDATION = JobKind(
    name="Recommendation",
    model=Recommendation,
    initial=RecommendationStatus.GENERATING.value,
    in_progress=RecommendationStatus.GENERATING.value,
    result_fields=("items", "summary"),
    transitions={
        RecommendationStatus.PENDING.value: frozenset({RecommendationStatus.GENERATING.value, FAILED}),
        RecommendationStatus.GENERATING.value: frozenset({COMPLETED, FAILED}),
    },
)

VISUALIZATION = JobKind(
    name="Visualization",
    model=Visualization,
    initial=VisualizationStatus.QUEUED.value,
    in_progress=VisualizationStatus.PROCESSING.value,
    result_fields=("output",),
    transitions={
        VisualizationStatus.QUEUED.value: frozenset({VisualizationStatus.PROCESSING.value, FAILED}),
        VisualizationStatus.PROCESSING.value: frozenset({COMPLETED, FAILED}),
    },
)


def _empty_result(field_name: str) -> Any:
    return [] if field_name == "items" else None


def _check(kind: JobKind, record, target: str) -> None:
    if not kind.can_transition(record.status, target):
        raise InvalidTransitionError(kind.name, record.id, record.status, target)


def is_active(kind: JobKind, record) -> bool:
    return record.status in kind.active_states


def is_stale(kind: JobKind, record, stale_after: timedelta, now: Optional[datetime] = None) -> bool:
    """An active record that has not moved for longer than ``stale_after``."""
    if not is_active(kind, record):
        return False
    now = now or datetime.utcnow()
    last_change = record.updated_at or record.created_at
    return last_change is not None and now - last_change > stale_after


def can_regenerate(kind: JobKind, record, stale_after: timedelta, now: Optional[datetime] = None) -> bool:
    return record.status in TERMINAL_STATES or is_stale(kind, record, stale_after, now)


async def mark_in_progress(db: AsyncSession, kind: JobKind, record) -> None:
    """Move a freshly scheduled record into its in-progress state (no-op if it starts there)."""
    if record.status != kind.in_progress:
        _check(kind, record, kind.in_progress)
        record.status = kind.in_progress
    record.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"[{kind.name} {record.id}] {kind.in_progress}")


async def complete(db: AsyncSession, kind: JobKind, record, **results) -> None:
    """Persist results and move the record to completed."""
    _check(kind, record, COMPLETED)
    missing = [name for name in kind.result_fields if name not in results]
    if missing:
        raise ValueError(f"{kind.name} completion is missing {', '.join(missing)}")
    primary = results[kind.result_fields[0]]
    if primary is None or primary == [] or primary == {}:
        raise ValueError(f"{kind.name} cannot complete with an empty {kind.result_fields[0]}")

    now = datetime.utcnow()
    for name in kind.result_fields:
        setattr(record, name, results[name])
    record.status = COMPLETED
    record.error = None
    record.completed_at = now
    record.updated_at = now
    await db.commit()
    logger.info(f"[{kind.name} {record.id}] completed")


async def fail(db: AsyncSession, kind: JobKind, record, message: str) -> None:
    """Record a failure. Clears any result so no partial output survives."""
    _check(kind, record, FAILED)
    now = datetime.utcnow()
    for name in kind.result_fields:
        setattr(record, name, _empty_result(name))
    record.status = FAILED
    record.error = message or "Unknown error"
    record.completed_at = now
    record.updated_at = now
    await db.commit()
    logger.warning(f"[{kind.name} {record.id}] failed: {record.error}")


def reset_for_regeneration(kind: JobKind, record, extra: Optional[Dict[str, Any]] = None) -> None:
    """
    Put an existing record back into its scheduled state for another run.

    Results and errors are dropped and ``attempt`` is bumped so messages from
    an earlier run are ignored by the worker. The caller commits.
    """
    for name in kind.result_fields:
        setattr(record, name, _empty_result(name))
    for name, value in (extra or {}).items():
        setattr(record, name, value)
    record.status = kind.initial
    record.error = None
    record.completed_at = None
    record.updated_at = datetime.utcnow()
    record.attempt = (record.attempt or 1) + 1
    logger.info(f"[{kind.name} {record.id}] reset for attempt {record.attempt}")


def should_process(kind: JobKind, record, attempt: Optional[int]) -> bool:
    """Whether a delivered task message still applies to the record."""
    if record is None:
        return False
    if attempt is not None and record.attempt != attempt:
        return False
    return record.status == kind.initial


async def schedule(db: AsyncSession, queue, kind: JobKind, record, task_name: str, **task_kwargs) -> None:
    """
    Enqueue the worker for a committed record.

    If the queue rejects the task the record is failed and JobSchedulingError is
    raised, so the caller does not count the request against the rate limit.
    """
    try:
        queue.enqueue(task_name, attempt=record.attempt, **task_kwargs)
    except Exception as e:
        logger.error(f"[{kind.name} {record.id}] failed to enqueue {task_name}: {e}", exc_info=True)
        await fail(db, kind, record, "Failed to schedule background job")
        raise JobSchedulingError() from e
