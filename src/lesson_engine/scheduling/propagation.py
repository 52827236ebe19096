"""
Bulk propagation of lesson edits.

When one lesson of a recurring series is edited, the same change can be
replayed onto every later lesson of the series. Only template-level
fields are propagated (time of day, capacity, teacher, color, subject).
Rosters are never propagated; student changes go through the
enrollment gate one lesson at a time.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models.intents import LessonDiff
from ..models.lesson import Lesson
from ..models.result import FailureKind, Result
from ..validation.lesson_validator import LessonValidator

logger = logging.getLogger(__name__)

_validator = LessonValidator()


class ModificationKind(Enum):
    """Classified change between two snapshots of a lesson."""
    CHANGE_TIME = "change_time"
    CHANGE_CAPACITY = "change_capacity"
    CHANGE_TEACHER = "change_teacher"
    CHANGE_COLOR = "change_color"
    CHANGE_SUBJECT = "change_subject"
    COMPOSITE = "composite"
    NO_CHANGE = "no_change"
    INDETERMINATE = "indeterminate"


# Compared field -> kind when it is the only change
_FIELD_KINDS = {
    "time": ModificationKind.CHANGE_TIME,
    "capacity": ModificationKind.CHANGE_CAPACITY,
    "teacher_id": ModificationKind.CHANGE_TEACHER,
    "color": ModificationKind.CHANGE_COLOR,
    "subject": ModificationKind.CHANGE_SUBJECT,
}


@dataclass(frozen=True)
class Classification:
    """
    Outcome of ``classify``.

    Attributes:
        kind: Dominant kind, COMPOSITE when several fields changed
        changed_fields: Changed fields in comparison order
        reason: Why the input could not be classified (INDETERMINATE only)
    """

    kind: ModificationKind
    changed_fields: Tuple[str, ...] = ()
    reason: Optional[str] = None

    @property
    def is_change(self) -> bool:
        return self.kind not in (ModificationKind.NO_CHANGE, ModificationKind.INDETERMINATE)

    def includes(self, name: str) -> bool:
        return name in self.changed_fields


def _indeterminate(reason: str) -> Classification:
    logger.warning(f"Cannot classify lesson change: {reason}")
    return Classification(kind=ModificationKind.INDETERMINATE, reason=reason)


def _problem(lesson: Any, label: str) -> Optional[str]:
    if lesson is None:
        return f"{label} lesson is missing"
    for name in ("start_time", "end_time"):
        if not isinstance(getattr(lesson, name, None), datetime):
            return f"{label} lesson has no valid {name}"
    capacity = getattr(lesson, "capacity", None)
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        return f"{label} lesson has invalid capacity {capacity!r}"
    return None


def classify(before: Optional[Lesson], after: Optional[Lesson]) -> Classification:
    """
    Classify the change between two snapshots of the same lesson.

    Id and date are ignored. Time is compared as time of day of both
    start and end.

    Returns:
        Classification with NO_CHANGE when nothing observable changed,
        a single kind for one changed field, COMPOSITE for several, or
        INDETERMINATE when either snapshot is missing or malformed.
    """
    problem = _problem(before, "original") or _problem(after, "edited")
    if problem:
        return _indeterminate(problem)

    changed = []
    if (before.start_time.time(), before.end_time.time()) != \
            (after.start_time.time(), after.end_time.time()):
        changed.append("time")
    if before.capacity != after.capacity:
        changed.append("capacity")
    for name in ("teacher_id", "color", "subject"):
        if getattr(before, name) != getattr(after, name):
            changed.append(name)

    if not changed:
        return Classification(kind=ModificationKind.NO_CHANGE)
    if len(changed) == 1:
        return Classification(kind=_FIELD_KINDS[changed[0]], changed_fields=tuple(changed))
    return Classification(kind=ModificationKind.COMPOSITE, changed_fields=tuple(changed))


@dataclass(frozen=True)
class SkippedLesson:
    """A sibling the change could not be applied to."""

    lesson_id: str
    reason: str


@dataclass
class PropagationPlan:
    """
    Sibling lessons with the edit applied.

    Attributes:
        classification: Classified change that was replayed
        lessons: Updated sibling lessons
        diffs: Field changes to persist, one per updated lesson
        skipped: Siblings left untouched, with the reason
    """

    classification: Classification
    lessons: List[Lesson] = field(default_factory=list)
    diffs: List[LessonDiff] = field(default_factory=list)
    skipped: List[SkippedLesson] = field(default_factory=list)

    @property
    def kind(self) -> ModificationKind:
        return self.classification.kind

    @property
    def affected_count(self) -> int:
        return len(self.lessons)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modification_type": self.kind.value,
            "changed_fields": list(self.classification.changed_fields),
            "affected_count": self.affected_count,
            "lesson_ids": [lesson.id for lesson in self.lessons],
            "skipped": [{"lesson_id": s.lesson_id, "reason": s.reason} for s in self.skipped],
        }


def _same_pattern(origin: Lesson, candidate: Lesson) -> bool:
    return (
        candidate.teacher_id == origin.teacher_id
        and candidate.start_time.weekday() == origin.start_time.weekday()
        and candidate.start_time.time() == origin.start_time.time()
    )


def select_siblings(edited: Lesson, candidates: Iterable[Lesson]) -> List[Lesson]:
    """
    Later lessons of the same series, ordered by start time.

    Lessons generated from a template are matched by
    ``template_lesson_id``; lessons without one are matched by teacher,
    weekday and start time of day.
    """
    siblings = []
    for candidate in candidates:
        if candidate is None or candidate.id == edited.id:
            continue
        if not isinstance(candidate.start_time, datetime):
            continue
        if edited.template_lesson_id is not None:
            if candidate.template_lesson_id != edited.template_lesson_id:
                continue
        elif not _same_pattern(edited, candidate):
            continue
        if candidate.start_time > edited.start_time:
            siblings.append(candidate)
    return sorted(siblings, key=lambda lesson: lesson.start_time)


def apply_change(
    classification: Classification,
    edited: Lesson,
    target: Lesson
) -> Tuple[Lesson, LessonDiff]:
    """Replay the classified fields of ``edited`` onto ``target``."""
    updates: Dict[str, Any] = {}
    changes: Dict[str, Any] = {}

    if classification.includes("time"):
        start = target.start_time.replace(
            hour=edited.start_time.hour,
            minute=edited.start_time.minute,
            second=edited.start_time.second,
            microsecond=edited.start_time.microsecond,
        )
        end = start + edited.duration
        updates.update(start_time=start, end_time=end)
        changes.update(start_time=start.isoformat(), end_time=end.isoformat())

    if classification.includes("capacity"):
        updates["capacity"] = edited.capacity
        changes["max_students"] = edited.capacity

    for name in ("teacher_id", "color", "subject"):
        if classification.includes(name):
            updates[name] = getattr(edited, name)
            changes[name] = getattr(edited, name)

    return replace(target, **updates), LessonDiff(lesson_id=target.id, changes=changes)


def plan_subsequent(
    before: Optional[Lesson],
    after: Optional[Lesson],
    candidates: Iterable[Lesson]
) -> Result[PropagationPlan]:
    """
    Plan the replay of an edit onto later lessons of the same series.

    Args:
        before: Snapshot of the edited lesson before the edit
        after: The edited lesson
        candidates: Lessons to choose siblings from

    Siblings that would become invalid (e.g. more enrolled students than
    the new capacity) are skipped and listed in ``plan.skipped``.

    Returns:
        Success with a PropagationPlan (empty for NO_CHANGE), or an
        INDETERMINATE failure when the change cannot be classified.
    """
    classification = classify(before, after)

    if classification.kind == ModificationKind.INDETERMINATE:
        return Result.failure(
            f"Cannot classify lesson change: {classification.reason}",
            kind=FailureKind.INDETERMINATE,
            details={"reason": classification.reason},
        )

    plan = PropagationPlan(classification=classification)
    if classification.kind == ModificationKind.NO_CHANGE:
        return Result.success(plan, "No changes to propagate")

    for sibling in select_siblings(before, candidates):
        lesson, diff = apply_change(classification, after, sibling)
        validation = _validator.validate(lesson)
        if not validation.is_valid:
            plan.skipped.append(SkippedLesson(lesson_id=sibling.id, reason=validation.errors[0]))
            continue
        plan.lessons.append(lesson)
        plan.diffs.append(diff)

    logger.info(
        f"Planned {classification.kind.value} for {plan.affected_count} lessons "
        f"({len(plan.skipped)} skipped)"
    )
    return Result.success(plan, f"{plan.affected_count} lessons will be updated")
