"""
Template materialization.

A weekly template is a list of TemplateLesson slots, each placed by a
day offset from Monday (0 = Monday ... 6 = Sunday) and a time of day.
Materializing the template onto a week produces one dated Lesson per
slot, with the slot's assigned roster enrolled as active bookings.

Pre-assigned rosters are materialized verbatim: no credit check and no
debit. Capacity still applies.

A template application can be undone with ``rollback_week``, which plans
the removal of the week's template lessons and the refund of their
bookings.
"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..models.intents import ReleasePlan
from ..models.lesson import Booking, Lesson, TemplateLesson
from ..models.result import Result
from ..validation.lesson_validator import TemplateLessonValidator
from ..validation.validators import ValidationResult
from .credits import CreditLedger, balance_of
from .enrollment import EnrollmentGate
from .identity import normalize

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]

_validator = TemplateLessonValidator()


def week_start_monday(any_date: DateLike) -> datetime:
    """
    Monday 00:00 of the ISO week containing ``any_date``.

    Sunday belongs to the week that started six days earlier. A
    ``datetime`` keeps its tzinfo; a plain ``date`` gives a naive
    datetime.

    Examples:
        >>> week_start_monday(date(2026, 1, 25))
        datetime.datetime(2026, 1, 19, 0, 0)
    """
    if isinstance(any_date, datetime):
        monday = any_date - timedelta(days=any_date.weekday())
        return monday.replace(hour=0, minute=0, second=0, microsecond=0)

    monday = any_date - timedelta(days=any_date.weekday())
    return datetime.combine(monday, time())


def _anchor(week_start: DateLike) -> datetime:
    if isinstance(week_start, datetime):
        return week_start.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime.combine(week_start, time())


def _current_monday(now: Optional[datetime], tzinfo) -> datetime:
    if now is None:
        now = datetime.now(tzinfo)
    return week_start_monday(now)


def _slot(monday: datetime, day_of_week: int, at: time) -> datetime:
    day = monday.date() + timedelta(days=day_of_week)
    return datetime.combine(day, at, tzinfo=monday.tzinfo)


def _check_week(week_start: DateLike, now: Optional[datetime]) -> Optional[Result]:
    if week_start.weekday() != 0:
        return Result.violation(
            "not_monday",
            f"Week start {week_start.isoformat()} is not a Monday",
            week_start=week_start.isoformat(),
        )

    monday = _anchor(week_start)
    current = _current_monday(now, monday.tzinfo)
    if monday.date() < current.date():
        return Result.violation(
            "past_week",
            f"Cannot apply a template to a past week "
            f"({monday.date().isoformat()} < {current.date().isoformat()})",
            week_start=monday.date().isoformat(),
            current_week_start=current.date().isoformat(),
        )

    return None


def _check_template(template: Sequence[TemplateLesson]) -> Optional[Result]:
    combined = ValidationResult(is_valid=True)

    for slot in template:
        combined.merge(_validator.validate(slot), prefix=f"template lesson {slot.id}: ")

    if combined.has_errors:
        logger.warning(f"Template rejected with {len(combined.errors)} error(s)")
        return Result.violation(
            combined.rule or "invalid_template", combined.errors[0], errors=list(combined.errors)
        )

    return None


def materialize(
    template: Sequence[TemplateLesson],
    week_start: DateLike,
    now: Optional[datetime] = None,
    id_factory: Optional[Callable[[], str]] = None
) -> Result[List[Lesson]]:
    """
    Expand a template into dated lessons for one week.

    Args:
        template: Template slots
        week_start: Monday of the target week
        now: Current time for the past-week guard (default: datetime.now)
        id_factory: Lesson id generator (default: uuid4)

    Returns:
        Success with one Lesson per slot, or a single VALIDATION failure
        (``not_monday``, ``past_week``, ``capacity_exceeded`` or a slot
        field rule) with no lessons produced.
    """
    rejection = _check_week(week_start, now) or _check_template(template)
    if rejection is not None:
        logger.info(f"Materialization rejected: {rejection.message}")
        return rejection

    new_id = id_factory or (lambda: str(uuid.uuid4()))
    monday = _anchor(week_start)
    lessons = []

    for slot in template:
        lesson_id = new_id()
        bookings = tuple(
            Booking(lesson_id=lesson_id, student_id=student_id)
            for student_id in sorted(normalize(slot.assigned_student_ids))
        )
        lessons.append(Lesson(
            id=lesson_id,
            teacher_id=slot.teacher_id,
            start_time=_slot(monday, slot.day_of_week, slot.start_time),
            end_time=_slot(monday, slot.day_of_week, slot.end_time),
            capacity=slot.capacity,
            subject=slot.subject,
            color=slot.color,
            bookings=bookings,
            template_lesson_id=slot.id,
        ))

    logger.info(f"Materialized {len(lessons)} lessons for week {monday.date().isoformat()}")
    return Result.success(lessons, f"{len(lessons)} lessons materialized")


@dataclass
class MaterializationPreview:
    """
    Dry-run report of a template application.

    Attributes:
        week_start: Monday of the target week
        lessons: Lessons that would be created
        credits_by_student: New bookings per student
        conflicts_by_student: Bookings skipped because the student is
            already booked at an overlapping time
        roster: All students that would get a booking
    """

    week_start: datetime
    lessons: List[Lesson] = field(default_factory=list)
    credits_by_student: Dict[str, int] = field(default_factory=dict)
    conflicts_by_student: Dict[str, int] = field(default_factory=dict)
    roster: List[str] = field(default_factory=list)

    @property
    def lesson_count(self) -> int:
        return len(self.lessons)

    @property
    def total_credits(self) -> int:
        return sum(self.credits_by_student.values())

    def shortfalls(self, ledger: Optional[CreditLedger]) -> Dict[str, Dict[str, int]]:
        """Students whose balance is below the credits this week would use."""
        result = {}
        for student_id, required in sorted(self.credits_by_student.items()):
            balance = balance_of(ledger, student_id)
            if balance < required:
                result[student_id] = {"current_balance": balance, "required": required}
        return result

    def to_rows(self) -> List[Dict[str, Any]]:
        """One row per (lesson, student) booking, for tabular export."""
        rows = []
        for lesson in self.lessons:
            for student_id in sorted(lesson.enrolled_student_ids):
                rows.append({
                    "week_start": self.week_start.date().isoformat(),
                    "template_lesson_id": lesson.template_lesson_id,
                    "teacher_id": lesson.teacher_id,
                    "start_time": lesson.start_time.isoformat(),
                    "end_time": lesson.end_time.isoformat(),
                    "student_id": student_id,
                })
        return rows

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week_start": self.week_start.isoformat(),
            "lesson_count": self.lesson_count,
            "total_credits": self.total_credits,
            "credits_by_student": dict(self.credits_by_student),
            "conflicts_by_student": dict(self.conflicts_by_student),
            "roster": list(self.roster),
            "lessons": [lesson.to_dict() for lesson in self.lessons],
        }


def drop_conflicts(
    lesson: Lesson,
    existing_bookings: Iterable[Booking]
) -> Tuple[Lesson, List[str]]:
    """
    Remove roster students who are already booked at an overlapping time.

    Used by both ``preview`` and template application so that the dry
    run reports exactly what will be persisted.

    Returns:
        The lesson without the conflicting bookings, and the sorted ids
        of the students that were dropped
    """
    busy = {
        b.student_id for b in existing_bookings
        if b.is_active and b.overlaps(lesson.start_time, lesson.end_time)
    }
    conflicted = sorted(lesson.enrolled_student_ids & busy)
    if not conflicted:
        return lesson, []

    bookings = tuple(b for b in lesson.bookings if b.student_id not in busy)
    return replace(lesson, bookings=bookings), conflicted


def preview(
    template: Sequence[TemplateLesson],
    week_start: DateLike,
    now: Optional[datetime] = None,
    existing_bookings: Optional[Iterable[Booking]] = None
) -> Result[MaterializationPreview]:
    """
    Run the same expansion as ``materialize`` and report its impact.

    Existing active bookings that overlap a new lesson for the same
    student are counted as conflicts instead of credit usage, and the
    conflicting bookings are left out of the previewed lessons.
    """
    result = materialize(template, week_start, now=now)
    if result.is_failure:
        return result

    existing = list(existing_bookings or ())
    lessons = []
    credits: Counter = Counter()
    conflicts: Counter = Counter()

    for lesson in result.value:
        lesson, conflicted = drop_conflicts(lesson, existing)
        lessons.append(lesson)
        credits.update(lesson.enrolled_student_ids)
        conflicts.update(conflicted)

    report = MaterializationPreview(
        week_start=_anchor(week_start),
        lessons=lessons,
        credits_by_student=dict(credits),
        conflicts_by_student=dict(conflicts),
        roster=sorted(set(credits) | set(conflicts)),
    )
    return Result.success(report, f"Preview: {report.lesson_count} lessons")


@dataclass
class WeekRollback:
    """
    Plan for undoing a template application.

    Attributes:
        week_start: Monday of the rolled back week
        plans: One release plan per template lesson of that week
    """

    week_start: datetime
    plans: List[ReleasePlan] = field(default_factory=list)

    @property
    def lesson_ids(self) -> List[str]:
        return [plan.lesson_id for plan in self.plans]

    @property
    def total_refund(self) -> int:
        return sum(plan.total_refund() for plan in self.plans)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week_start": self.week_start.isoformat(),
            "lesson_ids": self.lesson_ids,
            "total_refund": self.total_refund,
            "refunds": {
                plan.lesson_id: plan.refunded_students for plan in self.plans
            },
        }


def rollback_week(
    lessons: Optional[Iterable[Lesson]],
    week_start: DateLike,
    gate: Optional[EnrollmentGate] = None
) -> Result[WeekRollback]:
    """
    Plan the removal of every template-generated lesson of one week.

    Only lessons with a ``template_lesson_id`` whose start falls within
    the week are selected; manually created lessons are kept. Each
    selected lesson gets a release plan that refunds and cancels its
    active bookings.

    Returns:
        Success with a WeekRollback, or a VALIDATION failure
        (``not_monday``, or ``not_applied`` when the week holds no
        template lessons)
    """
    if week_start.weekday() != 0:
        return Result.violation(
            "not_monday",
            f"Week start {week_start.isoformat()} is not a Monday",
            week_start=week_start.isoformat(),
        )

    monday = _anchor(week_start)
    first_day = monday.date()
    last_day = first_day + timedelta(days=7)
    gate = gate or EnrollmentGate()

    selected = sorted(
        (
            lesson for lesson in (lessons or ())
            if lesson.template_lesson_id
            and first_day <= lesson.start_time.date() < last_day
        ),
        key=lambda lesson: lesson.start_time,
    )

    if not selected:
        logger.warning(f"No template lessons to roll back for week {first_day.isoformat()}")
        return Result.violation(
            "not_applied",
            f"No template lessons found for week {first_day.isoformat()}",
            week_start=first_day.isoformat(),
        )

    rollback = WeekRollback(
        week_start=monday,
        plans=[gate.release_lesson(lesson) for lesson in selected],
    )
    logger.info(
        f"Rollback of week {first_day.isoformat()}: {len(selected)} lessons, "
        f"{rollback.total_refund} credits refunded"
    )
    return Result.success(rollback, f"{len(selected)} lessons will be removed")
