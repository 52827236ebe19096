"""
Client-local calendar filtering.

Marks each lesson as filtered or not from the current selection,
without fetching anything. The selection is passed in explicitly.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Union

from ..models.lesson import Lesson, LessonPayload
from .identity import booking_student_ids, clean_id, normalize

LessonLike = Union[Lesson, LessonPayload]


@dataclass(frozen=True)
class AnnotatedLesson:
    """A lesson with its filter flag."""

    lesson: LessonLike
    is_filtered: bool


def _field(lesson: Any, name: str, payload_name: Optional[str] = None) -> Any:
    if isinstance(lesson, Mapping):
        return lesson.get(payload_name or name)
    return getattr(lesson, name, None)


def _capacity(lesson: Any) -> Optional[int]:
    return _field(lesson, "capacity", "max_students")


def _enrolled(lesson: Any) -> int:
    if isinstance(lesson, Mapping):
        current = lesson.get("current_students")
        if isinstance(current, int):
            return current
        return len(booking_student_ids(lesson.get("bookings")))
    return lesson.enrolled_count


def _hidden(
    lesson: Any,
    selected: frozenset,
    teacher_id: Optional[str],
    show_individual: bool,
    show_group: bool,
    hide_full: bool
) -> bool:
    capacity = _capacity(lesson)
    if isinstance(capacity, int):
        if not show_individual and capacity == 1:
            return True
        if not show_group and capacity > 1:
            return True
        if hide_full and _enrolled(lesson) >= capacity:
            return True

    if teacher_id is not None and clean_id(_field(lesson, "teacher_id")) != teacher_id:
        return True

    if selected:
        return not (booking_student_ids(_field(lesson, "bookings")) & selected)

    return False


def annotate(
    lessons: Optional[Iterable[LessonLike]],
    selected_student_ids: Any,
    teacher_id: Any = None,
    show_individual: bool = True,
    show_group: bool = True,
    hide_full: bool = False
) -> List[AnnotatedLesson]:
    """
    Flag lessons that do not match the current calendar selection.

    With no selected students nothing is filtered by student. Otherwise
    a lesson stays visible iff one of its active bookings belongs to a
    selected student. Missing or null bookings count as no bookings.

    Args:
        lessons: Lesson objects or lesson payload mappings
        selected_student_ids: Selected student ids (any shape accepted
            by ``normalize``)
        teacher_id: Only keep lessons of this teacher
        show_individual: Keep lessons with capacity 1
        show_group: Keep lessons with capacity above 1
        hide_full: Filter lessons with no free seat

    Returns:
        One AnnotatedLesson per input lesson, in input order

    Examples:
        >>> [a.is_filtered for a in annotate([{"bookings": None}], ["s1"])]
        [True]
    """
    selected = normalize(selected_student_ids)
    teacher = clean_id(teacher_id)

    return [
        AnnotatedLesson(
            lesson=lesson,
            is_filtered=_hidden(
                lesson, selected, teacher, show_individual, show_group, hide_full
            ),
        )
        for lesson in (lessons or ())
    ]
