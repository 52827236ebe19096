"""
Lesson data models.

Engine-facing types are frozen dataclasses so that every scheduling
function works over immutable inputs. ``LessonPayload`` and
``BookingPayload`` describe the raw API shapes the calendar receives.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, time
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Tuple, TypedDict

from ..scheduling.identity import clean_id


StudentId = str

BookingStatusType = Literal["active", "cancelled"]


class BookingStatus(Enum):
    """Booking lifecycle status."""
    ACTIVE = "active"
    CANCELLED = "cancelled"


class Role(Enum):
    """Actor roles that matter to the enrollment gate."""
    ADMIN = "admin"
    TEACHER = "teacher"
    METHODOLOGIST = "methodologist"
    STUDENT = "student"


class BookingPayload(TypedDict, total=False):
    """Booking row as returned by the bookings API."""

    id: str
    lesson_id: str
    student_id: str
    status: BookingStatusType
    start_time: str
    end_time: str


class LessonPayload(TypedDict, total=False):
    """Lesson row as rendered by the calendar (bookings may be null)."""

    id: str
    teacher_id: str
    start_time: str
    end_time: str
    max_students: int
    current_students: int
    subject: str
    color: str
    template_lesson_id: str
    bookings: Optional[List[BookingPayload]]


@dataclass(frozen=True)
class Actor:
    """The user performing an operation."""

    id: str
    role: Role = Role.STUDENT

    @property
    def is_admin(self) -> bool:
        """Admins may enroll students with insufficient credits."""
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class Booking:
    """
    Enrollment edge between a lesson and a student.

    Attributes:
        lesson_id: Lesson the booking belongs to
        student_id: Enrolled student, trimmed on construction
        status: ACTIVE or CANCELLED
        id: Booking identifier assigned by the store, if known
        start_time: Lesson start embedded in booking listings
        end_time: Lesson end embedded in booking listings
    """

    lesson_id: str
    student_id: StudentId
    status: BookingStatus = BookingStatus.ACTIVE
    id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "student_id", clean_id(self.student_id) or "")

    @property
    def is_active(self) -> bool:
        return self.status == BookingStatus.ACTIVE

    def cancelled(self) -> 'Booking':
        return replace(self, status=BookingStatus.CANCELLED)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """True when the embedded interval intersects [start, end)."""
        if self.start_time is None or self.end_time is None:
            return False
        return self.start_time < end and start < self.end_time


@dataclass(frozen=True)
class Lesson:
    """
    One scheduled session.

    ``enrolled_student_ids`` is derived from the active bookings, so the
    roster and the bookings can never disagree.

    Examples:
        >>> lesson = Lesson(
        ...     id="lesson-1",
        ...     teacher_id="teacher-1",
        ...     start_time=datetime(2026, 2, 9, 10, 0),
        ...     end_time=datetime(2026, 2, 9, 11, 0),
        ...     capacity=2,
        ... )
        >>> lesson.is_full
        False
    """

    id: str
    teacher_id: str
    start_time: datetime
    end_time: datetime
    capacity: int = 1
    subject: Optional[str] = None
    color: Optional[str] = None
    bookings: Tuple[Booking, ...] = ()
    template_lesson_id: Optional[str] = None

    @property
    def enrolled_student_ids(self) -> FrozenSet[StudentId]:
        return frozenset(b.student_id for b in self.bookings if b.is_active and b.student_id)

    @property
    def enrolled_count(self) -> int:
        return len(self.enrolled_student_ids)

    @property
    def is_full(self) -> bool:
        return self.enrolled_count >= self.capacity

    @property
    def is_individual(self) -> bool:
        return self.capacity == 1

    @property
    def duration(self):
        return self.end_time - self.start_time

    def is_enrolled(self, student_id: StudentId) -> bool:
        return clean_id(student_id) in self.enrolled_student_ids

    def with_booking(self, booking: Booking) -> 'Lesson':
        """Return a copy with ``booking`` appended."""
        return replace(self, bookings=self.bookings + (booking,))

    def without_student(self, student_id: StudentId) -> 'Lesson':
        """Return a copy with the student's active bookings cancelled."""
        key = clean_id(student_id)
        bookings = tuple(
            b.cancelled() if b.is_active and b.student_id == key else b
            for b in self.bookings
        )
        return replace(self, bookings=bookings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the API payload shape."""
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "max_students": self.capacity,
            "current_students": self.enrolled_count,
            "subject": self.subject,
            "color": self.color,
            "template_lesson_id": self.template_lesson_id,
            "student_ids": sorted(self.enrolled_student_ids),
        }


@dataclass(frozen=True)
class TemplateLesson:
    """
    Recurring weekly slot.

    Attributes:
        id: Template lesson identifier
        day_of_week: Days after Monday (0 = Monday ... 6 = Sunday)
        start_time: Time of day the lesson starts
        end_time: Time of day the lesson ends
        teacher_id: Assigned teacher
        capacity: Maximum number of students
        subject: Subject name
        color: Calendar color
        assigned_student_ids: Roster copied into every materialization
    """

    id: str
    day_of_week: int
    start_time: time
    end_time: time
    teacher_id: str
    capacity: int = 1
    subject: Optional[str] = None
    color: Optional[str] = None
    assigned_student_ids: Tuple[StudentId, ...] = field(default_factory=tuple)
