"""
Intents emitted by the scheduling engine.

Intents are plain data. The engine never performs I/O; the caller
executes these against the store.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .lesson import Lesson, StudentId


class CreditOperation(Enum):
    """Ledger mutation direction."""
    DEBIT = "debit"
    REFUND = "refund"


class BookingAction(Enum):
    """
    Booking persistence action.

    CREATE debits one credit and CANCEL refunds it. ASSIGN books a
    pre-assigned template roster student without touching credits.
    """
    CREATE = "create"
    CANCEL = "cancel"
    ASSIGN = "assign"


@dataclass(frozen=True)
class CreditIntent:
    """Debit or refund of credits for one student and lesson."""

    student_id: StudentId
    lesson_id: str
    operation: CreditOperation
    amount: int = 1

    @property
    def delta(self) -> int:
        """Signed change to the student's balance."""
        return -self.amount if self.operation == CreditOperation.DEBIT else self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "lesson_id": self.lesson_id,
            "operation": self.operation.value,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class BookingIntent:
    """Create or cancel a booking."""

    lesson_id: str
    student_id: StudentId
    action: BookingAction

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lesson_id": self.lesson_id,
            "student_id": self.student_id,
            "action": self.action.value,
        }


@dataclass(frozen=True)
class LessonDiff:
    """
    Field changes to persist for one lesson.

    ``changes`` maps payload field names (``start_time``, ``end_time``,
    ``max_students``, ``teacher_id``, ``color``, ``subject``) to new values.
    """

    lesson_id: str
    changes: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.changes


@dataclass(frozen=True)
class EnrollmentOutcome:
    """
    Successful add/remove decision.

    Attributes:
        lesson: Lesson with the booking change applied
        credit: Debit (add) or refund (remove) intent
        booking: Booking create or cancel intent
    """

    lesson: Lesson
    credit: CreditIntent
    booking: BookingIntent


@dataclass(frozen=True)
class ReleasePlan:
    """Intents needed to delete a lesson that still has bookings."""

    lesson_id: str
    credits: Tuple[CreditIntent, ...] = ()
    bookings: Tuple[BookingIntent, ...] = ()

    @property
    def refunded_students(self) -> List[StudentId]:
        return [intent.student_id for intent in self.credits]

    def total_refund(self, student_id: Optional[StudentId] = None) -> int:
        return sum(
            intent.amount for intent in self.credits
            if student_id is None or intent.student_id == student_id
        )
