"""
Enrollment gate.

Per (lesson, student) pair there are two states, NOT_ENROLLED and
ENROLLED. Adding a student is gated by capacity and, for non-admin
actors, by a balance of at least one credit. Removing an enrolled
student is always allowed and refunds the credit.

The balance check only gates joining. A student who is already enrolled
is never blocked by a zero or negative balance.
"""

import logging
from enum import Enum
from typing import Any, Optional

from ..models.intents import (
    BookingAction,
    BookingIntent,
    CreditIntent,
    CreditOperation,
    EnrollmentOutcome,
    ReleasePlan,
)
from ..models.lesson import Actor, Booking, Lesson
from ..models.result import FailureKind, Result
from .credits import CreditLedger, balance_of
from .identity import clean_id

logger = logging.getLogger(__name__)


class EnrollmentState(Enum):
    """Enrollment state of one student in one lesson."""
    NOT_ENROLLED = "not_enrolled"
    ENROLLED = "enrolled"


class EnrollmentGate:
    """
    Decision function for adding and removing students.

    The gate is stateless; it returns intents for the caller to persist
    and never performs I/O.

    Examples:
        >>> gate = EnrollmentGate()
        >>> result = gate.add(lesson, "s1", ledger, actor)
        >>> if result.is_success:
        ...     store.persist_booking(lesson.id, "s1", "create")
        >>> elif result.kind == FailureKind.ELIGIBILITY_DENIED:
        ...     print(result.details["current_balance"])
    """

    REQUIRED_CREDITS = 1

    def state_of(self, lesson: Lesson, student_id: Any) -> EnrollmentState:
        key = clean_id(student_id)
        if key is not None and lesson.is_enrolled(key):
            return EnrollmentState.ENROLLED
        return EnrollmentState.NOT_ENROLLED

    def add(
        self,
        lesson: Lesson,
        student_id: Any,
        ledger: Optional[CreditLedger],
        actor: Actor
    ) -> Result[EnrollmentOutcome]:
        """
        Try to move a student from NOT_ENROLLED to ENROLLED.

        Args:
            lesson: Current lesson state
            student_id: Student to add
            ledger: Credit ledger (None is treated as empty)
            actor: User performing the add

        Returns:
            Success with debit and booking-create intents, or a failure:
            VALIDATION (``invalid_student``, ``already_enrolled``,
            ``capacity_exceeded``) or ELIGIBILITY_DENIED carrying
            ``current_balance`` and ``required``.
        """
        key = clean_id(student_id)
        if key is None:
            return Result.violation("invalid_student", "Student id is empty")

        if lesson.is_enrolled(key):
            return Result.violation(
                "already_enrolled",
                f"Student {key} is already enrolled in lesson {lesson.id}",
                student_id=key,
                lesson_id=lesson.id,
            )

        if lesson.enrolled_count >= lesson.capacity:
            logger.info(f"Lesson {lesson.id} is full ({lesson.enrolled_count}/{lesson.capacity})")
            return Result.violation(
                "capacity_exceeded",
                f"Lesson {lesson.id} is full",
                capacity=lesson.capacity,
                enrolled=lesson.enrolled_count,
            )

        balance = balance_of(ledger, key)
        if not actor.is_admin and balance < self.REQUIRED_CREDITS:
            logger.info(
                f"Enrollment denied for {key} in lesson {lesson.id}: "
                f"balance={balance}, required={self.REQUIRED_CREDITS}"
            )
            return Result.failure(
                f"Insufficient credits: {balance} available, "
                f"{self.REQUIRED_CREDITS} required",
                kind=FailureKind.ELIGIBILITY_DENIED,
                details={
                    "student_id": key,
                    "current_balance": balance,
                    "required": self.REQUIRED_CREDITS,
                },
            )

        if actor.is_admin and balance < self.REQUIRED_CREDITS:
            logger.info(f"Admin {actor.id} enrolling {key} with overdraft (balance={balance})")

        outcome = EnrollmentOutcome(
            lesson=lesson.with_booking(Booking(lesson_id=lesson.id, student_id=key)),
            credit=CreditIntent(
                student_id=key,
                lesson_id=lesson.id,
                operation=CreditOperation.DEBIT,
                amount=self.REQUIRED_CREDITS,
            ),
            booking=BookingIntent(
                lesson_id=lesson.id,
                student_id=key,
                action=BookingAction.CREATE,
            ),
        )
        return Result.success(outcome, f"Student {key} added to lesson {lesson.id}")

    def remove(
        self,
        lesson: Lesson,
        student_id: Any,
        actor: Optional[Actor] = None
    ) -> Result[EnrollmentOutcome]:
        """
        Move a student from ENROLLED to NOT_ENROLLED.

        The balance is not consulted. Removing a student who is not
        enrolled is a VALIDATION failure (``not_enrolled``).
        """
        key = clean_id(student_id)
        if key is None or not lesson.is_enrolled(key):
            return Result.violation(
                "not_enrolled",
                f"Student {key} is not enrolled in lesson {lesson.id}",
                student_id=key,
                lesson_id=lesson.id,
            )

        if actor is not None:
            logger.debug(f"{actor.role.value} {actor.id} removing {key} from {lesson.id}")

        outcome = EnrollmentOutcome(
            lesson=lesson.without_student(key),
            credit=CreditIntent(
                student_id=key,
                lesson_id=lesson.id,
                operation=CreditOperation.REFUND,
                amount=self.REQUIRED_CREDITS,
            ),
            booking=BookingIntent(
                lesson_id=lesson.id,
                student_id=key,
                action=BookingAction.CANCEL,
            ),
        )
        return Result.success(outcome, f"Student {key} removed from lesson {lesson.id}")

    def release_lesson(self, lesson: Lesson) -> ReleasePlan:
        """Refund and cancel intents for every active booking of a lesson being deleted."""
        students = sorted(lesson.enrolled_student_ids)
        return ReleasePlan(
            lesson_id=lesson.id,
            credits=tuple(
                CreditIntent(
                    student_id=student,
                    lesson_id=lesson.id,
                    operation=CreditOperation.REFUND,
                    amount=self.REQUIRED_CREDITS,
                )
                for student in students
            ),
            bookings=tuple(
                BookingIntent(
                    lesson_id=lesson.id,
                    student_id=student,
                    action=BookingAction.CANCEL,
                )
                for student in students
            ),
        )
