"""
Abstract interface of the lesson store.

The engine never performs I/O. The service layer talks to the store
through this interface, which keeps it mockable in tests and lets the
store be implemented over REST, RPC or direct database access.
"""

from abc import ABC, abstractmethod
from typing import Any, List

from ..models.intents import BookingAction, LessonDiff
from ..models.lesson import Booking


class LessonStore(ABC):
    """
    Abstract interface for the remote lesson and credit store.

    Implementations may raise any exception on failure; callers wrap
    each operation in a circuit breaker and convert failures into
    UPSTREAM results.
    """

    @abstractmethod
    def fetch_credits(self) -> Any:
        """
        Fetch credit balances.

        Returns:
            Raw credit response in any shape accepted by
            ``scheduling.credits.build``
        """
        pass

    @abstractmethod
    def fetch_bookings(self, lesson_id: str) -> List[Booking]:
        """
        Fetch the bookings of one lesson.

        Args:
            lesson_id: Lesson identifier

        Returns:
            Bookings of the lesson, any status
        """
        pass

    @abstractmethod
    def persist_booking(
        self,
        lesson_id: str,
        student_id: str,
        action: BookingAction
    ) -> None:
        """
        Create, assign or cancel a booking.

        CREATE debits one credit, CANCEL refunds one credit and ASSIGN
        books without any credit change (template rosters). The store
        must allow at most one in-flight request per (lesson, student).
        """
        pass

    @abstractmethod
    def persist_lesson_change(self, lesson_id: str, diff: LessonDiff) -> None:
        """
        Apply field changes to one lesson.

        Used for direct edits, bulk propagation and new lessons.
        """
        pass
