"""
Unit tests for student id normalization.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from lesson_engine.models.lesson import Booking, BookingStatus
from lesson_engine.scheduling.identity import (
    added,
    booking_student_ids,
    changed,
    normalize,
    removed,
    student_id_of,
)


class TestNormalize:
    """Test cases for normalize."""

    def test_mixed_shapes(self):
        """Test scalars, {id} and {student_id} are all accepted."""
        result = normalize(["s1", {"id": "s2"}, {"student_id": "s3"}])

        assert result == frozenset({"s1", "s2", "s3"})

    def test_id_takes_precedence(self):
        """Test id wins when both id and student_id are present."""
        assert normalize([{"id": "a", "student_id": "b"}]) == frozenset({"a"})

    def test_trims_and_drops_empty(self):
        """Test whitespace is trimmed and empty values dropped."""
        result = normalize(["  s1  ", "", "   ", {"student_id": "  "}, None])

        assert result == frozenset({"s1"})

    def test_preserves_case(self):
        """Test ids differing only in case stay distinct."""
        result = normalize(["AbC", "abc"])

        assert result == frozenset({"AbC", "abc"})

    def test_numbers_are_stringified(self):
        """Test numeric ids become strings."""
        assert normalize([123, {"id": 456}]) == frozenset({"123", "456"})

    def test_duplicates_across_shapes_collapse(self):
        """Test the same id in different shapes counts once."""
        assert normalize(["s1", {"id": "s1"}, {"student_id": " s1"}]) == frozenset({"s1"})

    @pytest.mark.parametrize("value", [None, "s1", {"id": "s1"}, 42])
    def test_non_collection_input(self, value):
        """Test non-collection input yields an empty set."""
        assert normalize(value) == frozenset()

    def test_mapping_without_id_is_skipped(self):
        """Test a mapping with neither id nor student_id is not an identifier."""
        assert normalize([{"name": "Ivan"}, "s1"]) == frozenset({"s1"})

    @pytest.mark.parametrize("ids", [
        ["s1", " s2 ", {"id": "s3"}],
        [{"student_id": "x"}, "x", ""],
        [],
    ])
    def test_idempotent(self, ids):
        """Test normalizing the normalized ids gives the same set."""
        once = normalize(ids)

        assert normalize(list(once)) == once


class TestChanged:
    """Test cases for changed."""

    def test_same_ids_different_order(self):
        """Test reordering is not a change."""
        assert not changed(["s1", "s2"], ["s2", "s1"])

    def test_same_ids_different_shapes(self):
        """Test scalars vs {student_id} vs {id} is not a change."""
        assert not changed(["s1", "s2"], [{"student_id": "s2"}, {"id": "s1"}])

    def test_disjoint_same_size(self):
        """Test a disjoint roster of the same size is a change."""
        assert changed(["A", "B"], ["C", "D"])

    def test_size_difference(self):
        """Test adding a student is a change."""
        assert changed(["s1"], ["s1", "s2"])

    def test_none_and_empty_are_equal(self):
        """Test missing and empty rosters are the same."""
        assert not changed(None, [])

    def test_added_and_removed(self):
        """Test set differences between rosters."""
        old = ["s1", {"student_id": "s2"}]
        new = [{"id": "s2"}, "s3"]

        assert added(old, new) == frozenset({"s3"})
        assert removed(old, new) == frozenset({"s1"})


class TestBookingIds:
    """Test cases for booking student id extraction."""

    def test_student_id_not_booking_id(self):
        """Test the booking's own id is never used as the student id."""
        assert student_id_of({"id": "booking-1", "student_id": "s1"}) == "s1"
        assert student_id_of({"id": "booking-1"}) is None

    def test_user_id_fallback(self):
        """Test credit rows use user_id."""
        assert student_id_of({"user_id": " s9 "}) == "s9"

    def test_dataclass_booking(self):
        """Test Booking objects are supported."""
        assert student_id_of(Booking("l1", "s1")) == "s1"

    def test_cancelled_bookings_ignored(self):
        """Test only active bookings contribute ids."""
        bookings = [
            {"student_id": "s1", "status": "active"},
            {"student_id": "s2", "status": "cancelled"},
            Booking("l1", "s3", BookingStatus.CANCELLED),
            Booking("l1", "s4"),
            {"student_id": "s5"},
        ]

        assert booking_student_ids(bookings) == frozenset({"s1", "s4", "s5"})

    def test_none_bookings(self):
        """Test None is treated as no bookings."""
        assert booking_student_ids(None) == frozenset()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
