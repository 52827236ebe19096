"""
Unit tests for validation layer.
"""

import pytest
import sys
from dataclasses import replace
from datetime import datetime, time
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from lesson_engine.models.lesson import Booking, Lesson, TemplateLesson
from lesson_engine.validation.validators import ValidationResult
from lesson_engine.validation.lesson_validator import LessonValidator, TemplateLessonValidator


@pytest.fixture
def template_lesson():
    return TemplateLesson(
        id="tl-1",
        day_of_week=0,
        start_time=time(10, 0),
        end_time=time(11, 0),
        teacher_id="teacher-1",
        capacity=2,
        assigned_student_ids=("s1", "s2"),
    )


class TestValidationResult:
    """Test cases for ValidationResult."""

    def test_valid_result(self):
        """Test creating a valid result."""
        result = ValidationResult(is_valid=True)

        assert result.is_valid
        assert not result.has_errors
        assert result.rule is None

    def test_first_rule_is_kept(self):
        """Test only the first failing rule is recorded."""
        result = ValidationResult(is_valid=True)
        result.add_error("too many", "capacity_exceeded").add_error("bad day", "invalid_day_of_week")

        assert not result.is_valid
        assert result.rule == "capacity_exceeded"
        assert len(result.errors) == 2

    def test_warnings_do_not_invalidate(self):
        """Test warnings don't affect validity."""
        result = ValidationResult(is_valid=True)
        result.add_warning("Warning message")

        assert result.is_valid
        assert result.has_warnings

    def test_merge_prefixes_messages(self):
        """Test merging copies errors with a prefix."""
        inner = ValidationResult(is_valid=True).add_error("bad", "invalid_time")
        outer = ValidationResult(is_valid=True).merge(inner, "slot 1: ")

        assert outer.errors == ["slot 1: bad"]
        assert outer.rule == "invalid_time"

    def test_get_summary_with_errors(self):
        """Test summary with errors."""
        result = ValidationResult(is_valid=True)
        result.add_error("Error 1")

        summary = result.get_summary()

        assert "Errors (1):" in summary
        assert "Error 1" in summary


class TestTemplateLessonValidator:
    """Test cases for TemplateLessonValidator."""

    @pytest.fixture
    def validator(self):
        return TemplateLessonValidator()

    def test_valid_template_lesson(self, validator, template_lesson):
        """Test a well-formed slot passes."""
        assert validator.validate(template_lesson).is_valid

    @pytest.mark.parametrize("day", [-1, 7, "1", True])
    def test_invalid_day_of_week(self, validator, template_lesson, day):
        """Test day_of_week outside 0..6 is rejected."""
        slot = replace(template_lesson, day_of_week=day)

        result = validator.validate(slot)

        assert result.rule == "invalid_day_of_week"

    def test_start_after_end(self, validator, template_lesson):
        """Test a slot ending before it starts is rejected."""
        slot = replace(template_lesson, start_time=time(12, 0))

        assert validator.validate(slot).rule == "invalid_time"

    def test_roster_over_capacity(self, validator, template_lesson):
        """Test more assigned students than seats is rejected."""
        slot = replace(template_lesson, assigned_student_ids=("s1", "s2", {"student_id": "s3"}))

        assert validator.validate(slot).rule == "capacity_exceeded"

    def test_duplicate_roster_entries_count_once(self, validator, template_lesson):
        """Test the same student in two shapes takes one seat."""
        slot = replace(template_lesson, assigned_student_ids=("s1", {"id": "s1"}, {"student_id": " s2 "}))

        assert validator.validate(slot).is_valid

    def test_zero_capacity(self, validator, template_lesson):
        """Test capacity below 1 is rejected."""
        slot = replace(template_lesson, capacity=0, assigned_student_ids=())

        assert validator.validate(slot).rule == "invalid_capacity"

    def test_missing_teacher(self, validator, template_lesson):
        """Test blank teacher is rejected."""
        slot = replace(template_lesson, teacher_id="  ")

        assert validator.validate(slot).rule == "missing_field"


class TestLessonValidator:
    """Test cases for LessonValidator."""

    def test_over_capacity_lesson(self):
        """Test active bookings above capacity are rejected."""
        lesson = Lesson(
            id="l1",
            teacher_id="t1",
            start_time=datetime(2026, 2, 9, 10),
            end_time=datetime(2026, 2, 9, 11),
            capacity=1,
            bookings=(Booking("l1", "s1"), Booking("l1", "s2")),
        )

        assert LessonValidator().validate(lesson).rule == "capacity_exceeded"

    def test_empty_individual_lesson_warns(self):
        """Test an individual lesson without a student only warns."""
        lesson = Lesson(
            id="l1",
            teacher_id="t1",
            start_time=datetime(2026, 2, 9, 10),
            end_time=datetime(2026, 2, 9, 11),
        )

        result = LessonValidator().validate(lesson)

        assert result.is_valid
        assert result.has_warnings


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
