"""
Lesson and template lesson validators.

Validates structure and business rules before lessons are produced or
changed.
"""

from datetime import datetime, time

from ..models.lesson import Lesson, TemplateLesson
from ..scheduling.identity import normalize
from .validators import Validator, ValidationResult


class TemplateLessonValidator(Validator):
    """
    Validator for weekly template slots.

    Validates:
    - Required fields (id, teacher_id)
    - day_of_week in 0..6 (0 = Monday)
    - start_time before end_time, both time-of-day values
    - capacity >= 1 and roster size <= capacity

    Examples:
        >>> validator = TemplateLessonValidator()
        >>> result = validator.validate(template_lesson)
        >>> if not result.is_valid:
        ...     print(result.get_summary())
    """

    MIN_DAY = 0
    MAX_DAY = 6

    def validate(self, data: TemplateLesson) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        for error in self.validate_required_fields(data, ["id", "teacher_id"]):
            result.add_error(error, "missing_field")

        error = self.validate_integer_range(
            data.day_of_week, "day_of_week", self.MIN_DAY, self.MAX_DAY
        )
        if error:
            result.add_error(error, "invalid_day_of_week")

        if not isinstance(data.start_time, time) or not isinstance(data.end_time, time):
            result.add_error(
                "start_time and end_time must be times of day",
                "invalid_time"
            )
        else:
            error = self.validate_interval(data.start_time, data.end_time)
            if error:
                result.add_error(error, "invalid_time")

        error = self.validate_positive_number(data.capacity, "capacity")
        if error:
            result.add_error(error, "invalid_capacity")
            return result

        roster = normalize(data.assigned_student_ids)
        if len(roster) > data.capacity:
            result.add_error(
                f"{len(roster)} assigned students exceed capacity {data.capacity}",
                "capacity_exceeded"
            )

        return result


class LessonValidator(Validator):
    """
    Validator for concrete lessons.

    Validates required fields, the time interval, capacity and that the
    active roster fits in the capacity.
    """

    def validate(self, data: Lesson) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        for error in self.validate_required_fields(data, ["id", "teacher_id"]):
            result.add_error(error, "missing_field")

        if not isinstance(data.start_time, datetime) or not isinstance(data.end_time, datetime):
            result.add_error("start_time and end_time must be datetimes", "invalid_time")
        else:
            error = self.validate_interval(data.start_time, data.end_time)
            if error:
                result.add_error(error, "invalid_time")

        error = self.validate_positive_number(data.capacity, "capacity")
        if error:
            result.add_error(error, "invalid_capacity")
        elif data.enrolled_count > data.capacity:
            result.add_error(
                f"{data.enrolled_count} enrolled students exceed capacity {data.capacity}",
                "capacity_exceeded"
            )

        if data.capacity == 1 and data.enrolled_count == 0:
            result.add_warning(f"Individual lesson {data.id} has no student")

        return result
