"""
Unit tests for bulk propagation planning.
"""

import pytest
import sys
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from lesson_engine.models.lesson import Booking, Lesson
from lesson_engine.models.result import FailureKind
from lesson_engine.scheduling.propagation import (
    ModificationKind,
    classify,
    plan_subsequent,
    select_siblings,
)


def weekly(lesson, weeks, **changes):
    """Copy of ``lesson`` moved ``weeks`` weeks later."""
    shift = timedelta(weeks=weeks)
    return replace(
        lesson,
        id=f"{lesson.id}-w{weeks}",
        start_time=lesson.start_time + shift,
        end_time=lesson.end_time + shift,
        **changes,
    )


@pytest.fixture
def lesson():
    return Lesson(
        id="l0",
        teacher_id="teacher-1",
        start_time=datetime(2026, 2, 9, 10, 0),
        end_time=datetime(2026, 2, 9, 11, 0),
        capacity=3,
        subject="Math",
        color="#3366ff",
        template_lesson_id="tl-1",
    )


@pytest.fixture
def series(lesson):
    return [weekly(lesson, -1), lesson, weekly(lesson, 1), weekly(lesson, 2)]


class TestClassify:
    """Test cases for classify."""

    def test_identical_is_no_change(self, lesson):
        """Test identical snapshots classify as NO_CHANGE."""
        assert classify(lesson, replace(lesson)).kind == ModificationKind.NO_CHANGE

    def test_id_and_date_ignored(self, lesson):
        """Test another week's copy is not a change."""
        assert classify(lesson, weekly(lesson, 3)).kind == ModificationKind.NO_CHANGE

    def test_capacity_only(self, lesson):
        """Test changing only capacity returns the capacity kind."""
        assert classify(lesson, replace(lesson, capacity=5)).kind == ModificationKind.CHANGE_CAPACITY

    @pytest.mark.parametrize("changes,kind", [
        ({"teacher_id": "teacher-2"}, ModificationKind.CHANGE_TEACHER),
        ({"color": "#ff0000"}, ModificationKind.CHANGE_COLOR),
        ({"subject": "Physics"}, ModificationKind.CHANGE_SUBJECT),
        ({"end_time": datetime(2026, 2, 9, 11, 30)}, ModificationKind.CHANGE_TIME),
    ])
    def test_single_field_kinds(self, lesson, changes, kind):
        """Test each field maps to its own kind."""
        assert classify(lesson, replace(lesson, **changes)).kind == kind

    def test_composite(self, lesson):
        """Test capacity and teacher together is composite, not NO_CHANGE or INDETERMINATE."""
        result = classify(lesson, replace(lesson, capacity=5, teacher_id="teacher-2"))

        assert result.kind == ModificationKind.COMPOSITE
        assert result.changed_fields == ("capacity", "teacher_id")
        assert result.is_change

    @pytest.mark.parametrize("after", [
        None,
        "not-a-lesson",
    ])
    def test_missing_input_is_indeterminate(self, lesson, after):
        """Test unusable input is INDETERMINATE, distinct from NO_CHANGE."""
        result = classify(lesson, after)

        assert result.kind == ModificationKind.INDETERMINATE
        assert not result.is_change
        assert result.reason

    def test_invalid_fields_are_indeterminate(self, lesson):
        """Test a missing start time or non-integer capacity is INDETERMINATE."""
        assert classify(lesson, replace(lesson, start_time=None)).kind == ModificationKind.INDETERMINATE
        assert classify(lesson, replace(lesson, capacity="3")).kind == ModificationKind.INDETERMINATE


class TestSelectSiblings:
    """Test cases for select_siblings."""

    def test_template_siblings_after_edit(self, lesson, series):
        """Test only later lessons of the same template are selected."""
        other_template = weekly(lesson, 3, template_lesson_id="tl-2")

        siblings = select_siblings(lesson, series + [other_template])

        assert [s.id for s in siblings] == ["l0-w1", "l0-w2"]

    def test_time_pattern_fallback(self, lesson):
        """Test lessons without a template are matched by teacher, weekday and time."""
        manual = replace(lesson, template_lesson_id=None)
        candidates = [
            weekly(manual, 1),
            weekly(manual, 2, teacher_id="teacher-9"),
            replace(weekly(manual, 3), start_time=datetime(2026, 3, 2, 12, 0)),
            replace(weekly(manual, 1), id="tuesday", start_time=datetime(2026, 2, 17, 10, 0)),
        ]

        assert [s.id for s in select_siblings(manual, candidates)] == ["l0-w1"]


class TestPlanSubsequent:
    """Test cases for plan_subsequent."""

    def test_time_change_keeps_sibling_dates(self, lesson, series):
        """Test a moved time of day is applied on each sibling's own date."""
        after = replace(lesson, start_time=datetime(2026, 2, 9, 12, 0), end_time=datetime(2026, 2, 9, 13, 30))

        plan = plan_subsequent(lesson, after, series).value

        assert plan.kind == ModificationKind.CHANGE_TIME
        assert plan.affected_count == 2
        assert plan.lessons[0].start_time == datetime(2026, 2, 16, 12, 0)
        assert plan.lessons[0].end_time == datetime(2026, 2, 16, 13, 30)
        assert plan.diffs[1].changes == {
            "start_time": "2026-02-23T12:00:00",
            "end_time": "2026-02-23T13:30:00",
        }

    def test_rosters_never_propagated(self, lesson, series):
        """Test sibling bookings are untouched even when the edited lesson's roster differs."""
        series[2] = series[2].with_booking(Booking("l0-w1", "s9"))
        after = replace(lesson, teacher_id="teacher-2", bookings=(Booking("l0", "s1"),))

        plan = plan_subsequent(lesson, after, series).value

        assert plan.lessons[0].enrolled_student_ids == frozenset({"s9"})
        assert plan.lessons[1].enrolled_student_ids == frozenset()
        assert all("bookings" not in d.changes for d in plan.diffs)
        assert plan.diffs[0].changes == {"teacher_id": "teacher-2"}

    def test_capacity_reduction_skips_crowded_siblings(self, lesson, series):
        """Test siblings with more students than the new capacity are skipped."""
        crowded = series[3].with_booking(Booking("l0-w2", "s1")).with_booking(Booking("l0-w2", "s2"))
        series[3] = crowded
        after = replace(lesson, capacity=1)

        plan = plan_subsequent(lesson, after, series).value

        assert [l.id for l in plan.lessons] == ["l0-w1"]
        assert plan.lessons[0].capacity == 1
        assert plan.diffs[0].changes == {"max_students": 1}
        assert [s.lesson_id for s in plan.skipped] == ["l0-w2"]

    def test_no_change_is_empty_success(self, lesson, series):
        """Test NO_CHANGE yields an empty successful plan."""
        result = plan_subsequent(lesson, replace(lesson), series)

        assert result.is_success
        assert result.value.affected_count == 0
        assert result.value.kind == ModificationKind.NO_CHANGE

    def test_indeterminate_is_failure(self, lesson, series):
        """Test an unclassifiable change is reported as INDETERMINATE."""
        result = plan_subsequent(lesson, None, series)

        assert result.is_failure
        assert result.kind == FailureKind.INDETERMINATE

    def test_composite_applies_all_fields(self, lesson, series):
        """Test every changed field is replayed."""
        after = replace(lesson, color="#000000", subject="Physics")

        plan = plan_subsequent(lesson, after, series).value

        assert plan.kind == ModificationKind.COMPOSITE
        assert all(l.color == "#000000" and l.subject == "Physics" for l in plan.lessons)
        assert plan.to_dict()["affected_count"] == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
