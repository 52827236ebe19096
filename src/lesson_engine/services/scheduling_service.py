"""
Scheduling service.

Connects the pure scheduling engine to a LessonStore: loads credits,
asks the enrollment gate, materializer and propagation planner for a
decision, and persists the resulting intents. Every store call goes
through a per-operation circuit breaker, and store failures come back
as UPSTREAM results instead of exceptions.
"""

import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..models.intents import (
    BookingAction,
    BookingIntent,
    EnrollmentOutcome,
    LessonDiff,
    ReleasePlan,
)
from ..models.lesson import Actor, Booking, Lesson, TemplateLesson
from ..models.result import FailureKind, Result
from ..models.summary import BatchSummary, ChangeResult, ChangeStatus
from ..resilience.circuit_breaker import CircuitBreaker
from ..scheduling import credits, materializer, propagation
from ..scheduling.credits import CreditLedger
from ..scheduling.enrollment import EnrollmentGate
from ..scheduling.interfaces import LessonStore
from ..scheduling.materializer import DateLike, MaterializationPreview
from ..utils.config import EngineConfig, config as default_config
from ..utils.file_utils import generate_filename, save_csv, save_json


logger = logging.getLogger(__name__)

PREVIEW_COLUMNS = [
    "week_start",
    "template_lesson_id",
    "teacher_id",
    "start_time",
    "end_time",
    "student_id",
]


class SchedulingService:
    """
    Orchestrates scheduling decisions against a lesson store.

    The service is synchronous and meant for a single caller; callers
    serialize concurrent add/remove requests for the same
    (lesson, student) pair.

    Examples:
        >>> service = SchedulingService(store)
        >>> ledger = service.load_ledger().value
        >>> result = service.add_student(lesson, "s1", actor, ledger)
        >>> if result.kind == FailureKind.ELIGIBILITY_DENIED:
        ...     print(result.details)
    """

    OPERATIONS = (
        "fetch_credits",
        "fetch_bookings",
        "persist_booking",
        "persist_lesson_change",
    )

    def __init__(
        self,
        store: LessonStore,
        config: Optional[EngineConfig] = None,
        gate: Optional[EnrollmentGate] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize SchedulingService.

        Args:
            store: Lesson store implementation
            config: Engine configuration (default: module singleton)
            gate: Enrollment gate (default: EnrollmentGate())
            clock: Source of the current time for the past-week guard
        """
        self.store = store
        self.config = config or default_config
        self.gate = gate or EnrollmentGate()
        self._clock = clock or (lambda: datetime.now(self.config.tz))

        self.breakers: Dict[str, CircuitBreaker] = {
            name: CircuitBreaker(
                name,
                failure_threshold=self.config.upstream_failure_threshold,
                timeout=self.config.upstream_reset_timeout,
            )
            for name in self.OPERATIONS
        }

    def _call(self, operation: str, *args) -> Result[Any]:
        return self.breakers[operation].call_safe(getattr(self.store, operation), *args)

    def now(self) -> datetime:
        return self._clock()

    # Credits and bookings

    def load_ledger(self) -> Result[CreditLedger]:
        """
        Fetch credits and build a ledger.

        Always succeeds. When the fetch fails or the response holds no
        balances, the result is degraded and carries an empty ledger, so
        every non-admin add is denied until credits are known.
        """
        fetched = self._call("fetch_credits")
        if fetched.is_failure:
            logger.error(f"Credit fetch failed, using empty ledger: {fetched.message}")
            return Result.degraded(
                CreditLedger(),
                "Credits unavailable",
                details=fetched.details,
                error=fetched.error,
            )

        ledger = credits.build(fetched.value)
        if ledger.is_unknown:
            return Result.degraded(
                ledger,
                "Credit response contained no balances",
                details={"shape": ledger.shape.value},
            )

        return Result.success(ledger, f"Loaded {len(ledger)} balances")

    def refresh_bookings(self, lesson: Lesson) -> Result[Lesson]:
        """
        Replace a lesson's bookings with the store's current list.

        On failure the lesson is returned unchanged as a degraded result.
        """
        fetched = self._call("fetch_bookings", lesson.id)
        if fetched.is_failure:
            return Result.degraded(
                lesson,
                f"Bookings of lesson {lesson.id} could not be refreshed",
                details=fetched.details,
                error=fetched.error,
            )

        bookings = tuple(b for b in (fetched.value or ()) if isinstance(b, Booking))
        return Result.success(replace(lesson, bookings=bookings))

    # Enrollment

    def _persist_booking(self, intent: BookingIntent) -> Result[Any]:
        return self._call("persist_booking", intent.lesson_id, intent.student_id, intent.action)

    def _commit(self, decision: Result[EnrollmentOutcome]) -> Result[EnrollmentOutcome]:
        if decision.is_failure:
            return decision

        persisted = self._persist_booking(decision.value.booking)
        if persisted.is_failure:
            return Result.failure(
                f"Booking could not be saved: {persisted.message}",
                persisted.error,
                kind=FailureKind.UPSTREAM,
                details=persisted.details,
            )

        return decision

    def add_student(
        self,
        lesson: Lesson,
        student_id: Any,
        actor: Actor,
        ledger: Optional[CreditLedger] = None
    ) -> Result[EnrollmentOutcome]:
        """
        Add a student to a lesson and persist the booking.

        The ledger is loaded when not given. If that load was degraded,
        the gate decides on the empty ledger and the outcome is marked
        with ``ledger_degraded``.
        """
        degraded = False
        if ledger is None:
            loaded = self.load_ledger()
            ledger = loaded.value
            degraded = loaded.is_degraded

        result = self._commit(self.gate.add(lesson, student_id, ledger, actor))
        if degraded:
            result.details["ledger_degraded"] = True
        return result

    def remove_student(
        self,
        lesson: Lesson,
        student_id: Any,
        actor: Actor
    ) -> Result[EnrollmentOutcome]:
        """Remove a student from a lesson and persist the cancellation."""
        return self._commit(self.gate.remove(lesson, student_id, actor))

    def delete_lesson(self, lesson: Lesson) -> Result[ReleasePlan]:
        """
        Cancel every active booking of a lesson, then soft-delete it.

        The store refunds one credit per cancelled booking. If any
        cancellation fails, the lesson is not deleted. The failure
        details carry ``student_ids`` (bookings still active) and
        ``lesson``, the lesson with the successful cancellations
        applied, so a retry only targets what remains.
        """
        return self._release(self.gate.release_lesson(lesson), lesson)

    def _release(self, plan: ReleasePlan, lesson: Lesson) -> Result[ReleasePlan]:
        failed = []
        remaining = lesson

        for intent in plan.bookings:
            persisted = self._persist_booking(intent)
            if persisted.is_failure:
                failed.append(intent.student_id)
            else:
                remaining = remaining.without_student(intent.student_id)

        if failed:
            logger.error(f"Lesson {lesson.id}: {len(failed)} bookings could not be cancelled")
            return Result.failure(
                f"Could not release {len(failed)} bookings of lesson {lesson.id}",
                kind=FailureKind.UPSTREAM,
                details={
                    "lesson_id": lesson.id,
                    "student_ids": failed,
                    "cancelled_student_ids": sorted(
                        lesson.enrolled_student_ids - remaining.enrolled_student_ids
                    ),
                    "lesson": remaining,
                },
            )

        diff = LessonDiff(lesson_id=lesson.id, changes={"deleted_at": self.now().isoformat()})
        deleted = self._call("persist_lesson_change", lesson.id, diff)
        if deleted.is_failure:
            return Result.failure(
                f"Lesson {lesson.id} could not be deleted: {deleted.message}",
                deleted.error,
                kind=FailureKind.UPSTREAM,
                details=dict(deleted.details, lesson=remaining),
            )

        logger.info(f"Deleted lesson {lesson.id}, refunded {len(plan.credits)} bookings")
        return Result.success(plan, f"Lesson {lesson.id} deleted")

    # Templates

    def preview_template(
        self,
        template: Sequence[TemplateLesson],
        week_start: DateLike,
        existing_bookings: Optional[Iterable[Booking]] = None
    ) -> Result[MaterializationPreview]:
        """Dry-run a template application; nothing is persisted."""
        return materializer.preview(
            template, week_start, now=self.now(), existing_bookings=existing_bookings
        )

    def apply_template(
        self,
        template: Sequence[TemplateLesson],
        week_start: DateLike,
        existing_bookings: Optional[Iterable[Booking]] = None
    ) -> Result[BatchSummary]:
        """
        Materialize a template and persist the lessons and their bookings.

        Roster bookings are persisted with ``BookingAction.ASSIGN`` and
        never charge credits. Students already booked at an overlapping
        time are left out, exactly as ``preview_template`` reports them,
        and recorded as SKIPPED.

        Returns:
            VALIDATION failure when materialization is rejected, success
            when everything was saved, or a degraded summary when some
            lessons failed to save.
        """
        materialized = materializer.materialize(template, week_start, now=self.now())
        if materialized.is_failure:
            return materialized

        existing = list(existing_bookings or ())
        summary = BatchSummary(operation="apply_template")
        for lesson in materialized.value:
            lesson, conflicted = materializer.drop_conflicts(lesson, existing)
            for student_id in conflicted:
                summary.record(ChangeResult(
                    lesson.id,
                    ChangeStatus.SKIPPED,
                    {"student_id": student_id},
                    "schedule conflict",
                ))
            summary.record(self._persist_new_lesson(lesson))

        return self._finish(summary)

    def _persist_new_lesson(self, lesson: Lesson) -> ChangeResult:
        changes = lesson.to_dict()
        created = self._call("persist_lesson_change", lesson.id, LessonDiff(lesson.id, changes))
        if created.is_failure:
            return ChangeResult(lesson.id, ChangeStatus.FAILED, changes, created.message)

        for student_id in sorted(lesson.enrolled_student_ids):
            booked = self._persist_booking(
                BookingIntent(lesson.id, student_id, BookingAction.ASSIGN)
            )
            if booked.is_failure:
                return ChangeResult(
                    lesson.id,
                    ChangeStatus.FAILED,
                    changes,
                    f"booking for {student_id}: {booked.message}",
                )

        return ChangeResult(lesson.id, ChangeStatus.APPLIED, changes)

    def rollback_week(
        self,
        lessons: Iterable[Lesson],
        week_start: DateLike
    ) -> Result[BatchSummary]:
        """
        Undo a template application: refund and delete the week's template lessons.

        Each lesson is released like ``delete_lesson``. A lesson whose
        bookings could not all be cancelled is kept and reported as FAILED.
        """
        lessons = list(lessons or ())
        planned = materializer.rollback_week(lessons, week_start, gate=self.gate)
        if planned.is_failure:
            return planned

        by_id = {lesson.id: lesson for lesson in lessons}
        summary = BatchSummary(operation="rollback_week")
        for plan in planned.value.plans:
            released = self._release(plan, by_id[plan.lesson_id])
            if released.is_failure:
                summary.record(ChangeResult(plan.lesson_id, ChangeStatus.FAILED, None, released.message))
            else:
                summary.record(ChangeResult(
                    plan.lesson_id,
                    ChangeStatus.APPLIED,
                    {"refunded_student_ids": plan.refunded_students},
                ))

        return self._finish(summary)

    # Propagation

    def propagate(
        self,
        before: Lesson,
        after: Lesson,
        candidates: Iterable[Lesson],
        dry_run: bool = False
    ) -> Result[BatchSummary]:
        """
        Replay an edit onto later lessons of the same series.

        Args:
            before: Edited lesson before the edit
            after: Edited lesson after the edit
            candidates: Lessons to search for siblings
            dry_run: Plan only, persist nothing

        Returns:
            INDETERMINATE failure when the change cannot be classified,
            otherwise a summary whose ``affected`` is the number of
            updated siblings
        """
        planned = propagation.plan_subsequent(before, after, candidates)
        if planned.is_failure:
            return planned

        plan = planned.value
        summary = BatchSummary(
            operation="propagate",
            modification_kind=plan.kind.value,
            dry_run=dry_run,
        )

        for skipped in plan.skipped:
            summary.record(ChangeResult(skipped.lesson_id, ChangeStatus.SKIPPED, None, skipped.reason))

        for diff in plan.diffs:
            if dry_run:
                summary.record(ChangeResult(diff.lesson_id, ChangeStatus.SKIPPED, diff.changes, "dry run"))
                continue
            persisted = self._call("persist_lesson_change", diff.lesson_id, diff)
            if persisted.is_failure:
                summary.record(ChangeResult(diff.lesson_id, ChangeStatus.FAILED, diff.changes, persisted.message))
            else:
                summary.record(ChangeResult(diff.lesson_id, ChangeStatus.APPLIED, diff.changes))

        return self._finish(summary)

    def _finish(self, summary: BatchSummary) -> Result[BatchSummary]:
        logger.info(
            f"{summary.operation}: affected={summary.affected}, "
            f"failed={summary.failed}, skipped={summary.skipped}"
        )
        if summary.failed:
            return Result.degraded(
                summary,
                f"{summary.failed} lessons could not be saved",
                details={"errors": list(summary.errors)},
            )
        return Result.success(summary, f"{summary.affected} lessons updated")

    # Export

    def export_preview(
        self,
        preview: MaterializationPreview,
        directory: Optional[Path] = None
    ) -> Result[List[Path]]:
        """
        Write a preview as JSON (full report) and CSV (one row per booking).

        Returns:
            Paths of the written files, or a failure if either write failed
        """
        directory = Path(directory) if directory else self.config.export_dir
        json_path = directory / generate_filename("template_preview", "json")
        csv_path = directory / generate_filename("template_preview", "csv")

        if not save_json(preview.to_dict(), json_path):
            return Result.failure(f"Failed to write {json_path}")
        if not save_csv(preview.to_rows(), csv_path, columns=PREVIEW_COLUMNS):
            return Result.failure(f"Failed to write {csv_path}")

        logger.info(f"Exported preview to {directory}")
        return Result.success([json_path, csv_path])
