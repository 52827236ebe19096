"""
Batch persistence summaries.

Used by the service layer to report how a set of lesson changes or
booking intents was applied to the store.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, Optional
from enum import Enum


class ChangeStatus(Enum):
    """Persistence status of one lesson change."""
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ChangeResult:
    """
    Result of persisting one lesson change.

    Attributes:
        lesson_id: Lesson that was changed
        status: Persistence status
        changes: Field changes that were sent
        error_message: Error message if failed or reason if skipped
    """

    lesson_id: str
    status: ChangeStatus
    changes: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lesson_id": self.lesson_id,
            "status": self.status.value,
            "changes": self.changes or {},
            "error_message": self.error_message,
        }

    @property
    def is_success(self) -> bool:
        """Check if the change was persisted."""
        return self.status == ChangeStatus.APPLIED

    @property
    def is_failure(self) -> bool:
        return self.status == ChangeStatus.FAILED


@dataclass
class BatchSummary:
    """
    Summary of a bulk operation.

    Attributes:
        operation: Operation name (e.g. "propagate", "apply_template")
        modification_kind: Classified change kind, if any
        execution_time: Execution timestamp (ISO 8601)
        affected: Number of lessons changed successfully
        failed: Number of lessons whose persistence failed
        skipped: Number of lessons left untouched
        dry_run: Whether nothing was persisted
        results: Per-lesson results
        errors: Error details
    """

    operation: str
    modification_kind: Optional[str] = None
    execution_time: Optional[str] = None
    affected: int = 0
    failed: int = 0
    skipped: int = 0
    dry_run: bool = False
    results: list = None
    errors: list = None

    def __post_init__(self):
        """Initialize default values for lists."""
        if self.results is None:
            self.results = []
        if self.errors is None:
            self.errors = []
        if self.execution_time is None:
            self.execution_time = datetime.now().isoformat()

    def record(self, result: ChangeResult) -> None:
        """Add a per-lesson result and update the counters."""
        self.results.append(result)
        if result.status == ChangeStatus.APPLIED:
            self.affected += 1
        elif result.status == ChangeStatus.FAILED:
            self.failed += 1
            self.errors.append({
                "lesson_id": result.lesson_id,
                "error": result.error_message,
            })
        else:
            self.skipped += 1

    @property
    def is_complete(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "modification_kind": self.modification_kind,
            "execution_time": self.execution_time,
            "affected": self.affected,
            "failed": self.failed,
            "skipped": self.skipped,
            "dry_run": self.dry_run,
            "results": [r.to_dict() for r in self.results],
            "errors": self.errors,
        }
