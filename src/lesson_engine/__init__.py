"""
Lesson enrollment, credit and scheduling engine.

This package provides:
- Student id normalization and roster change detection
- Credit ledger decoding from credit API responses
- The enrollment gate (add/remove decisions with credit intents)
- Weekly template materialization and dry-run previews
- Propagation of lesson edits to later lessons of a series
- Client-local calendar filtering
"""

from .models.lesson import Actor, Booking, BookingStatus, Lesson, Role, TemplateLesson
from .models.result import FailureKind, Result
from .scheduling.calendar_filter import AnnotatedLesson, annotate
from .scheduling.credits import CreditLedger, ResponseShape, balance_of, build
from .scheduling.enrollment import EnrollmentGate, EnrollmentState
from .scheduling.identity import changed, normalize
from .scheduling.materializer import materialize, preview, rollback_week, week_start_monday
from .scheduling.propagation import ModificationKind, classify, plan_subsequent

__all__ = [
    "Actor",
    "AnnotatedLesson",
    "Booking",
    "BookingStatus",
    "CreditLedger",
    "EnrollmentGate",
    "EnrollmentState",
    "FailureKind",
    "Lesson",
    "ModificationKind",
    "ResponseShape",
    "Result",
    "Role",
    "TemplateLesson",
    "annotate",
    "balance_of",
    "build",
    "changed",
    "classify",
    "materialize",
    "normalize",
    "plan_subsequent",
    "preview",
    "rollback_week",
    "week_start_monday",
]

__version__ = "0.1.0"
