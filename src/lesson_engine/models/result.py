"""
Result<T> Pattern for scheduling decisions.

Every engine operation returns a Result instead of raising, so each call
site can render a specific message for the kind of outcome it received:

- VALIDATION: a rule was violated (past week, capacity, not enrolled)
- ELIGIBILITY_DENIED: the credit gate refused a new enrollment
- UPSTREAM: a collaborator call failed (failure) or data is partial (degraded)
- INDETERMINATE: a lesson change could not be classified
"""

from dataclasses import dataclass, field
from typing import Optional, Generic, TypeVar, Callable, Dict, Any
from enum import Enum


T = TypeVar('T')
U = TypeVar('U')


class ResultStatus(Enum):
    """Status of a Result."""
    SUCCESS = "success"
    FAILURE = "failure"


class FailureKind(Enum):
    """Category of a non-clean outcome."""
    VALIDATION = "validation"
    ELIGIBILITY_DENIED = "eligibility_denied"
    UPSTREAM = "upstream"
    INDETERMINATE = "indeterminate"


@dataclass
class Result(Generic[T]):
    """
    Unified result wrapper for engine operations.

    Attributes:
        status: Result status (SUCCESS or FAILURE)
        value: The result value (None on failure)
        error: The exception that caused failure, if any
        message: Human-readable description of the outcome
        kind: Failure category; on a success it marks degraded data
        details: Structured data for the caller (violated rule, balances)

    Examples:
        >>> result = Result.success([lesson], "1 lesson materialized")
        >>> result.is_success
        True

        >>> denied = Result.failure(
        ...     "Insufficient credits",
        ...     kind=FailureKind.ELIGIBILITY_DENIED,
        ...     details={"current_balance": 0, "required": 1}
        ... )
        >>> denied.details["required"]
        1
    """

    status: ResultStatus
    value: Optional[T] = None
    error: Optional[Exception] = None
    message: Optional[str] = None
    kind: Optional[FailureKind] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        """Check if the result represents success."""
        return self.status == ResultStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        """Check if the result represents failure."""
        return self.status == ResultStatus.FAILURE

    @property
    def is_degraded(self) -> bool:
        """Check if a success was built from partial upstream data."""
        return self.is_success and self.kind == FailureKind.UPSTREAM

    @property
    def rule(self) -> Optional[str]:
        """Name of the violated rule, when one is attached."""
        return self.details.get("rule")

    @classmethod
    def success(cls, value: T, message: Optional[str] = None) -> 'Result[T]':
        """
        Create a successful result.

        Args:
            value: The result value
            message: Optional success message

        Returns:
            Result instance with SUCCESS status
        """
        return cls(
            status=ResultStatus.SUCCESS,
            value=value,
            message=message
        )

    @classmethod
    def degraded(
        cls,
        value: T,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None
    ) -> 'Result[T]':
        """
        Create a best-effort success built from partial data.

        The value is usable, but ``is_degraded`` lets the caller tell
        the user that upstream data was missing.
        """
        return cls(
            status=ResultStatus.SUCCESS,
            value=value,
            message=message,
            error=error,
            kind=FailureKind.UPSTREAM,
            details=dict(details or {})
        )

    @classmethod
    def failure(
        cls,
        message: str,
        error: Optional[Exception] = None,
        kind: FailureKind = FailureKind.VALIDATION,
        details: Optional[Dict[str, Any]] = None
    ) -> 'Result[T]':
        """
        Create a failure result.

        Args:
            message: Error message describing the failure
            error: Optional exception that caused the failure
            kind: Failure category (default: VALIDATION)
            details: Structured failure data

        Returns:
            Result instance with FAILURE status
        """
        return cls(
            status=ResultStatus.FAILURE,
            message=message,
            error=error,
            kind=kind,
            details=dict(details or {})
        )

    @classmethod
    def violation(
        cls,
        rule: str,
        message: str,
        **details: Any
    ) -> 'Result[T]':
        """Shorthand for a VALIDATION failure naming the violated rule."""
        details["rule"] = rule
        return cls.failure(message, kind=FailureKind.VALIDATION, details=details)

    def unwrap(self) -> T:
        """
        Unwrap the result value.

        Returns:
            The result value if successful

        Raises:
            ValueError: If the result is a failure
        """
        if self.is_failure:
            raise ValueError(
                f"Cannot unwrap failure result: {self.message}"
            )
        return self.value

    def unwrap_or(self, default: T) -> T:
        """
        Unwrap the result value or return a default.

        Args:
            default: Default value to return if result is failure

        Returns:
            The result value if successful, otherwise the default
        """
        return self.value if self.is_success else default

    def map(self, func: Callable[[T], U]) -> 'Result[U]':
        """
        Map a function over the success value.

        Failures keep their kind and details. Degraded successes stay
        degraded.
        """
        if self.is_failure:
            return Result.failure(
                self.message, self.error, kind=self.kind, details=self.details
            )

        try:
            new_value = func(self.value)
        except Exception as e:
            return Result.failure(str(e), e)

        return Result(
            status=ResultStatus.SUCCESS,
            value=new_value,
            message=self.message,
            kind=self.kind,
            details=dict(self.details)
        )
