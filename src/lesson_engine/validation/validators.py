"""
Validation framework with Strategy pattern.

This module provides:
- Abstract Validator interface
- ValidationResult for consistent validation reporting
- Field-level helpers shared by the lesson validators
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class ValidationResult:
    """
    Result of data validation.

    Attributes:
        is_valid: Whether validation passed
        errors: List of error messages
        warnings: List of warning messages (non-fatal)
        rule: Name of the first business rule that failed, if any
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    rule: Optional[str] = None

    def add_error(self, message: str, rule: Optional[str] = None) -> 'ValidationResult':
        """
        Add an error message.

        Args:
            message: Error message to add
            rule: Business rule name; only the first one is kept

        Returns:
            Self for method chaining

        Examples:
            >>> result = ValidationResult(is_valid=True)
            >>> result.add_error("Error 1").add_error("Error 2")
        """
        self.errors.append(message)
        self.is_valid = False
        if rule and self.rule is None:
            self.rule = rule
        return self

    def add_warning(self, message: str) -> 'ValidationResult':
        """
        Add a warning message.

        Args:
            message: Warning message to add

        Returns:
            Self for method chaining
        """
        self.warnings.append(message)
        return self

    def merge(self, other: 'ValidationResult', prefix: str = "") -> 'ValidationResult':
        """Copy errors and warnings of ``other`` into this result."""
        for error in other.errors:
            self.add_error(f"{prefix}{error}", other.rule)
        for warning in other.warnings:
            self.add_warning(f"{prefix}{warning}")
        return self

    @property
    def has_errors(self) -> bool:
        """Check if there are errors."""
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        """Check if there are warnings."""
        return len(self.warnings) > 0

    def get_summary(self) -> str:
        """
        Get validation summary.

        Returns:
            Human-readable summary of validation results
        """
        if self.is_valid and not self.has_warnings:
            return "Validation passed"

        parts = []

        if self.has_errors:
            parts.append(f"Errors ({len(self.errors)}):")
            for error in self.errors:
                parts.append(f"  - {error}")

        if self.has_warnings:
            parts.append(f"Warnings ({len(self.warnings)}):")
            for warning in self.warnings:
                parts.append(f"  - {warning}")

        return "\n".join(parts)


class Validator(ABC):
    """
    Abstract base class for validators.

    Subclasses must implement the validate() method to perform
    specific validation logic.
    """

    @abstractmethod
    def validate(self, data: Any) -> ValidationResult:
        """
        Validate data.

        Args:
            data: Data to validate

        Returns:
            ValidationResult with errors and warnings
        """
        pass

    def validate_required_fields(
        self,
        data: Any,
        required_fields: List[str]
    ) -> List[str]:
        """
        Validate that required attributes are set.

        Args:
            data: Object to check
            required_fields: List of required attribute names

        Returns:
            List of error messages for missing fields
        """
        errors = []
        for name in required_fields:
            value = getattr(data, name, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.append(f"Missing required field: {name}")
        return errors

    def validate_positive_number(
        self,
        value: Any,
        field_name: str
    ) -> Optional[str]:
        """
        Validate that value is a positive integer.

        Args:
            value: Value to validate
            field_name: Name of the field (for error message)

        Returns:
            Error message if invalid, None if valid
        """
        if isinstance(value, bool) or not isinstance(value, int):
            return f"{field_name} must be an integer, got {type(value).__name__}"

        if value <= 0:
            return f"{field_name} must be positive, got {value}"

        return None

    def validate_integer_range(
        self,
        value: Any,
        field_name: str,
        minimum: int,
        maximum: int
    ) -> Optional[str]:
        """
        Validate that value is an integer within [minimum, maximum].

        Returns:
            Error message if invalid, None if valid
        """
        if isinstance(value, bool) or not isinstance(value, int):
            return f"{field_name} must be an integer, got {type(value).__name__}"

        if not minimum <= value <= maximum:
            return f"{field_name} must be between {minimum} and {maximum}, got {value}"

        return None

    def validate_interval(
        self,
        start: Any,
        end: Any,
        field_name: str = "time"
    ) -> Optional[str]:
        """
        Validate that start comes strictly before end.

        Returns:
            Error message if invalid, None if valid
        """
        try:
            if start < end:
                return None
        except TypeError:
            return f"{field_name} bounds are not comparable: {start!r}, {end!r}"

        return f"{field_name} must end after it starts ({start} >= {end})"
