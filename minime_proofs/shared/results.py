"""
Result types for explicit success/failure tracking in proof generation.

This module provides structured result types that carry success/failure
information, so callers of the proof facade never have to guess whether an
empty value means "nothing found" or "the node failed".
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorSeverity(Enum):
    """Severity levels for processing errors."""

    WARNING = "warning"  # Continue processing, log issue
    ERROR = "error"  # Operation failed, caller may retry
    CRITICAL = "critical"  # Storage layout or logic defect, do not retry


@dataclass
class ProcessingError:
    """
    Represents a single processing error with context.

    Attributes:
        source: Component that generated the error (e.g., "discover_slot", "minime_proof")
        message: Human-readable error description
        severity: How severe the error is (affects control flow)
        context: Additional context like holder, candidate slot, position
        exception: Original exception if available
    """

    source: str
    message: str
    severity: ErrorSeverity
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None


@dataclass
class Result(Generic[T]):
    """
    Outcome of a MinimeProofs operation.

    A failed result holds exactly one ERROR or CRITICAL error. A successful
    one may still carry WARNING entries, such as discovery candidates that
    were skipped after a read failure.

    Attributes:
        success: Whether the operation succeeded
        data: The result data if successful
        errors: List of errors encountered (can have errors even on success for warnings)
    """

    success: bool
    data: Optional[T] = None
    errors: List[ProcessingError] = field(default_factory=list)

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        """Create a successful result with data."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ProcessingError) -> "Result[T]":
        """Create a failed result with an error."""
        return cls(success=False, errors=[error])

    def add_warning(
        self,
        source: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> "Result[T]":
        """Add a warning to the result (convenience method)."""
        self.errors.append(
            ProcessingError(
                source=source,
                message=message,
                severity=ErrorSeverity.WARNING,
                context=context or {},
            )
        )
        return self

    def warnings(self) -> List[ProcessingError]:
        """WARNING level entries, in the order they were added."""
        return [e for e in self.errors if e.severity is ErrorSeverity.WARNING]

    def has_warnings(self) -> bool:
        """Check if result has any WARNING level errors."""
        return bool(self.warnings())

    def unwrap(self) -> T:
        """Return the data, or raise the first error of a failed result."""
        if self.success:
            return self.data
        first = self.errors[0] if self.errors else None
        if first is not None and first.exception is not None:
            raise first.exception
        raise RuntimeError(first.message if first else "Result failed")
