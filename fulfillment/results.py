"""
Outcome of an engine operation.

Every mutating operation returns an OperationResult instead of raising, so
the presentation layer can show a success or error indicator. A primary
change that stood while a follow-up step failed is reported as success with
secondary_errors filled in.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"     # Rejected before any provider call
    NOT_FOUND = "not_found"       # Unknown order/product/notification id
    PROVIDER = "provider"         # Storage or transport call failed
    FORBIDDEN = "forbidden"       # Identity may not perform the operation


@dataclass
class OperationResult:
    """
    Result of an engine operation.

    Attributes:
        success: Whether the primary change was applied
        action: Short name of the operation, for logs and UIs
        value: The record produced or changed, when there is one
        error: Why the operation failed
        error_kind: Category of the failure
        secondary_errors: Failures of follow-up steps that did not undo the
            primary change (e.g. a notification write after a status update)
    """
    success: bool
    action: str
    value: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    secondary_errors: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, action: str, value: Any = None) -> "OperationResult":
        return cls(success=True, action=action, value=value)

    @classmethod
    def fail(cls, action: str, kind: ErrorKind, error: str, value: Any = None) -> "OperationResult":
        return cls(success=False, action=action, value=value, error=error, error_kind=kind)

    @property
    def partial(self) -> bool:
        """True if the primary change stood but a follow-up step failed."""
        return self.success and bool(self.secondary_errors)

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        if self.success:
            suffix = f" (with {len(self.secondary_errors)} follow-up error(s))" if self.secondary_errors else ""
            return f"{status} {self.action}{suffix}"
        return f"{status} {self.action}: [{self.error_kind.value}] {self.error}"
