"""Validation report for collecting and formatting data-integrity issues."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional


class ValidationSeverity(IntEnum):
    """Severity levels for validation issues."""

    INFO = 1
    WARNING = 2
    ERROR = 3


# Issue codes
MISSING_PARENT = "missing_parent"
PARENT_MISMATCH = "parent_mismatch"
BILLABLE_OVERRUN = "billable_overrun"
ARCHIVED_PARENT = "archived_parent"


@dataclass
class ValidationIssue:
    """Represents a single issue found on a stored record.

    Attributes:
        severity: The severity level of the issue
        entity: Kind of record ("Project", "Task", "TimeEntry")
        entity_id: Id of the record with the issue
        field: The field name that has the issue
        message: Human-readable description of the issue
        value: The value that caused the issue
        code: Machine-readable issue code (e.g. ``missing_parent``)
        context: Optional context information (e.g. parent kind)
    """

    severity: ValidationSeverity
    entity: str
    entity_id: str
    field: str
    message: str
    value: Any = None
    code: Optional[str] = None
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        """Return string representation of the issue.

        Returns:
            Formatted string with severity, record, field, and message
        """
        context_str = ""
        if self.context:
            context_parts = [f"{k}={v}" for k, v in self.context.items()]
            context_str = f" ({', '.join(context_parts)})"

        return (
            f"[{self.severity.name}] {self.entity} {self.entity_id}.{self.field}: "
            f"{self.message}{context_str}"
        )


class ValidationReport:
    """Collects and manages validation issues.

    Issues are reported, never dropped: a record with a dangling reference
    still counts towards billing, so it is listed here for the user to fix.

    Example:
        >>> report = ValidationReport()
        >>> report.add_error("Task", "t-1", "project_id", "Project not found", "p-9")
        >>> report.is_valid()
        False
    """

    def __init__(self) -> None:
        """Initialize an empty validation report."""
        self.issues: List[ValidationIssue] = []

    def _count(self, severity: ValidationSeverity) -> int:
        return sum(1 for issue in self.issues if issue.severity == severity)

    @property
    def error_count(self) -> int:
        """Count of error-level issues."""
        return self._count(ValidationSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        """Count of warning-level issues."""
        return self._count(ValidationSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return self._count(ValidationSeverity.INFO)

    def is_valid(self) -> bool:
        """Check if validation passed (no errors).

        Warnings and info messages do not affect validity.
        """
        return self.error_count == 0

    def has_errors(self) -> bool:
        return self.error_count > 0

    def add(
        self,
        severity: ValidationSeverity,
        entity: str,
        entity_id: str,
        field: str,
        message: str,
        value: Any = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ValidationIssue:
        """Add an issue to the report.

        Args:
            severity: Issue severity
            entity: Kind of record
            entity_id: Record id
            field: The field name with the issue
            message: Human-readable description
            value: The value that caused the issue
            code: Machine-readable issue code
            context: Optional context information

        Returns:
            The recorded issue
        """
        issue = ValidationIssue(
            severity=severity,
            entity=entity,
            entity_id=entity_id,
            field=field,
            message=message,
            value=value,
            code=code,
            context=context,
        )
        self.issues.append(issue)
        return issue

    def add_error(self, entity, entity_id, field, message, value=None, **kwargs):
        """Add an error-level issue (see :meth:`add`)."""
        return self.add(
            ValidationSeverity.ERROR, entity, entity_id, field, message, value, **kwargs
        )

    def add_warning(self, entity, entity_id, field, message, value=None, **kwargs):
        """Add a warning-level issue (see :meth:`add`)."""
        return self.add(
            ValidationSeverity.WARNING,
            entity,
            entity_id,
            field,
            message,
            value,
            **kwargs,
        )

    def add_info(self, entity, entity_id, field, message, value=None, **kwargs):
        return self.add(
            ValidationSeverity.INFO, entity, entity_id, field, message, value, **kwargs
        )

    def get_errors(self) -> List[ValidationIssue]:
        return [
            issue for issue in self.issues if issue.severity == ValidationSeverity.ERROR
        ]

    def get_warnings(self) -> List[ValidationIssue]:
        return [
            issue
            for issue in self.issues
            if issue.severity == ValidationSeverity.WARNING
        ]

    def by_code(self, code: str) -> List[ValidationIssue]:
        """Issues carrying the given code, in the order they were found."""
        return [issue for issue in self.issues if issue.code == code]

    def merge(self, other: "ValidationReport") -> None:
        """Merge another validation report into this one."""
        self.issues.extend(other.issues)

    def summary(self) -> str:
        """Get a summary of the validation report.

        Returns:
            Summary string with counts of errors, warnings, and info messages
        """
        parts = []
        if self.error_count > 0:
            parts.append(f"{self.error_count} error(s)")
        if self.warning_count > 0:
            parts.append(f"{self.warning_count} warning(s)")
        if self.info_count > 0:
            parts.append(f"{self.info_count} info message(s)")

        if not parts:
            return "No issues found"

        return ", ".join(parts)

    def format(self) -> str:
        """Format the validation report for display.

        Returns:
            Formatted string with all issues grouped by severity
        """
        if not self.issues:
            return "Validation successful - no issues found"

        lines = [f"Validation Report - {self.summary()}", "=" * 60]

        for severity, title in (
            (ValidationSeverity.ERROR, "ERRORS"),
            (ValidationSeverity.WARNING, "WARNINGS"),
            (ValidationSeverity.INFO, "INFO"),
        ):
            group = [issue for issue in self.issues if issue.severity == severity]
            if group:
                lines.append(f"\n{title}:")
                for issue in group:
                    lines.append(f"  - {issue}")

        return "\n".join(lines)
