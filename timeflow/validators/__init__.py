"""Validation layer for cross-record data integrity."""

from timeflow.validators.integrity_validator import (
    IntegrityValidator,
    raise_for_violations,
)
from timeflow.validators.validation_report import (
    ValidationIssue,
    ValidationReport,
    ValidationSeverity,
)

__all__ = [
    "IntegrityValidator",
    "raise_for_violations",
    "ValidationReport",
    "ValidationIssue",
    "ValidationSeverity",
]
