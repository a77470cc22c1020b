"""Tests for validation report functionality."""

from timeflow.validators.validation_report import (
    MISSING_PARENT,
    ValidationIssue,
    ValidationReport,
    ValidationSeverity,
)


class TestValidationSeverity:
    """Tests for ValidationSeverity enum."""

    def test_severity_order(self):
        """Test that severity levels can be compared."""
        assert ValidationSeverity.ERROR > ValidationSeverity.WARNING
        assert ValidationSeverity.WARNING > ValidationSeverity.INFO


class TestValidationIssue:
    """Tests for ValidationIssue data class."""

    def test_create_error_issue(self):
        """Test creating an error validation issue."""
        issue = ValidationIssue(
            severity=ValidationSeverity.ERROR,
            entity="TimeEntry",
            entity_id="e-1",
            field="task_id",
            message="Referenced task does not exist",
            value="t-9",
            code=MISSING_PARENT,
            context={"parent": "Task"},
        )

        assert issue.severity == ValidationSeverity.ERROR
        assert issue.entity_id == "e-1"
        assert issue.value == "t-9"
        assert issue.context == {"parent": "Task"}

    def test_issue_without_context(self):
        """Test creating issue without context."""
        issue = ValidationIssue(
            severity=ValidationSeverity.INFO,
            entity="Project",
            entity_id="p-1",
            field="description",
            message="Description is empty",
        )

        assert issue.context is None
        assert issue.code is None

    def test_issue_string_representation(self):
        """Test string representation of validation issue."""
        issue = ValidationIssue(
            severity=ValidationSeverity.ERROR,
            entity="Task",
            entity_id="t-1",
            field="project_id",
            message="Referenced project does not exist",
            context={"parent": "Project"},
        )

        assert str(issue) == (
            "[ERROR] Task t-1.project_id: Referenced project does not exist "
            "(parent=Project)"
        )


class TestValidationReport:
    """Tests for ValidationReport class."""

    def test_empty_report(self):
        """Test that a new report is valid and has no issues."""
        report = ValidationReport()

        assert report.is_valid()
        assert not report.has_errors()
        assert report.summary() == "No issues found"
        assert report.format() == "Validation successful - no issues found"

    def test_warnings_do_not_invalidate(self):
        report = ValidationReport()
        report.add_warning("Task", "t-1", "status", "Project is archived")
        report.add_info("Task", "t-1", "tags", "No tags")

        assert report.is_valid()
        assert report.warning_count == 1
        assert report.info_count == 1

    def test_errors_invalidate(self):
        report = ValidationReport()
        issue = report.add_error("Task", "t-1", "project_id", "Missing", "p-9")

        assert not report.is_valid()
        assert report.get_errors() == [issue]
        assert report.get_warnings() == []

    def test_by_code(self):
        report = ValidationReport()
        report.add_error("Task", "t-1", "project_id", "Missing", code=MISSING_PARENT)
        report.add_error("TimeEntry", "e-1", "billing_rate", "Negative", code="other")

        assert [i.entity_id for i in report.by_code(MISSING_PARENT)] == ["t-1"]

    def test_merge(self):
        first = ValidationReport()
        first.add_error("Task", "t-1", "project_id", "Missing")
        second = ValidationReport()
        second.add_warning("Task", "t-2", "status", "Archived project")

        first.merge(second)

        assert first.summary() == "1 error(s), 1 warning(s)"

    def test_format_groups_by_severity(self):
        """Test that errors are listed before warnings."""
        report = ValidationReport()
        report.add_warning("Task", "t-2", "status", "Archived project")
        report.add_error("Task", "t-1", "project_id", "Missing")

        output = report.format()

        assert output.startswith("Validation Report - 1 error(s), 1 warning(s)")
        assert output.index("ERRORS:") < output.index("WARNINGS:")
        assert "  - [ERROR] Task t-1.project_id: Missing" in output
