"""Validation result models shared by the tool validator and executor."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'status_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage argument validation.

    Stage 1: Schema validation (types, required fields, enums, formats)
    Stage 2: Semantic validation (status vs kind, empty edits)
    """

    tool_name: str
    schema_valid: bool
    semantic_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    # Parsed arguments, set when schema validation passed
    arguments: Optional[Any] = None

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]

    def error_summary(self) -> str:
        return "; ".join(
            f"{i.field}: {i.message}" for i in self.issues if i.severity == "error"
        )
