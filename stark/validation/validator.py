"""
Two-Stage Tool Argument Validation

DESIGN DECISION: Arguments the model sends are validated in two distinct
stages before any tool touches the ledger:

STAGE 1 - SCHEMA VALIDATION:
- Type checking
- Required field presence
- Enum membership and period / date formats
- Non-negative amounts
- This uses the same pydantic model the tool's JSON schema comes from

STAGE 2 - SEMANTIC VALIDATION:
- Status must belong to the item kind (Payable/Paid vs Receivable/Received)
- An edit must change at least one field
- Settlement date on an item that is still open is suspicious

Stage 2 only runs if stage 1 passes.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them back to the model as a failed tool result.
"""

from typing import Any, Optional

from pydantic import ValidationError

from stark.models.ledger import ItemKind, ItemStatus
from stark.models.validation import ValidationIssue, ValidationResult
from stark.models.tools import (
    CreateItemArgs,
    EditItemArgs,
    ToolArguments,
    ToolDescriptor,
    UpdateStatusArgs,
)


class ToolArgumentValidator:
    """
    Validates model-supplied tool arguments.

    Stateless; one instance can serve every request.
    """

    def _validate_schema(
        self,
        tool: ToolDescriptor,
        arguments: Any,
    ) -> tuple[Optional[ToolArguments], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (parsed_arguments_or_None, list_of_issues)
        """
        if not isinstance(arguments, dict):
            return None, [ValidationIssue(
                field="arguments",
                issue_type="invalid_type",
                message=f"Arguments must be an object, got {type(arguments).__name__}",
                severity="error",
            )]

        try:
            return tool.args_model.model_validate(arguments), []
        except ValidationError as e:
            issues = []
            for error in e.errors():
                location = ".".join(str(part) for part in error["loc"]) or "arguments"
                issues.append(ValidationIssue(
                    field=location,
                    issue_type=error["type"],
                    message=error["msg"],
                    severity="error",
                ))
            return None, issues

    def _check_status(
        self,
        field: str,
        kind: ItemKind,
        status: ItemStatus,
    ) -> list[ValidationIssue]:
        if status in kind.allowed_statuses:
            return []
        allowed = " or ".join(s.value for s in kind.allowed_statuses)
        return [ValidationIssue(
            field=field,
            issue_type="status_mismatch",
            message=f"Status '{status.value}' is not valid for {kind.value}",
            severity="error",
            suggested_fix=f"Use {allowed}",
        )]

    def _validate_semantic(
        self,
        arguments: ToolArguments,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Returns: list_of_issues
        """
        issues = []

        if isinstance(arguments, CreateItemArgs):
            if arguments.status is not None:
                issues.extend(self._check_status("status", arguments.kind, arguments.status))
            status = arguments.status or arguments.kind.open_status
            if arguments.settlement_date and status == arguments.kind.open_status:
                issues.append(ValidationIssue(
                    field="settlement_date",
                    issue_type="inconsistent",
                    message="Settlement date given for an item that is still open",
                    severity="warning",
                    suggested_fix=f"Set status to {arguments.kind.settled_status.value}",
                ))

        elif isinstance(arguments, UpdateStatusArgs):
            issues.extend(
                self._check_status("new_status", arguments.kind, arguments.new_status)
            )

        elif isinstance(arguments, EditItemArgs):
            if (
                arguments.new_name is None
                and arguments.new_amount is None
                and arguments.new_category is None
            ):
                issues.append(ValidationIssue(
                    field="arguments",
                    issue_type="empty_edit",
                    message="No field to change",
                    severity="error",
                    suggested_fix="Provide new_name, new_amount or new_category",
                ))

        return issues

    def validate(
        self,
        tool: ToolDescriptor,
        arguments: Any,
    ) -> ValidationResult:
        """
        Run the two-stage validation pipeline.

        Args:
            tool: Descriptor of the tool being called
            arguments: Raw arguments from the model

        Returns:
            ValidationResult; `arguments` holds the parsed model when
            schema validation passed
        """
        parsed, issues = self._validate_schema(tool, arguments)
        schema_valid = parsed is not None

        semantic_valid = False
        if schema_valid:
            semantic_issues = self._validate_semantic(parsed)
            issues.extend(semantic_issues)
            semantic_valid = not any(i.severity == "error" for i in semantic_issues)

        return ValidationResult(
            tool_name=tool.name,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
            arguments=parsed,
        )
