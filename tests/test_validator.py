"""Tests for the two-stage tool argument validation."""

import pytest

from stark.models.tools import CreateItemArgs, EditItemArgs
from stark.tools import get_tool
from stark.validation import ToolArgumentValidator


@pytest.fixture
def validator():
    return ToolArgumentValidator()


def create_args(**overrides):
    args = {
        "period": "2025-12",
        "name": "Posto Ipiranga",
        "amount": 150.0,
        "category": "Combustível",
        "kind": "expense",
    }
    args.update(overrides)
    return args


class TestSchemaValidation:
    """Stage 1: types, required fields, enums and formats."""

    def test_valid_create_item(self, validator):
        """Test valid arguments parse into the argument model."""
        result = validator.validate(get_tool("create_item"), create_args())
        assert result.is_valid
        assert isinstance(result.arguments, CreateItemArgs)
        assert result.arguments.amount == 150.0

    def test_missing_required_field(self, validator):
        """Test a missing field is reported by name."""
        args = create_args()
        del args["category"]
        result = validator.validate(get_tool("create_item"), args)
        assert not result.schema_valid
        assert any(issue.field == "category" for issue in result.issues)

    def test_negative_amount(self, validator):
        """Test negative amounts are rejected."""
        result = validator.validate(get_tool("create_item"), create_args(amount=-5))
        assert not result.is_valid
        assert result.issues[0].field == "amount"

    def test_bad_period(self, validator):
        """Test period must be YYYY-MM."""
        result = validator.validate(get_tool("create_item"), create_args(period="12/2025"))
        assert not result.is_valid

    def test_bad_kind(self, validator):
        """Test kind is an enum."""
        result = validator.validate(get_tool("create_item"), create_args(kind="despesa"))
        assert not result.is_valid

    def test_bad_date(self, validator):
        """Test dates must be ISO formatted."""
        result = validator.validate(
            get_tool("create_item"), create_args(due_date="amanhã")
        )
        assert not result.is_valid

    def test_unknown_keys_ignored(self, validator):
        """Test extra keys sent by the model do not fail validation."""
        result = validator.validate(get_tool("create_item"), create_args(notes="x"))
        assert result.is_valid

    def test_arguments_must_be_object(self, validator):
        """Test non-dict arguments are rejected."""
        result = validator.validate(get_tool("list_items"), ["2025-12"])
        assert not result.schema_valid
        assert result.issues[0].issue_type == "invalid_type"

    def test_semantic_stage_skipped_on_schema_failure(self, validator):
        """Test semantic validity stays False when the schema fails."""
        result = validator.validate(get_tool("create_item"), {})
        assert result.schema_valid is False
        assert result.semantic_valid is False
        assert result.arguments is None


class TestSemanticValidation:
    """Stage 2: rules the schema cannot express."""

    def test_status_must_match_kind(self, validator):
        """Test an expense cannot be created as Received."""
        result = validator.validate(
            get_tool("create_item"), create_args(status="Received")
        )
        assert result.schema_valid
        assert not result.semantic_valid
        assert result.issues[0].issue_type == "status_mismatch"

    def test_update_status_must_match_kind(self, validator):
        """Test an income cannot be marked Paid."""
        result = validator.validate(get_tool("update_status"), {
            "period": "2025-12",
            "kind": "income",
            "item_name": "Starken",
            "new_status": "Paid",
        })
        assert not result.is_valid
        assert result.issues[0].field == "new_status"

    def test_empty_edit(self, validator):
        """Test an edit with nothing to change is rejected."""
        result = validator.validate(get_tool("edit_item"), {
            "period": "2025-12",
            "kind": "expense",
            "item_name": "Aluguel",
        })
        assert not result.is_valid
        assert result.issues[0].issue_type == "empty_edit"

    def test_partial_edit(self, validator):
        """Test an edit with one field is valid."""
        result = validator.validate(get_tool("edit_item"), {
            "period": "2025-12",
            "kind": "expense",
            "item_name": "Aluguel",
            "new_category": "Sede",
        })
        assert result.is_valid
        assert isinstance(result.arguments, EditItemArgs)

    def test_settlement_date_on_open_item_warns(self, validator):
        """Test a settlement date on an open item is only a warning."""
        result = validator.validate(
            get_tool("create_item"), create_args(settlement_date="2025-12-10")
        )
        assert result.is_valid
        assert result.warnings
