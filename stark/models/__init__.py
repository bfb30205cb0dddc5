"""
Data Models Package

This package contains all Pydantic models used by STARK.
All data flowing through the system must conform to these schemas.
"""

from stark.models.agent import (
    AgentRequest,
    AgentResult,
    ImportedEntry,
    ImportedFile,
)
from stark.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from stark.models.conversation import (
    ContentBlock,
    ConversationTurn,
    ModelResponse,
    StopReason,
    TextBlock,
    TokenUsage,
    ToolResultBlock,
    ToolUseBlock,
)
from stark.models.ledger import (
    OVERLAY_TYPES,
    DeletionMarker,
    EditOverride,
    ItemKind,
    ItemStatus,
    LedgerItem,
    LedgerKey,
    OverlayRecord,
    StatusOverride,
)
from stark.models.tools import (
    CreateItemArgs,
    CreateItemsBatchArgs,
    DeleteItemArgs,
    EditItemArgs,
    FinancialSummaryArgs,
    ItemKeyArgs,
    ListItemsArgs,
    ToolArguments,
    ToolDescriptor,
    UpdateStatusArgs,
    tool_input_schema,
)
from stark.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Agent exchange
    "AgentRequest",
    "AgentResult",
    "ImportedEntry",
    "ImportedFile",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Conversation
    "ContentBlock",
    "ConversationTurn",
    "ModelResponse",
    "StopReason",
    "TextBlock",
    "TokenUsage",
    "ToolResultBlock",
    "ToolUseBlock",
    # Ledger
    "OVERLAY_TYPES",
    "DeletionMarker",
    "EditOverride",
    "ItemKind",
    "ItemStatus",
    "LedgerItem",
    "LedgerKey",
    "OverlayRecord",
    "StatusOverride",
    # Tool arguments
    "CreateItemArgs",
    "CreateItemsBatchArgs",
    "DeleteItemArgs",
    "EditItemArgs",
    "FinancialSummaryArgs",
    "ItemKeyArgs",
    "ListItemsArgs",
    "ToolArguments",
    "ToolDescriptor",
    "UpdateStatusArgs",
    "tool_input_schema",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
