"""
Audit Models for STARK

Every significant action in an agent exchange is recorded:
the request, each model round-trip, each tool call and its outcome,
and every ledger mutation. Events of one exchange share a correlation id.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Agent exchange
    AGENT_REQUEST_RECEIVED = "agent_request_received"
    AGENT_RESPONSE_SENT = "agent_response_sent"
    MODEL_CALLED = "model_called"
    TOOL_LOOP_TRUNCATED = "tool_loop_truncated"

    # Tools
    TOOL_EXECUTED = "tool_executed"
    TOOL_FAILED = "tool_failed"
    TOOL_VALIDATION_FAILED = "tool_validation_failed"

    # Ledger mutations
    LEDGER_ITEM_CREATED = "ledger_item_created"
    LEDGER_ITEM_UPDATED = "ledger_item_updated"
    LEDGER_ITEM_DELETED = "ledger_item_deleted"
    OVERLAY_WRITTEN = "overlay_written"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'ledger_item', 'tool_call', 'request')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity (item id, tool_use id, ...)"
    )

    # Correlation - all events of one /agent request
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate events of one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row for spreadsheet storage.

        Columns: [event_id, timestamp, event_type, severity, entity_type,
        entity_id, correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.request_received(correlation_id, has_file=True)
        event = AuditEventBuilder.tool_executed(tool_use_id, "create_item", ...)
    """

    @staticmethod
    def request_received(
        correlation_id: UUID,
        message_length: int,
        history_turns: int,
        imported_entries: Optional[int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AGENT_REQUEST_RECEIVED,
            entity_type="request",
            entity_id=str(correlation_id),
            correlation_id=correlation_id,
            description="Agent request received",
            details={
                "message_length": message_length,
                "history_turns": history_turns,
                "imported_entries": imported_entries,
            },
        )

    @staticmethod
    def response_sent(
        correlation_id: UUID,
        model: str,
        elapsed_ms: int,
        tools_used: int,
        truncated: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AGENT_RESPONSE_SENT,
            entity_type="request",
            entity_id=str(correlation_id),
            correlation_id=correlation_id,
            description=f"Response sent after {elapsed_ms}ms and {tools_used} tool rounds",
            details={
                "model": model,
                "elapsed_ms": elapsed_ms,
                "tools_used": tools_used,
                "truncated": truncated,
            },
        )

    @staticmethod
    def model_called(
        correlation_id: UUID,
        model: str,
        stop_reason: str,
        input_tokens: int,
        output_tokens: int,
        round_trip: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MODEL_CALLED,
            entity_type="model_call",
            correlation_id=correlation_id,
            description=f"Model {model} stopped with {stop_reason}",
            details={
                "model": model,
                "stop_reason": stop_reason,
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "round_trip": round_trip,
            },
        )

    @staticmethod
    def tool_loop_truncated(
        correlation_id: UUID,
        iterations: int,
        pending_tools: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TOOL_LOOP_TRUNCATED,
            severity=AuditSeverity.WARNING,
            entity_type="request",
            entity_id=str(correlation_id),
            correlation_id=correlation_id,
            description=f"Tool loop cut off after {iterations} rounds",
            details={
                "iterations": iterations,
                "pending_tools": pending_tools,
            },
        )

    @staticmethod
    def tool_executed(
        tool_use_id: Optional[str],
        tool_name: str,
        success: bool,
        correlation_id: Optional[UUID],
        error: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.TOOL_EXECUTED if success else AuditEventType.TOOL_FAILED
            ),
            severity=AuditSeverity.INFO if success else AuditSeverity.WARNING,
            entity_type="tool_call",
            entity_id=tool_use_id,
            correlation_id=correlation_id,
            description=f"Tool {tool_name} {'succeeded' if success else 'failed'}",
            details={"tool_name": tool_name},
            error_message=error,
        )

    @staticmethod
    def tool_validation_failed(
        tool_name: str,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TOOL_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="tool_call",
            correlation_id=correlation_id,
            description=f"Arguments for {tool_name} failed validation with {len(issues)} issues",
            details={
                "tool_name": tool_name,
                "issues": issues,
            },
        )

    @staticmethod
    def ledger_changed(
        event_type: AuditEventType,
        item_id: Optional[str],
        key: tuple,
        correlation_id: Optional[UUID],
        details: Optional[dict] = None,
    ) -> AuditEvent:
        period, kind, name = key
        return AuditEvent(
            event_type=event_type,
            entity_type="ledger_item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"{event_type.value}: {period} {getattr(kind, 'value', kind)} '{name}'",
            details=details or {},
        )

    @staticmethod
    def overlay_written(
        overlay_type: str,
        key: tuple,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        period, kind, name = key
        return AuditEvent(
            event_type=AuditEventType.OVERLAY_WRITTEN,
            entity_type=overlay_type,
            correlation_id=correlation_id,
            description=f"{overlay_type} written for {period} {getattr(kind, 'value', kind)} '{name}'",
            details={"overlay_type": overlay_type},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
