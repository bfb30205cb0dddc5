"""
Audit Logger

DESIGN DECISION: Every significant step of an agent exchange is logged.
This provides:
1. Traceability of every ledger change back to the request that caused it
2. Debugging capability for the tool-use loop
3. Visibility into truncated loops and provider failures

The audit logger:
- Never raises (a failed audit write must not fail the request)
- Supports correlation IDs to trace all events of one request
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from stark.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from stark.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("stark.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_request_received(
        self,
        correlation_id: UUID,
        message_length: int,
        history_turns: int,
        imported_entries: Optional[int],
    ) -> None:
        """Log an incoming /agent request."""
        await self.log(AuditEventBuilder.request_received(
            correlation_id=correlation_id,
            message_length=message_length,
            history_turns=history_turns,
            imported_entries=imported_entries,
        ))

    async def log_response_sent(
        self,
        correlation_id: UUID,
        model: str,
        elapsed_ms: int,
        tools_used: int,
        truncated: bool,
    ) -> None:
        """Log the final answer of an exchange."""
        await self.log(AuditEventBuilder.response_sent(
            correlation_id=correlation_id,
            model=model,
            elapsed_ms=elapsed_ms,
            tools_used=tools_used,
            truncated=truncated,
        ))

    async def log_model_called(
        self,
        correlation_id: UUID,
        model: str,
        stop_reason: str,
        input_tokens: int,
        output_tokens: int,
        round_trip: int,
    ) -> None:
        """Log one model round-trip."""
        await self.log(AuditEventBuilder.model_called(
            correlation_id=correlation_id,
            model=model,
            stop_reason=stop_reason,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            round_trip=round_trip,
        ))

    async def log_tool_loop_truncated(
        self,
        correlation_id: UUID,
        iterations: int,
        pending_tools: list[str],
    ) -> None:
        await self.log(AuditEventBuilder.tool_loop_truncated(
            correlation_id=correlation_id,
            iterations=iterations,
            pending_tools=pending_tools,
        ))

    async def log_tool_executed(
        self,
        tool_use_id: Optional[str],
        tool_name: str,
        success: bool,
        correlation_id: Optional[UUID],
        error: Optional[str] = None,
    ) -> None:
        """Log the outcome of one tool call."""
        await self.log(AuditEventBuilder.tool_executed(
            tool_use_id=tool_use_id,
            tool_name=tool_name,
            success=success,
            correlation_id=correlation_id,
            error=error,
        ))

    async def log_tool_validation_failed(
        self,
        tool_name: str,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.tool_validation_failed(
            tool_name=tool_name,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_ledger_changed(
        self,
        event_type: AuditEventType,
        item_id: Optional[str],
        key: tuple,
        correlation_id: Optional[UUID],
        details: Optional[dict] = None,
    ) -> None:
        """Log a create, update or delete of a durable item."""
        await self.log(AuditEventBuilder.ledger_changed(
            event_type=event_type,
            item_id=item_id,
            key=key,
            correlation_id=correlation_id,
            details=details,
        ))

    async def log_overlay_written(
        self,
        overlay_type: str,
        key: tuple,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.overlay_written(
            overlay_type=overlay_type,
            key=key,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request and pass it through every
    model call and tool execution it causes.
    """
    return uuid4()
