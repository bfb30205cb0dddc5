"""
Main Orchestrator for STARK

This module ties together all the components and defines the
end-to-end flow of one /agent exchange:

1. Request → window the history, summarize the imported file
2. Model call with the tool registry attached
3. While the model asks for tools: run them in order, send the
   correlated results back, call the model again
4. Final text → AgentResult

DESIGN DECISION: The tool-use loop is strictly sequential and bounded.
- Tools of one turn run one at a time, in the order the model asked for
  them, because later calls may depend on earlier ones
- Every tool result carries the id of the invocation it answers
- At most max_tool_iterations rounds of tools run; after that the loop
  stops with whatever text the last response had and reports truncated

Every step is audited under the request's correlation id.
"""

import time
from typing import NamedTuple, Optional
from uuid import UUID

import structlog

from stark.agents import build_file_context, build_system_prompt, build_user_message
from stark.audit import AuditLogger, create_correlation_id
from stark.config import AppSettings, get_settings
from stark.models.agent import AgentRequest, AgentResult
from stark.models.conversation import ConversationTurn, ModelResponse, ToolResultBlock
from stark.services.llm import AnthropicProvider, GeminiProvider, ModelProvider
from stark.services.storage import (
    BaselineDataset,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)
from stark.tools import TOOL_REGISTRY, ToolExecutor


MISSING_MESSAGE = "Mensagem não fornecida"

logger = structlog.get_logger(__name__)


class AgentRequestError(ValueError):
    """The request cannot be answered as sent (e.g. no message)."""
    pass


class AgentFlow:
    """
    Orchestrates one conversational exchange.

    Two modes:
    - tools: the analysis model with the full tool registry, looping
      until a final answer or the iteration cap
    - plain: a single call without tools (tools disabled or no ledger
      storage); the fast model unless a file was imported

    The flow keeps no state between requests. Conversation history is
    owned by the caller.
    """

    def __init__(
        self,
        provider: ModelProvider,
        executor: Optional[ToolExecutor] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._provider = provider
        self._executor = executor
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app

    @property
    def tools_enabled(self) -> bool:
        return self._settings.tools_enabled and self._executor is not None

    def _window(self, history: list[ConversationTurn]) -> list[ConversationTurn]:
        """
        Keep the most recent turns.

        The window must open on a user turn, so leading assistant turns
        left over from the cut are dropped.
        """
        size = self._settings.history_window
        recent = list(history[-size:]) if size > 0 else []
        while recent and recent[0].role != "user":
            recent.pop(0)
        return recent

    async def _call_model(
        self,
        model: str,
        system: str,
        messages: list[ConversationTurn],
        with_tools: bool,
        round_trip: int,
        correlation_id: UUID,
    ) -> ModelResponse:
        try:
            response = await self._provider.create_message(
                model=model,
                system=system,
                messages=messages,
                tools=list(TOOL_REGISTRY) if with_tools else None,
            )
        except Exception as e:
            await self._audit_logger.log_external_service_error(
                service=self._provider.name,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_model_called(
            correlation_id=correlation_id,
            model=model,
            stop_reason=response.stop_reason.value,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            round_trip=round_trip,
        )
        return response

    async def _run_tools(
        self,
        response: ModelResponse,
        correlation_id: UUID,
    ) -> list[ToolResultBlock]:
        """Execute every tool_use of a turn, in order, one at a time."""
        results = []
        for tool_use in response.tool_uses:
            result = await self._executor.execute(
                tool_use.name,
                tool_use.input,
                tool_use_id=tool_use.id,
                correlation_id=correlation_id,
            )
            results.append(ToolResultBlock.from_result(tool_use.id, result))
        return results

    async def answer(
        self,
        request: AgentRequest,
        correlation_id: Optional[UUID] = None,
    ) -> AgentResult:
        """
        Answer one request.

        Raises:
            AgentRequestError: If the message is missing (before any call)
            ModelProviderError: If a model round-trip fails
        """
        if not request.message or not request.message.strip():
            raise AgentRequestError(MISSING_MESSAGE)

        correlation_id = correlation_id or create_correlation_id()
        started = time.monotonic()

        imported_file = request.imported_file
        history = self._window(request.conversation_history)

        await self._audit_logger.log_request_received(
            correlation_id=correlation_id,
            message_length=len(request.message),
            history_turns=len(history),
            imported_entries=len(imported_file.items) if imported_file else None,
        )

        file_context = build_file_context(imported_file)
        messages = history + [
            ConversationTurn(
                role="user",
                content=build_user_message(request.message, file_context),
            )
        ]

        with_tools = self.tools_enabled
        system = build_system_prompt(
            tools_enabled=with_tools,
            has_file=imported_file is not None,
        )
        model = self._provider.select_model(
            analysis=with_tools or imported_file is not None
        )

        iterations = 0
        truncated = False
        response = await self._call_model(
            model, system, messages, with_tools, 1, correlation_id
        )

        while with_tools and response.wants_tools:
            if iterations >= self._settings.max_tool_iterations:
                truncated = True
                await self._audit_logger.log_tool_loop_truncated(
                    correlation_id=correlation_id,
                    iterations=iterations,
                    pending_tools=[t.name for t in response.tool_uses],
                )
                break

            iterations += 1
            results = await self._run_tools(response, correlation_id)
            messages.append(response.as_turn())
            messages.append(ConversationTurn(role="user", content=results))

            response = await self._call_model(
                model, system, messages, with_tools, iterations + 1, correlation_id
            )

        elapsed_ms = int((time.monotonic() - started) * 1000)

        await self._audit_logger.log_response_sent(
            correlation_id=correlation_id,
            model=model,
            elapsed_ms=elapsed_ms,
            tools_used=iterations,
            truncated=truncated,
        )

        return AgentResult(
            response=response.text,
            usage=response.usage,
            model=model,
            elapsed_ms=elapsed_ms,
            tools_used=iterations,
            truncated=truncated,
        )


class AppComponents(NamedTuple):
    """Everything the HTTP layer needs, built once at startup."""
    flow: AgentFlow
    ledger_storage: Optional[LedgerStorageInterface]
    audit_logger: AuditLogger


def create_provider(settings=None) -> ModelProvider:
    """Build the configured model provider (one client per process)."""
    settings = settings or get_settings()
    if settings.app.llm_provider == "gemini":
        return GeminiProvider(settings.gemini)
    return AnthropicProvider(settings.anthropic)


def create_app_components(
    provider: Optional[ModelProvider] = None,
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        provider: Model provider to use (built from settings if None)
        use_storage: Whether to initialize ledger storage.
                    Set to False to run in plain mode only.

    Returns:
        AppComponents
    """
    settings = get_settings()
    app_settings = settings.app

    ledger_storage = None
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage and app_settings.storage_backend == "memory":
        ledger_storage = InMemoryLedgerStorage()
    elif use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            ledger_storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in plain mode
            logger.warning("storage_not_configured", error=str(e))
            ledger_storage = None

    baseline = None
    if app_settings.baseline_path:
        baseline = BaselineDataset.from_file(app_settings.baseline_path)

    executor = None
    if ledger_storage is not None:
        executor = ToolExecutor(
            storage=ledger_storage,
            baseline=baseline,
            audit_logger=audit_logger,
        )

    flow = AgentFlow(
        provider=provider or create_provider(settings),
        executor=executor,
        audit_logger=audit_logger,
        settings=app_settings,
    )

    return AppComponents(flow=flow, ledger_storage=ledger_storage, audit_logger=audit_logger)
