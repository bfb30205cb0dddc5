"""Scripted test doubles. No network calls anywhere in the suite."""

from typing import Optional

from stark.models.conversation import (
    ModelResponse,
    StopReason,
    TextBlock,
    TokenUsage,
    ToolUseBlock,
)
from stark.models.tools import ToolDescriptor
from stark.services.llm import ModelProvider


def text_response(text: str, model: str = "fake-analysis") -> ModelResponse:
    return ModelResponse(
        stop_reason=StopReason.END_TURN,
        content=[TextBlock(text=text)] if text else [],
        usage=TokenUsage(input_tokens=10, output_tokens=5),
        model=model,
    )


def tool_response(*calls: tuple, text: str = "", model: str = "fake-analysis") -> ModelResponse:
    """A tool_use turn; each call is (id, name, input)."""
    content = [TextBlock(text=text)] if text else []
    content += [ToolUseBlock(id=id_, name=name, input=args) for id_, name, args in calls]
    return ModelResponse(
        stop_reason=StopReason.TOOL_USE,
        content=content,
        usage=TokenUsage(input_tokens=20, output_tokens=8),
        model=model,
    )


class FakeProvider(ModelProvider):
    """
    Returns scripted responses in order, then `default` forever.

    Every call is recorded with a snapshot of the messages it was sent.
    """

    name = "fake"

    def __init__(
        self,
        responses: Optional[list[ModelResponse]] = None,
        default: Optional[ModelResponse] = None,
        error: Optional[Exception] = None,
    ):
        self.responses = list(responses or [])
        self.default = default or text_response("ok")
        self.error = error
        self.calls: list[dict] = []

    def select_model(self, analysis: bool) -> str:
        return "fake-analysis" if analysis else "fake-fast"

    @property
    def max_tokens(self) -> int:
        return 1024

    async def create_message(
        self,
        model: str,
        system: str,
        messages: list,
        tools: Optional[list[ToolDescriptor]] = None,
        max_tokens: Optional[int] = None,
    ) -> ModelResponse:
        self.calls.append({
            "model": model,
            "system": system,
            "messages": list(messages),
            "tools": [tool.name for tool in tools] if tools else None,
        })
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return self.default
