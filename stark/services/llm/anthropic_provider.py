"""
Anthropic Messages API provider.

The conversation models already follow the Messages API block format,
so turns are sent as-is and response blocks map one-to-one.
"""

from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from stark.config import AnthropicSettings
from stark.models.conversation import (
    ConversationTurn,
    ModelResponse,
    StopReason,
    TextBlock,
    TokenUsage,
    ToolUseBlock,
)
from stark.models.tools import ToolDescriptor
from stark.services.llm.interface import ModelProvider, ModelProviderError


class AnthropicProvider(ModelProvider):
    """
    Claude through the async Anthropic SDK.

    The client is built once with the configured timeout and retries
    disabled; a failed round-trip fails the request.
    """

    name = "anthropic"

    def __init__(
        self,
        settings: AnthropicSettings,
        client: Optional[AsyncAnthropic] = None,
    ):
        self._settings = settings
        self._client = client or AsyncAnthropic(
            api_key=settings.api_key,
            timeout=settings.timeout_seconds,
            max_retries=0,
        )

    def select_model(self, analysis: bool) -> str:
        if analysis:
            return self._settings.analysis_model
        return self._settings.fast_model

    @property
    def max_tokens(self) -> int:
        return self._settings.max_tokens

    async def create_message(
        self,
        model: str,
        system: str,
        messages: list[ConversationTurn],
        tools: Optional[list[ToolDescriptor]] = None,
        max_tokens: Optional[int] = None,
    ) -> ModelResponse:
        params = {
            "model": model,
            "max_tokens": max_tokens or self.max_tokens,
            "system": system,
            "messages": [turn.to_api() for turn in messages],
        }
        if tools:
            params["tools"] = [tool.to_anthropic() for tool in tools]

        try:
            message = await self._client.messages.create(**params)
        except anthropic.APIError as e:
            raise ModelProviderError(self.name, str(e)) from e

        return self._to_response(message, model)

    def _to_response(self, message, model: str) -> ModelResponse:
        content = []
        for block in message.content:
            if block.type == "text":
                # Empty text blocks are rejected when sent back
                if block.text:
                    content.append(TextBlock(text=block.text))
            elif block.type == "tool_use":
                content.append(ToolUseBlock(
                    id=block.id,
                    name=block.name,
                    input=dict(block.input or {}),
                ))

        usage = TokenUsage()
        if message.usage is not None:
            # Keep cache and server-tool counters alongside the token counts
            usage = TokenUsage.model_validate(message.usage.model_dump(exclude_none=True))

        return ModelResponse(
            stop_reason=StopReason.parse(message.stop_reason),
            content=content,
            usage=usage,
            model=getattr(message, "model", None) or model,
        )
