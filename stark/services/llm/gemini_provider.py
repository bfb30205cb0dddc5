"""
Gemini provider (google-generativeai function calling).

Gemini's function calls carry no id, so one is synthesized per call.
When a tool result is sent back, the function name Gemini expects is
recovered from the tool_use block that carries the same id.
"""

from typing import Any, Optional
from uuid import uuid4

import google.generativeai as genai
from google.generativeai import protos

from stark.config import GeminiSettings
from stark.models.conversation import (
    ConversationTurn,
    ModelResponse,
    StopReason,
    TextBlock,
    TokenUsage,
    ToolResultBlock,
    ToolUseBlock,
)
from stark.models.tools import ToolDescriptor
from stark.services.llm.interface import ModelProvider, ModelProviderError


_TYPES = {
    "string": protos.Type.STRING,
    "number": protos.Type.NUMBER,
    "integer": protos.Type.INTEGER,
    "boolean": protos.Type.BOOLEAN,
    "array": protos.Type.ARRAY,
    "object": protos.Type.OBJECT,
}

_FINISH_REASONS = {
    "STOP": StopReason.END_TURN,
    "MAX_TOKENS": StopReason.MAX_TOKENS,
}


def to_gemini_schema(schema: dict) -> protos.Schema:
    """
    Convert a flattened JSON schema to Gemini's OpenAPI subset.

    Keeps type, description, enum, items, properties and required;
    constraints Gemini does not understand (pattern, minimum, lengths,
    defaults) are dropped.
    """
    kwargs: dict[str, Any] = {"type_": _TYPES[schema.get("type", "string")]}
    if "description" in schema:
        kwargs["description"] = schema["description"]
    if "enum" in schema:
        kwargs["enum"] = [str(value) for value in schema["enum"]]
        kwargs["format_"] = "enum"
    if "items" in schema:
        kwargs["items"] = to_gemini_schema(schema["items"])
    if "properties" in schema:
        kwargs["properties"] = {
            name: to_gemini_schema(prop) for name, prop in schema["properties"].items()
        }
    if schema.get("required"):
        kwargs["required"] = list(schema["required"])
    return protos.Schema(**kwargs)


def to_gemini_tool(tools: list[ToolDescriptor]) -> protos.Tool:
    return protos.Tool(function_declarations=[
        protos.FunctionDeclaration(
            name=tool.name,
            description=tool.description,
            parameters=to_gemini_schema(tool.input_schema),
        )
        for tool in tools
    ])


def to_gemini_contents(messages: list[ConversationTurn]) -> list[protos.Content]:
    """Translate turns; tool results are matched to names by tool_use id."""
    names: dict[str, str] = {}
    contents = []

    for turn in messages:
        parts = []
        for block in turn.blocks:
            if isinstance(block, TextBlock):
                if block.text:
                    parts.append(protos.Part(text=block.text))
            elif isinstance(block, ToolUseBlock):
                names[block.id] = block.name
                parts.append(protos.Part(
                    function_call=protos.FunctionCall(name=block.name, args=block.input)
                ))
            elif isinstance(block, ToolResultBlock):
                payload = block.parsed()
                if not isinstance(payload, dict):
                    payload = {"content": payload}
                parts.append(protos.Part(
                    function_response=protos.FunctionResponse(
                        name=names.get(block.tool_use_id, "unknown"),
                        response=payload,
                    )
                ))
        if parts:
            role = "model" if turn.role == "assistant" else "user"
            contents.append(protos.Content(role=role, parts=parts))

    return contents


class GeminiProvider(ModelProvider):
    """Google Gemini through google-generativeai."""

    name = "gemini"

    def __init__(self, settings: GeminiSettings):
        self._settings = settings
        genai.configure(api_key=settings.api_key)

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
        generative_model = genai.GenerativeModel(
            model_name=model,
            system_instruction=system,
            tools=[to_gemini_tool(tools)] if tools else None,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": max_tokens or self.max_tokens,
            },
        )

        try:
            response = await generative_model.generate_content_async(
                to_gemini_contents(messages)
            )
        except Exception as e:
            raise ModelProviderError(self.name, str(e)) from e

        return self._to_response(response, model)

    def _to_response(self, response, model: str) -> ModelResponse:
        usage = TokenUsage()
        metadata = getattr(response, "usage_metadata", None)
        if metadata is not None:
            usage = TokenUsage(
                input_tokens=metadata.prompt_token_count or 0,
                output_tokens=metadata.candidates_token_count or 0,
            )

        if not response.candidates:
            return ModelResponse(stop_reason=StopReason.OTHER, usage=usage, model=model)

        candidate = response.candidates[0]
        content = []
        for part in candidate.content.parts:
            if part.function_call.name:
                call = protos.FunctionCall.to_dict(part.function_call)
                content.append(ToolUseBlock(
                    id=f"call_{uuid4().hex[:16]}",
                    name=call["name"],
                    input=call.get("args") or {},
                ))
            elif part.text:
                content.append(TextBlock(text=part.text))

        if any(isinstance(block, ToolUseBlock) for block in content):
            stop_reason = StopReason.TOOL_USE
        else:
            stop_reason = _FINISH_REASONS.get(candidate.finish_reason.name, StopReason.OTHER)

        return ModelResponse(
            stop_reason=stop_reason,
            content=content,
            usage=usage,
            model=model,
        )
