"""
Conversation Models for STARK

A conversation is a list of turns. A turn's content is either plain text
or a list of content blocks:

- text: natural-language text
- tool_use: the model asks for a tool, with an opaque correlation id
- tool_result: our answer to one tool_use, carrying the same id

The block shapes follow the Messages API wire format so that turns can
be sent back to the provider unchanged. Providers with a different wire
format translate at their own boundary.
"""

import json
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """A tool invocation requested by the model."""
    type: Literal["tool_use"] = "tool_use"
    id: str = Field(..., min_length=1, description="Correlation id")
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """Result of one tool invocation, correlated by tool_use_id."""
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str = Field(..., min_length=1)
    content: str
    is_error: bool = False

    @classmethod
    def from_result(cls, tool_use_id: str, result: dict) -> 'ToolResultBlock':
        return cls(
            tool_use_id=tool_use_id,
            content=json.dumps(result, ensure_ascii=False, default=str),
            is_error=not result.get("success", True),
        )

    def parsed(self) -> Any:
        """Decode the JSON payload (falls back to the raw string)."""
        try:
            return json.loads(self.content)
        except ValueError:
            return self.content


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


class ConversationTurn(BaseModel):
    """One message in the conversation."""
    model_config = ConfigDict(extra="ignore")

    role: Literal["user", "assistant"]
    content: Union[str, list[ContentBlock]]

    @property
    def blocks(self) -> list:
        if isinstance(self.content, str):
            return [TextBlock(text=self.content)]
        return list(self.content)

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.blocks if isinstance(b, ToolUseBlock)]

    @property
    def text(self) -> str:
        return "\n".join(b.text for b in self.blocks if isinstance(b, TextBlock))

    def to_api(self) -> dict:
        """Wire format for the Messages API."""
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        return {
            "role": self.role,
            "content": [block.model_dump() for block in self.content],
        }


class StopReason(str, Enum):
    """Why the model stopped generating."""
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'StopReason':
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""
    model_config = ConfigDict(extra="allow")

    input_tokens: int = 0
    output_tokens: int = 0


class ModelResponse(BaseModel):
    """Provider-neutral result of one model round-trip."""

    stop_reason: StopReason
    content: list[ContentBlock] = Field(default_factory=list)
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str

    @property
    def wants_tools(self) -> bool:
        return self.stop_reason is StopReason.TOOL_USE and bool(self.tool_uses)

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    @property
    def text(self) -> str:
        """All text blocks joined by newlines."""
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    def as_turn(self) -> ConversationTurn:
        return ConversationTurn(role="assistant", content=list(self.content))
