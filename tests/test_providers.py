"""
Tests for the model providers.

No network: the Anthropic client is replaced by a stub and the Gemini
tests only exercise the wire-format translation.
"""

from types import SimpleNamespace

import anthropic
import httpx
import pytest
from google.generativeai import protos

from stark.config import AnthropicSettings, GeminiSettings
from stark.models.conversation import (
    ConversationTurn,
    StopReason,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from stark.services.llm import AnthropicProvider, GeminiProvider, ModelProviderError
from stark.services.llm.gemini_provider import to_gemini_contents, to_gemini_schema
from stark.tools import get_tool


def anthropic_message(*blocks, stop_reason="end_turn"):
    return SimpleNamespace(
        content=list(blocks),
        stop_reason=stop_reason,
        usage=anthropic.types.Usage(
            input_tokens=42, output_tokens=7, cache_read_input_tokens=5,
        ),
        model="claude-test",
    )


class StubMessages:
    """Records create() calls and returns a canned message or raises."""

    def __init__(self, result):
        self.result = result
        self.params = None

    async def create(self, **params):
        self.params = params
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def anthropic_provider(result):
    messages = StubMessages(result)
    client = SimpleNamespace(messages=messages)
    provider = AnthropicProvider(AnthropicSettings(api_key="test-key"), client=client)
    return provider, messages


class TestAnthropicProvider:
    """Tests for request building and response mapping."""

    @pytest.mark.asyncio
    async def test_tool_use_response(self):
        """Test text and tool_use blocks map one-to-one."""
        provider, _ = anthropic_provider(anthropic_message(
            SimpleNamespace(type="text", text="Vou consultar."),
            SimpleNamespace(type="tool_use", id="toolu_1", name="list_items",
                            input={"period": "2025-12"}),
            stop_reason="tool_use",
        ))

        response = await provider.create_message(
            "claude-test", "sistema", [ConversationTurn(role="user", content="Liste")]
        )

        assert response.stop_reason == StopReason.TOOL_USE
        assert response.wants_tools
        assert response.text == "Vou consultar."
        assert response.tool_uses[0].id == "toolu_1"
        assert response.tool_uses[0].input == {"period": "2025-12"}
        assert response.usage.input_tokens == 42
        assert response.model == "claude-test"

    @pytest.mark.asyncio
    async def test_full_usage_kept(self):
        """Test cache counters reported by the API survive the mapping."""
        provider, _ = anthropic_provider(anthropic_message(
            SimpleNamespace(type="text", text="Oi"),
        ))
        response = await provider.create_message("m", "s", [ConversationTurn(role="user", content="x")])

        usage = response.usage.model_dump()
        assert usage["input_tokens"] == 42
        assert usage["output_tokens"] == 7
        assert usage["cache_read_input_tokens"] == 5
        assert "cache_creation_input_tokens" not in usage

    @pytest.mark.asyncio
    async def test_empty_text_blocks_skipped(self):
        """Test empty text blocks are dropped."""
        provider, _ = anthropic_provider(anthropic_message(
            SimpleNamespace(type="text", text=""),
            SimpleNamespace(type="text", text="Oi"),
        ))
        response = await provider.create_message("m", "s", [ConversationTurn(role="user", content="x")])
        assert response.content == [TextBlock(text="Oi")]

    @pytest.mark.asyncio
    async def test_request_params(self):
        """Test system, messages, tools and max_tokens are sent."""
        provider, messages = anthropic_provider(anthropic_message())
        turns = [
            ConversationTurn(role="user", content="Liste"),
            ConversationTurn(role="assistant", content=[
                ToolUseBlock(id="toolu_1", name="list_items", input={"period": "2025-12"}),
            ]),
            ConversationTurn(role="user", content=[
                ToolResultBlock.from_result("toolu_1", {"success": True, "count": 0}),
            ]),
        ]

        await provider.create_message("m", "sistema", turns, tools=[get_tool("list_items")])

        params = messages.params
        assert params["system"] == "sistema"
        assert params["max_tokens"] == 8192
        assert params["tools"][0]["name"] == "list_items"
        assert params["messages"][2]["content"][0]["tool_use_id"] == "toolu_1"

    @pytest.mark.asyncio
    async def test_no_tools_param_in_plain_mode(self):
        """Test tools are omitted when none are given."""
        provider, messages = anthropic_provider(anthropic_message())
        await provider.create_message("m", "s", [ConversationTurn(role="user", content="x")])
        assert "tools" not in messages.params

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self):
        """Test SDK errors surface as ModelProviderError."""
        error = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        provider, _ = anthropic_provider(error)

        with pytest.raises(ModelProviderError) as exc_info:
            await provider.create_message("m", "s", [ConversationTurn(role="user", content="x")])
        assert exc_info.value.provider == "anthropic"

    def test_model_selection(self):
        """Test the analysis model is used for tools and files."""
        settings = AnthropicSettings(api_key="k", fast_model="fast", analysis_model="deep")
        provider = AnthropicProvider(settings, client=SimpleNamespace())
        assert provider.select_model(analysis=True) == "deep"
        assert provider.select_model(analysis=False) == "fast"


class TestGeminiTranslation:
    """Tests for the Gemini wire-format translation."""

    def test_schema_conversion(self):
        """Test types, enums and required fields survive the conversion."""
        schema = to_gemini_schema(get_tool("create_item").input_schema)

        assert schema.type_ == protos.Type.OBJECT
        assert set(schema.required) == {"period", "name", "amount", "category", "kind"}
        assert schema.properties["amount"].type_ == protos.Type.NUMBER
        assert list(schema.properties["kind"].enum) == ["expense", "income"]

    def test_array_schema(self):
        """Test array items are converted."""
        schema = to_gemini_schema(get_tool("create_items_batch").input_schema)
        items = schema.properties["items"]
        assert items.type_ == protos.Type.ARRAY
        assert "amount" in items.items.properties

    def test_contents_roles_and_names(self):
        """Test assistant becomes model and results find their function name."""
        contents = to_gemini_contents([
            ConversationTurn(role="user", content="Liste"),
            ConversationTurn(role="assistant", content=[
                ToolUseBlock(id="call_1", name="list_items", input={"period": "2025-12"}),
            ]),
            ConversationTurn(role="user", content=[
                ToolResultBlock.from_result("call_1", {"success": True, "count": 0}),
            ]),
        ])

        assert [c.role for c in contents] == ["user", "model", "user"]
        assert contents[1].parts[0].function_call.name == "list_items"
        assert contents[2].parts[0].function_response.name == "list_items"

    def test_empty_text_turn_dropped(self):
        """Test turns with nothing to send are skipped."""
        assert to_gemini_contents([ConversationTurn(role="assistant", content="")]) == []

    def test_function_call_gets_synthesized_id(self):
        """Test each function call gets its own id and a tool_use stop."""
        provider = GeminiProvider(GeminiSettings(api_key="test-key"))
        response = SimpleNamespace(
            usage_metadata=SimpleNamespace(prompt_token_count=11, candidates_token_count=3),
            candidates=[SimpleNamespace(
                finish_reason=SimpleNamespace(name="STOP"),
                content=SimpleNamespace(parts=[
                    protos.Part(function_call=protos.FunctionCall(
                        name="list_items", args={"period": "2025-12"},
                    )),
                    protos.Part(function_call=protos.FunctionCall(
                        name="financial_summary", args={"period": "2025-12"},
                    )),
                ]),
            )],
        )

        result = provider._to_response(response, "gemini-test")

        assert result.stop_reason == StopReason.TOOL_USE
        ids = [t.id for t in result.tool_uses]
        assert len(set(ids)) == 2
        assert all(i.startswith("call_") for i in ids)
        assert result.tool_uses[0].input == {"period": "2025-12"}
        assert result.usage.input_tokens == 11

    def test_text_response(self):
        """Test a plain text candidate ends the turn."""
        provider = GeminiProvider(GeminiSettings(api_key="test-key"))
        response = SimpleNamespace(
            usage_metadata=None,
            candidates=[SimpleNamespace(
                finish_reason=SimpleNamespace(name="STOP"),
                content=SimpleNamespace(parts=[protos.Part(text="Olá")]),
            )],
        )
        result = provider._to_response(response, "gemini-test")
        assert result.stop_reason == StopReason.END_TURN
        assert result.text == "Olá"
