"""
Model Provider Interface

DESIGN DECISION: The orchestrator talks to one abstract provider.
This allows us to:
1. Inject a fake provider in tests (no network)
2. Swap Anthropic for Gemini through configuration
3. Build the SDK client once, with explicit settings, and reuse it

Providers speak the conversation models of stark.models.conversation
and translate to their own wire format at this boundary.
"""

from abc import ABC, abstractmethod
from typing import Optional

from stark.models.conversation import ConversationTurn, ModelResponse
from stark.models.tools import ToolDescriptor


class ModelProvider(ABC):
    """
    Abstract interface for a language-model provider.

    Any implementation must return tool invocations as ToolUseBlocks
    with an id that its own tool results can be correlated by.
    """

    name: str = "provider"

    @abstractmethod
    def select_model(self, analysis: bool) -> str:
        """
        Pick a model identifier.

        Args:
            analysis: True for the larger model (file imported or tools
                enabled), False for the faster one
        """
        pass

    @property
    @abstractmethod
    def max_tokens(self) -> int:
        """Default output token limit per round-trip."""
        pass

    @abstractmethod
    async def create_message(
        self,
        model: str,
        system: str,
        messages: list[ConversationTurn],
        tools: Optional[list[ToolDescriptor]] = None,
        max_tokens: Optional[int] = None,
    ) -> ModelResponse:
        """
        Run one model round-trip.

        Raises:
            ModelProviderError: If the provider call fails
        """
        pass


class ModelProviderError(Exception):
    """A provider call failed. Never retried."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider
