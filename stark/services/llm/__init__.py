"""
Model Provider Package

Anthropic is the default provider; Gemini is selectable with
LLM_PROVIDER=gemini.
"""

from stark.services.llm.interface import ModelProvider, ModelProviderError
from stark.services.llm.anthropic_provider import AnthropicProvider
from stark.services.llm.gemini_provider import GeminiProvider

__all__ = [
    "AnthropicProvider",
    "GeminiProvider",
    "ModelProvider",
    "ModelProviderError",
]
