"""
Tools Package

The registry declares what the model may call; the executor runs it.
"""

from stark.tools.registry import TOOL_REGISTRY, get_tool, tool_names
from stark.tools.executor import ToolExecutor

__all__ = [
    "TOOL_REGISTRY",
    "ToolExecutor",
    "get_tool",
    "tool_names",
]
