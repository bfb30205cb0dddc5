"""Tool argument validation package."""

from stark.validation.validator import ToolArgumentValidator

__all__ = ["ToolArgumentValidator"]
