"""Prompt and context assembly for the STARK agent."""

from stark.agents.context import (
    FILE_RULES,
    SYSTEM_PROMPT,
    TOOLS_PROMPT,
    build_file_context,
    build_system_prompt,
    build_user_message,
    categorize_expense,
    transfer_recipient,
)

__all__ = [
    "FILE_RULES",
    "SYSTEM_PROMPT",
    "TOOLS_PROMPT",
    "build_file_context",
    "build_system_prompt",
    "build_user_message",
    "categorize_expense",
    "transfer_recipient",
]
