"""Prompt and Message Construction Package"""

from acm.prompts.builder import PromptBuilder, DIFF_FIELD
from acm.prompts.formatter import format_commit_message

__all__ = [
    "PromptBuilder",
    "DIFF_FIELD",
    "format_commit_message",
]
