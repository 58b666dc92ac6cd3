"""Icon prompt construction."""

from .builder import MAX_BASE_TEXT_LENGTH, PromptBuilder, validate_base_text
from .modifiers import PROMPT_MODIFIERS

__all__ = ["MAX_BASE_TEXT_LENGTH", "PROMPT_MODIFIERS", "PromptBuilder", "validate_base_text"]
