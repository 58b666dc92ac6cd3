"""Culturally-aware prompt construction for icon generation.

Responsibilities:
- Validate base text for icon prompts.
- Fold the ordered modifier functions into one deterministic prompt string.
"""

from __future__ import annotations

from typing import Sequence

from ..errors import PromptInputError
from ..models.datatypes import CulturalProfile
from .modifiers import PROMPT_MODIFIERS, PromptModifier


MAX_BASE_TEXT_LENGTH = 500


class PromptBuilder:
    """Build icon generation prompts from base text and an optional profile."""

    def __init__(self, modifiers: Sequence[PromptModifier] = PROMPT_MODIFIERS) -> None:
        """Initialize the builder with an ordered modifier sequence."""

        self.modifiers = tuple(modifiers)

    def build(self, base_text: str, profile: CulturalProfile | None = None) -> str:
        """Return the generation prompt for `base_text`.

        Raises:
            PromptInputError: If the stripped base text is empty or longer than
                `MAX_BASE_TEXT_LENGTH` characters.
        """

        subject = validate_base_text(base_text)
        clauses = [subject if subject[-1] in ".!?" else f"{subject}."]
        for modifier in self.modifiers:
            clause = modifier(profile)
            if clause:
                clauses.append(clause)
        return " ".join(clauses)


def validate_base_text(base_text: str) -> str:
    """Return stripped base text, raising `PromptInputError` when out of bounds."""

    if not isinstance(base_text, str):
        raise PromptInputError("Text must be a string.")
    subject = base_text.strip()
    if not subject:
        raise PromptInputError("Text must not be empty.")
    if len(subject) > MAX_BASE_TEXT_LENGTH:
        raise PromptInputError(
            f"Text must be at most {MAX_BASE_TEXT_LENGTH} characters; got {len(subject)}."
        )
    return subject
