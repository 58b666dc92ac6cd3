"""Prompt template library for model-backed collaborators.

Responsibilities:
- Centralize instruction text for translation, vision analysis, image editing,
  and speech synthesis calls.
- Keep prompts deterministic by template key.
"""

from __future__ import annotations


SANITIZE_INSTRUCTION = (
    "Remove the background of this image and make it transparent. "
    "Also remove any text, labels, and words from the image. "
    "Keep the main subject unchanged."
)

_ANALYSIS_PROMPTS = {
    "description": (
        "Describe this image in simple, clear language suitable for creating an AAC "
        "communication icon. Focus on the main subject and key visual elements. Keep the "
        "description concise and appropriate for generating a simplified icon."
    ),
    "icon_elements": (
        "Identify the key visual elements in this image that would be important for "
        "creating a simple communication icon. List the main objects, colors, and shapes "
        "that should be preserved in a simplified version."
    ),
}
_DEFAULT_ANALYSIS_PROMPT = (
    "Analyze this image and provide a clear, simple description of what it shows."
)

ANALYSIS_FALLBACKS = {
    "description": "uploaded image content",
    "icon_elements": "simple icon with basic shapes and elements",
    "objects": "various objects and elements",
    "scene": "general scene or setting",
}
DEFAULT_ANALYSIS_FALLBACK = ANALYSIS_FALLBACKS["description"]


class PromptLibrary:
    """Build prompt strings for supported model tasks."""

    def translation_system_prompt(self) -> str:
        """Return deterministic system prompt for strict translation behavior."""

        return (
            "You are a precise translation assistant for short communication-board labels. "
            "Return only translated text with no commentary."
        )

    def translate_prompt(
        self,
        source_text: str,
        target_language: str,
        target_dialect: str | None = None,
    ) -> str:
        """Return translation prompt text for provider calls."""

        prompt = f"Translate the following text to {target_language}"
        if target_dialect:
            prompt += f" using the {target_dialect} dialect"
        return (
            f"{prompt}. Provide only the translated text without any explanations or "
            f'additional context.\n\nText to translate: "{source_text}"'
        )

    def analysis_system_prompt(self) -> str:
        """Return deterministic system prompt for image analysis behavior."""

        return (
            "You describe images for people who build accessible pictogram icons. "
            "Answer in plain prose with no markdown."
        )

    def analysis_prompt(self, analysis_kind: str) -> str:
        """Return the vision prompt for an analysis kind."""

        return _ANALYSIS_PROMPTS.get(analysis_kind, _DEFAULT_ANALYSIS_PROMPT)

    def analysis_fallback(self, analysis_kind: str) -> str:
        """Return the canned low-confidence description for an analysis kind."""

        return ANALYSIS_FALLBACKS.get(analysis_kind, DEFAULT_ANALYSIS_FALLBACK)

    def sanitize_instruction(self, hint: str | None = None) -> str:
        """Return the declarative background and text removal instruction."""

        if hint:
            return f"{SANITIZE_INSTRUCTION} The subject is: {hint}."
        return SANITIZE_INSTRUCTION

    def regenerate_prompt(self, description: str) -> str:
        """Return the base text used to redraw an uploaded image as an icon."""

        return f"An icon of {description}"

    def speech_instructions(self, locale_code: str) -> str:
        """Return delivery instructions for short spoken labels."""

        return (
            f"Speak clearly and warmly at a gentle pace, with the natural accent of {locale_code}. "
            "This is a short label on a communication board."
        )
