"""Prompt modifier functions for culturally-aware icon prompts.

Each modifier maps an optional cultural profile to one prompt clause, or `None` when
it has nothing to add. `PROMPT_MODIFIERS` fixes the order in which they are folded.
"""

from __future__ import annotations

from typing import Callable

from ..models.datatypes import CulturalProfile


PromptModifier = Callable[[CulturalProfile | None], "str | None"]

NEUTRAL_BOILERPLATE = (
    "Create a culturally appropriate AAC icon. "
    "Use a simple, high-contrast 2D style with a completely transparent background."
)
CLOSING_CONSTRAINT = "No embedded text, letters, or labels; a single focused subject."

_STYLE_MODIFIERS: dict[str, tuple[str, ...]] = {
    "simple": ("simple", "clean", "minimal"),
    "realistic": ("photorealistic", "detailed"),
    "abstract": ("abstract", "geometric", "minimalist"),
    "cartoon": ("cartoon style", "friendly", "colorful"),
    "modern": ("modern", "flat design", "crisp lines"),
}


def style_and_accessibility(profile: CulturalProfile | None) -> str | None:
    """Return the fixed boilerplate plus symbol style and accessibility modifiers."""

    if profile is None:
        return NEUTRAL_BOILERPLATE

    style = _STYLE_MODIFIERS.get(profile.symbol_style, _STYLE_MODIFIERS["simple"])
    clause = f"{NEUTRAL_BOILERPLATE} Style: {', '.join(style)}."

    constraints: list[str] = []
    if profile.accessibility is not None:
        if profile.accessibility.high_contrast:
            constraints.append("extra high contrast")
        if profile.accessibility.simplified_icons:
            constraints.extend(["simplified", "clear outlines"])
        if profile.accessibility.large_text:
            constraints.append("large, bold elements")
    if constraints:
        clause += f" Accessibility: {', '.join(constraints)}."
    return clause


def language_clause(profile: CulturalProfile | None) -> str | None:
    """Return the primary language and dialect clause."""

    if profile is None or not profile.language:
        return None
    clause = f"User profile context -> Primary language: {profile.language}"
    if profile.dialect:
        clause += f", Dialect: {profile.dialect}"
    return clause + "."


def location_clause(profile: CulturalProfile | None) -> str | None:
    """Return the country/region clause; region is omitted when equal to country."""

    if profile is None:
        return None
    if profile.country:
        clause = f"Country: {profile.country}"
        if profile.region and profile.region != profile.country:
            clause += f", Region: {profile.region}"
        return clause + "."
    if profile.region:
        return f"Region: {profile.region}."
    return None


def age_band_hint(profile: CulturalProfile | None) -> str | None:
    """Return an age-appropriate style hint for the three age bands."""

    if profile is None or profile.demographics is None or profile.demographics.age is None:
        return None
    age = profile.demographics.age
    if age <= 12:
        return "Audience: a child; use a playful, friendly look with rounded shapes."
    if age <= 25:
        return "Audience: a young person; use a contemporary, energetic look."
    return "Audience: an adult; use a professional, understated look."


def sensitivity_clause(profile: CulturalProfile | None) -> str | None:
    """Return a representation clause when religion or ethnicity is known."""

    if profile is None or profile.demographics is None:
        return None
    contexts: list[str] = []
    if profile.demographics.religion:
        contexts.append(f"religion {profile.demographics.religion}")
    if profile.demographics.ethnicity:
        contexts.append(f"ethnicity {profile.demographics.ethnicity}")
    if not contexts:
        return None
    return (
        "Depict people, clothing, food, and customs respectfully and appropriately for "
        f"{' and '.join(contexts)}."
    )


def closing_constraint(profile: CulturalProfile | None) -> str | None:
    """Return the closing composition constraint."""

    return CLOSING_CONSTRAINT


PROMPT_MODIFIERS: tuple[PromptModifier, ...] = (
    style_and_accessibility,
    language_clause,
    location_clause,
    age_band_hint,
    sensitivity_clause,
    closing_constraint,
)
