"""Cultural profile parsing and lookup.

Responsibilities:
- Normalize flat or nested profile documents into `CulturalProfile` records.
- Resolve user ids to profiles through a narrow, never-raising provider contract.

Key public API:
- `profile_from_mapping`, `DEFAULT_PROFILE`, `CulturalContextProvider`,
  `InMemoryProfileStore`, and `YamlProfileStore`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Protocol

import yaml
from loguru import logger

from ..models.datatypes import (
    SYMBOL_STYLES,
    AccessibilityPreferences,
    CulturalProfile,
    Demographics,
)
from ..parsing import normalize_optional_string, parse_optional_int, parse_permissive_boolean


DEFAULT_PROFILE = CulturalProfile(language="en", region="US", symbol_style="simple")

_MIN_AGE = 1
_MAX_AGE = 120


class CulturalContextProvider(Protocol):
    """Contract for resolving a user id into a cultural profile."""

    def get_cultural_context(self, user_id: str) -> CulturalProfile:
        """Return the user's profile, or the default profile when unavailable."""


def symbol_style_for_age(age: int | None) -> str:
    """Derive a pictogram style from the user's age band."""

    if age is None:
        return "simple"
    if age <= 12:
        return "cartoon"
    if age <= 25:
        return "modern"
    return "simple"


def profile_from_mapping(document: Mapping[str, Any]) -> CulturalProfile:
    """Build a cultural profile from a flat or nested profile document.

    Accepted shapes:
    - flat: `language`, `dialect`, `region`, `country`, `symbol_style`,
      `demographics`, `accessibility`;
    - nested: `languages.primary.{language,dialect}`, `location.{region,country}`,
      `demographics`, `culturalPreferences.{symbolStyle,accessibility}`.

    Keys may be camelCase or snake_case. A document flagged with
    `profileComplete: false` yields the default profile.
    """

    complete = parse_permissive_boolean(_pick(document, "profile_complete", "profileComplete"))
    if complete is False:
        return DEFAULT_PROFILE

    languages = _as_mapping(document.get("languages"))
    primary = _as_mapping(languages.get("primary"))
    location = _as_mapping(document.get("location"))
    preferences = _as_mapping(
        _pick(document, "cultural_preferences", "culturalPreferences")
    )

    language = normalize_optional_string(primary.get("language")) or normalize_optional_string(
        document.get("language")
    )
    dialect = normalize_optional_string(primary.get("dialect")) or normalize_optional_string(
        document.get("dialect")
    )
    region = normalize_optional_string(location.get("region")) or normalize_optional_string(
        document.get("region")
    )
    country = normalize_optional_string(location.get("country")) or normalize_optional_string(
        document.get("country")
    )

    demographics = _demographics_from_mapping(_as_mapping(document.get("demographics")))
    accessibility = _accessibility_from_mapping(
        _as_mapping(
            preferences.get("accessibility")
            if "accessibility" in preferences
            else document.get("accessibility")
        )
    )

    explicit_style = normalize_optional_string(
        _pick(preferences, "symbol_style", "symbolStyle")
        or _pick(document, "symbol_style", "symbolStyle")
    )
    if explicit_style is not None and explicit_style.lower() in SYMBOL_STYLES:
        symbol_style = explicit_style.lower()
    else:
        if explicit_style is not None:
            logger.warning("Ignoring unsupported symbol style `{}`.", explicit_style)
        symbol_style = symbol_style_for_age(
            demographics.age if demographics is not None else None
        )

    return CulturalProfile(
        language=(language or DEFAULT_PROFILE.language).lower(),
        region=region or DEFAULT_PROFILE.region,
        symbol_style=symbol_style,
        dialect=dialect,
        country=country,
        demographics=demographics,
        accessibility=accessibility,
    )


def _pick(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in mapping and mapping[key] is not None:
            return mapping[key]
    return None


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    return {}


def _demographics_from_mapping(raw: Mapping[str, Any]) -> Demographics | None:
    if not raw:
        return None
    age = parse_optional_int(raw.get("age"))
    if age is not None and not _MIN_AGE <= age <= _MAX_AGE:
        logger.warning("Ignoring out-of-range age `{}`.", age)
        age = None
    demographics = Demographics(
        age=age,
        gender=normalize_optional_string(raw.get("gender")),
        religion=normalize_optional_string(raw.get("religion")),
        ethnicity=normalize_optional_string(raw.get("ethnicity")),
    )
    if demographics.is_empty():
        return None
    return demographics


def _accessibility_from_mapping(raw: Mapping[str, Any]) -> AccessibilityPreferences | None:
    if not raw:
        return None
    return AccessibilityPreferences(
        high_contrast=bool(
            parse_permissive_boolean(_pick(raw, "high_contrast", "highContrast"))
        ),
        large_text=bool(parse_permissive_boolean(_pick(raw, "large_text", "largeText"))),
        simplified_icons=bool(
            parse_permissive_boolean(_pick(raw, "simplified_icons", "simplifiedIcons"))
        ),
    )


class InMemoryProfileStore:
    """Dictionary-backed cultural context provider."""

    def __init__(self, profiles: Mapping[str, CulturalProfile] | None = None) -> None:
        self._profiles = dict(profiles or {})

    def get_cultural_context(self, user_id: str) -> CulturalProfile:
        """Return the stored profile for `user_id`, or the default profile."""

        return self._profiles.get(user_id, DEFAULT_PROFILE)


class YamlProfileStore:
    """Cultural context provider backed by a YAML document keyed by user id.

    The file is read once on first lookup. Unreadable or malformed files degrade to
    the default profile with a logged warning, never an exception.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store with the YAML profile document path."""

        self.path = path
        self._profiles: dict[str, CulturalProfile] | None = None

    def get_cultural_context(self, user_id: str) -> CulturalProfile:
        """Return the profile for `user_id`, or the default profile."""

        profiles = self._load()
        return profiles.get(user_id, DEFAULT_PROFILE)

    def _load(self) -> dict[str, CulturalProfile]:
        if self._profiles is not None:
            return self._profiles

        profiles: dict[str, CulturalProfile] = {}
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Could not read profile store `{}`: {}", self.path, exc)
            raw = None

        if raw is not None and not isinstance(raw, Mapping):
            logger.warning("Profile store `{}` must contain a mapping of user ids.", self.path)
            raw = None

        for user_id, document in (raw or {}).items():
            if not isinstance(document, Mapping):
                logger.warning("Skipping malformed profile for user `{}`.", user_id)
                continue
            profiles[str(user_id)] = profile_from_mapping(document)

        self._profiles = profiles
        return profiles
