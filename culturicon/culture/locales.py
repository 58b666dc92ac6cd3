"""Language and dialect resolution for speech synthesis.

Responsibilities:
- Normalize language and dialect codes, including composite `fr-CA`/`fr_CA` input.
- Resolve speech locales and speaker ids through a layered fallback chain:
  exact `language-DIALECT` row, then bare-language row, then global default.
- Report whether resolution degraded, so callers can surface `fallback_used`.
"""

from __future__ import annotations

from typing import Mapping, NamedTuple

from ..models.datatypes import LocaleEntry, VoiceSelection
from ..parsing import normalize_optional_string
from .locale_table import GLOBAL_DEFAULT_LOCALE, GLOBAL_DEFAULT_SPEAKER, LOCALE_TABLE


class Resolution(NamedTuple):
    """Resolved value plus whether any fallback layer was used."""

    value: str
    used_fallback: bool


def normalize_codes(language: str | None, dialect: str | None = None) -> tuple[str, str | None]:
    """Normalize a language/dialect pair.

    Language codes are lower-cased, alphabetic dialects upper-cased, and numeric
    dialects such as `419` kept as-is. A composite language code is split when no
    explicit dialect is given.
    """

    normalized_language = (normalize_optional_string(language) or "").replace("_", "-")
    normalized_dialect = normalize_optional_string(dialect)

    if "-" in normalized_language:
        normalized_language, _, embedded = normalized_language.partition("-")
        if normalized_dialect is None:
            normalized_dialect = normalize_optional_string(embedded)

    normalized_language = normalized_language.lower()
    if normalized_dialect is not None and not normalized_dialect.isdigit():
        normalized_dialect = normalized_dialect.upper()
    return normalized_language, normalized_dialect


class LanguageDialectResolver:
    """Resolver over a static, read-only locale table."""

    def __init__(
        self,
        table: Mapping[str, LocaleEntry] = LOCALE_TABLE,
        *,
        default_locale: str = GLOBAL_DEFAULT_LOCALE,
        default_speaker: str = GLOBAL_DEFAULT_SPEAKER,
    ) -> None:
        self._table = table
        self._default_locale = default_locale
        self._default_speaker = default_speaker

    def lookup(self, language: str | None, dialect: str | None = None) -> tuple[LocaleEntry | None, bool]:
        """Return the best matching table row and whether a fallback layer was used.

        `None` is returned as the row when only the global default applies.
        """

        normalized_language, normalized_dialect = normalize_codes(language, dialect)
        if not normalized_language:
            return None, True

        if normalized_dialect is not None:
            exact = self._table.get(f"{normalized_language}-{normalized_dialect}")
            if exact is not None:
                return exact, False

        language_row = self._table.get(normalized_language)
        if language_row is not None:
            return language_row, normalized_dialect is not None
        return None, True

    def resolve_speech_locale(self, language: str | None, dialect: str | None = None) -> Resolution:
        """Resolve the speech locale code for a language/dialect pair."""

        row, used_fallback = self.lookup(language, dialect)
        if row is None:
            return Resolution(self._default_locale, True)
        return Resolution(row.speech_locale, used_fallback)

    def resolve_speaker(self, language: str | None, dialect: str | None = None) -> Resolution:
        """Resolve the speaker id for a language/dialect pair."""

        row, used_fallback = self.lookup(language, dialect)
        if row is None:
            return Resolution(self._default_speaker, True)
        return Resolution(row.speaker_id, used_fallback)

    def resolve_voice(
        self,
        language: str | None,
        dialect: str | None = None,
        *,
        accent: str | None = None,
    ) -> VoiceSelection:
        """Resolve locale and speaker together; `accent` overrides the speaker id."""

        locale = self.resolve_speech_locale(language, dialect)
        speaker = self.resolve_speaker(language, dialect)
        override = normalize_optional_string(accent)
        return VoiceSelection(
            locale_code=locale.value,
            speaker_id=override or speaker.value,
            used_fallback=locale.used_fallback or speaker.used_fallback,
        )


DEFAULT_RESOLVER = LanguageDialectResolver()
