"""Static speech locale table.

Responsibilities:
- Declare the supported speech locales, per-language default locales, and
  per-language speaker ids.
- Expose the table once as an immutable mapping keyed by `language` or
  `language-DIALECT`.

The table is data, not logic: bump `LOCALE_TABLE_VERSION` whenever rows change so
stored artifacts can be traced back to the table that voiced them.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from ..models.datatypes import LocaleEntry


LOCALE_TABLE_VERSION = "2025.1"

GLOBAL_DEFAULT_LOCALE = "en-US"
GLOBAL_DEFAULT_SPEAKER = "echo"

# Speaker groups. Languages absent from every group use the global default speaker.
_SPEAKER_GROUPS: Mapping[str, tuple[str, ...]] = {
    "alloy": ("en",),
    "nova": ("es", "pt", "ro", "ca", "gl"),
    "shimmer": ("fr", "nl", "af"),
    "onyx": ("de", "sv", "da", "nb", "nn", "is"),
    "coral": (
        "it", "ja", "ko", "zh", "cmn", "hi", "bn", "ar", "ru", "pl", "uk", "cs",
        "sk", "bg", "hr", "sr", "sl", "mk", "be", "th", "vi", "id", "ms", "fil",
        "tr", "el", "he", "fa", "ur", "ta", "te", "mr", "gu", "kn", "ml", "pa",
        "or", "hu", "fi", "et", "lv", "lt",
    ),
}

_SUPPORTED_LOCALES: tuple[str, ...] = (
    "af-ZA", "am-ET", "ar-001", "ar-EG", "az-AZ", "be-BY", "bg-BG", "bn-BD",
    "ca-ES", "ceb-PH", "cmn-CN", "cmn-TW", "cs-CZ", "da-DK", "de-DE", "el-GR",
    "en-AU", "en-GB", "en-IN", "en-US", "es-419", "es-ES", "es-MX", "et-EE",
    "eu-ES", "fa-IR", "fi-FI", "fil-PH", "fr-CA", "fr-FR", "gl-ES", "gu-IN",
    "he-IL", "hi-IN", "hr-HR", "ht-HT", "hu-HU", "hy-AM", "id-ID", "is-IS",
    "it-IT", "ja-JP", "jv-JV", "ka-GE", "kn-IN", "kok-IN", "ko-KR", "la-VA",
    "lb-LU", "lo-LA", "lt-LT", "lv-LV", "mai-IN", "mg-MG", "mk-MK", "ml-IN",
    "mn-MN", "mr-IN", "ms-MY", "my-MM", "nb-NO", "ne-NP", "nl-NL", "nn-NO",
    "or-IN", "pa-IN", "pl-PL", "ps-AF", "pt-BR", "pt-PT", "ro-RO", "ru-RU",
    "sd-IN", "si-LK", "sk-SK", "sl-SI", "sq-AL", "sr-RS", "sv-SE", "sw-KE",
    "ta-IN", "te-IN", "th-TH", "tr-TR", "uk-UA", "ur-PK", "vi-VN",
)

# Default regional variant per bare language; unlisted languages default to their
# first supported locale.
_LANGUAGE_DEFAULTS: Mapping[str, str] = {
    "ar": "ar-EG",
    "en": "en-US",
    "es": "es-ES",
    "fr": "fr-FR",
    "pt": "pt-BR",
    "zh": "cmn-CN",
    "cmn": "cmn-CN",
}

# Dialect rows whose locale lives under another language code.
_ALIASES: Mapping[str, str] = {
    "zh-CN": "cmn-CN",
    "zh-TW": "cmn-TW",
}


def _speaker_for(language: str) -> str:
    for speaker_id, languages in _SPEAKER_GROUPS.items():
        if language in languages:
            return speaker_id
    return GLOBAL_DEFAULT_SPEAKER


def _split(code: str) -> tuple[str, str]:
    language, _, dialect = code.partition("-")
    return language, dialect


def _build_table() -> Mapping[str, LocaleEntry]:
    rows: dict[str, LocaleEntry] = {}

    for code in _SUPPORTED_LOCALES:
        language, dialect = _split(code)
        rows[code] = LocaleEntry(
            language_code=language,
            dialect_code=dialect,
            speech_locale=code,
            speaker_id=_speaker_for(language),
        )
        if language not in rows:
            default_locale = _LANGUAGE_DEFAULTS.get(language, code)
            rows[language] = LocaleEntry(
                language_code=language,
                dialect_code=None,
                speech_locale=default_locale,
                speaker_id=_speaker_for(language),
            )

    for language, default_locale in _LANGUAGE_DEFAULTS.items():
        if language not in rows:
            rows[language] = LocaleEntry(
                language_code=language,
                dialect_code=None,
                speech_locale=default_locale,
                speaker_id=_speaker_for(language),
            )

    for code, target in _ALIASES.items():
        language, dialect = _split(code)
        rows[code] = LocaleEntry(
            language_code=language,
            dialect_code=dialect,
            speech_locale=target,
            speaker_id=_speaker_for(language),
        )

    return MappingProxyType(rows)


LOCALE_TABLE: Mapping[str, LocaleEntry] = _build_table()
