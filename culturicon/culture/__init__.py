"""Cultural context: user profiles and speech locale resolution."""

from .locale_table import LOCALE_TABLE, LOCALE_TABLE_VERSION
from .locales import DEFAULT_RESOLVER, LanguageDialectResolver, Resolution, normalize_codes
from .profiles import (
    DEFAULT_PROFILE,
    CulturalContextProvider,
    InMemoryProfileStore,
    YamlProfileStore,
    profile_from_mapping,
    symbol_style_for_age,
)

__all__ = [
    "CulturalContextProvider",
    "DEFAULT_PROFILE",
    "DEFAULT_RESOLVER",
    "InMemoryProfileStore",
    "LOCALE_TABLE",
    "LOCALE_TABLE_VERSION",
    "LanguageDialectResolver",
    "Resolution",
    "YamlProfileStore",
    "normalize_codes",
    "profile_from_mapping",
    "symbol_style_for_age",
]
