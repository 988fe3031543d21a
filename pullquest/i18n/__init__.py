"""Translation catalogues for the login pages.

Each ``<locale>.json`` file in this directory is a nested catalogue looked up
with dotted keys (``login.submit``). English is the reference catalogue: a key
missing from another locale falls back to English, then to the key itself.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

I18N_DIR = Path(__file__).parent
DEFAULT_LOCALE = "en"


@lru_cache
def available_locales() -> frozenset[str]:
    """Locales that ship a catalogue."""
    return frozenset(path.stem for path in I18N_DIR.glob("*.json"))


@lru_cache
def load_translations(locale: str) -> dict[str, Any]:
    """Load the catalogue for ``locale``, or the English one if there is none."""
    if locale not in available_locales():
        locale = DEFAULT_LOCALE
    with open(I18N_DIR / f"{locale}.json", encoding="utf-8") as f:
        return json.load(f)


def _lookup(catalogue: dict[str, Any], key: str) -> str | None:
    value: Any = catalogue
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value if isinstance(value, str) else None


def get_translation(key: str, locale: str = DEFAULT_LOCALE) -> str:
    """Translate ``key``, falling back to English and then to the key."""
    found = _lookup(load_translations(locale), key)
    if found is None and locale != DEFAULT_LOCALE:
        found = _lookup(load_translations(DEFAULT_LOCALE), key)
    return found if found is not None else key


def t(key: str, locale: str = DEFAULT_LOCALE, **kwargs: Any) -> str:
    """Shorthand for get_translation with formatting support."""
    translation = get_translation(key, locale)
    if kwargs:
        try:
            return translation.format(**kwargs)
        except KeyError:
            return translation
    return translation


def negotiate_locale(accept_language: str | None) -> str:
    """Pick the best shipped locale for an ``Accept-Language`` header.

    Region subtags are ignored (``fr-CA`` matches ``fr``). Entries with
    ``q=0`` or a malformed weight are skipped.
    """
    if not accept_language:
        return DEFAULT_LOCALE

    candidates: list[tuple[float, int, str]] = []
    for position, entry in enumerate(accept_language.split(",")):
        tag, _, params = entry.strip().partition(";")
        language = tag.strip().split("-")[0].lower()
        if not language or language == "*":
            continue
        weight = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                weight = float(params[2:])
            except ValueError:
                continue
        if weight <= 0:
            continue
        # Header order breaks ties between equal weights
        candidates.append((-weight, position, language))

    for _, _, language in sorted(candidates):
        if language in available_locales():
            return language
    return DEFAULT_LOCALE
