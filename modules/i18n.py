"""
Internationalization (i18n) Module

UI strings for the printer installer.

Supported languages:
- English (en)
- Simplified Chinese (zh)

Strings live in translations/<lang>.json as nested objects and are looked
up with dot keys ('install.confirm'). A missing key falls back to English,
then to the key itself.

Usage in templates:
    {{ _('install.button', count=3) }}

Usage in Python:
    from modules.i18n import translate
    message = translate('summary.all_ok', lang='zh', count=3)
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from flask import has_request_context, request, session

logger = logging.getLogger("modules.i18n")

SUPPORTED_LANGUAGES = {
    'en': {'name': 'English', 'short': 'EN'},
    'zh': {'name': '简体中文', 'short': '中'},
}

DEFAULT_LANGUAGE = 'en'


def _flatten(data: Dict[str, Any], prefix: str = '') -> Dict[str, str]:
    flat: Dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(_flatten(value, full_key))
        else:
            flat[full_key] = str(value)
    return flat


class I18nManager:
    """Loads translation files and resolves dot keys."""

    def __init__(self, translations_dir: Optional[Path] = None):
        if translations_dir is None:
            translations_dir = Path(__file__).parent.parent / 'translations'

        self.translations_dir = translations_dir
        self._catalogs: Dict[str, Dict[str, str]] = {}
        self.reload()

    def reload(self) -> None:
        """(Re)load every supported language from disk."""
        if not self.translations_dir.exists():
            logger.warning(f"Translations directory not found: {self.translations_dir}")

        for lang_code in SUPPORTED_LANGUAGES:
            self._catalogs[lang_code] = self._load_catalog(lang_code)

    def _load_catalog(self, lang_code: str) -> Dict[str, str]:
        translation_file = self.translations_dir / f'{lang_code}.json'

        if not translation_file.exists():
            logger.warning(f"Translation file not found: {translation_file}")
            return {}

        try:
            with open(translation_file, 'r', encoding='utf-8') as f:
                catalog = _flatten(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load translation file {translation_file}: {e}")
            return {}

        logger.info(f"Loaded {len(catalog)} translation keys for language: {lang_code}")
        return catalog

    def get_translation(self, key: str, lang: str = DEFAULT_LANGUAGE, **kwargs) -> str:
        """
        Translated string for `key`.

        Supports variable substitution: "Install {count} printers"
        with count=3 -> "Install 3 printers".
        """
        if lang not in self._catalogs:
            lang = DEFAULT_LANGUAGE

        value = self._catalogs[lang].get(key)
        if value is None and lang != DEFAULT_LANGUAGE:
            value = self._catalogs[DEFAULT_LANGUAGE].get(key)
        if value is None:
            logger.debug(f"Translation key not found: {key} (lang: {lang})")
            return key

        if not kwargs:
            return value
        try:
            return value.format(**kwargs)
        except (KeyError, IndexError) as e:
            logger.warning(f"Missing variable in translation: {e} (key: {key}, lang: {lang})")
            return value

    def keys(self, lang: str) -> List[str]:
        return sorted(self._catalogs.get(lang, {}))

    def missing_keys(self, lang: str) -> List[str]:
        """Keys present in the default language but not in `lang`."""
        reference = set(self._catalogs.get(DEFAULT_LANGUAGE, {}))
        return sorted(reference - set(self._catalogs.get(lang, {})))

    def is_language_supported(self, lang_code: str) -> bool:
        return lang_code in SUPPORTED_LANGUAGES


# Global i18n manager instance
i18n_manager = I18nManager()


def translate(key: str, lang: str = DEFAULT_LANGUAGE, **kwargs) -> str:
    """
    Translate a key to the specified language.

    Example:
        >>> translate('install.confirm', lang='en', count=2)
        'Install 2 printers?'
    """
    return i18n_manager.get_translation(key, lang, **kwargs)


def get_supported_languages() -> Dict[str, Dict[str, str]]:
    return SUPPORTED_LANGUAGES


def best_language(candidates: Iterable[str]) -> str:
    """
    First supported language among `candidates` ('zh-CN' matches 'zh').

    Used when the session has no explicit choice yet.
    """
    for candidate in candidates:
        code = candidate.split('-')[0].split('_')[0].lower()
        if code in SUPPORTED_LANGUAGES:
            return code
    return DEFAULT_LANGUAGE


def current_language() -> str:
    """Language for the current request: session choice, else Accept-Language."""
    if not has_request_context():
        return DEFAULT_LANGUAGE
    lang = session.get("language")
    if lang in SUPPORTED_LANGUAGES:
        return lang
    return best_language(request.accept_languages.values())


def create_translation_filter(language: str):
    """
    Create a translation function bound to one language for templates.

    Usage in Flask:
        @app.context_processor
        def inject_translator():
            return {"_": create_translation_filter(current_language())}
    """
    def translation_filter(key: str, **kwargs) -> str:
        return translate(key, lang=language, **kwargs)

    return translation_filter
