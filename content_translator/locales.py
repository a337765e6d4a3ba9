import re
from typing import Any, List, Union

from .config import TranslatorConfig

ALL_LOCALES_TOKEN = "all"
EXTERNAL_URL_REGEX = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


def is_external_url(value: Any) -> bool:
    return isinstance(value, str) and bool(EXTERNAL_URL_REGEX.match(value))


def locale_of(relative_path: str, config: TranslatorConfig) -> str:
    first_segment = relative_path.split("/", 1)[0]
    if first_segment in config.locales and first_segment != config.default_locale:
        return first_segment
    return config.default_locale


def base_path(relative_path: str, locale: str, config: TranslatorConfig) -> str:
    if locale == config.default_locale:
        return relative_path
    prefix = f"{locale}/"
    if relative_path.startswith(prefix):
        return relative_path[len(prefix):]
    return relative_path


def target_path(base: str, target_locale: str, config: TranslatorConfig) -> str:
    if target_locale == config.default_locale:
        return base
    return f"{target_locale}/{base}"


def parse_translate_to(value: Any, source_locale: str, config: TranslatorConfig) -> Union[List[str], bool]:
    """Interpret the opt-in marker field. ``False`` means "do not translate"."""
    if value is None or value is False:
        return False
    if isinstance(value, list):
        return [str(locale) for locale in value if str(locale) != source_locale]
    if value == ALL_LOCALES_TOKEN:
        return [locale for locale in config.locales if locale != source_locale]
    if isinstance(value, str):
        return [value] if value != source_locale else []
    return False
