import os
import re
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Tuple, Any

from dotenv import dotenv_values, load_dotenv, set_key

DEFAULT_MODEL = "gpt-4.1"
DEFAULT_CONTENT_DIR = "src/content/pages"
DEFAULT_ENDPOINT_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_CONCURRENCY = 4
API_KEY_VAR = "OPENAI_API_KEY"

ASTRO_CONFIG_FILES = ("astro.config.mjs", "astro.config.js", "astro.config.ts")

I18N_BLOCK_REGEX = re.compile(r"i18n:\s*\{([^}]+)\}", re.DOTALL)
LOCALES_ARRAY_REGEX = re.compile(r"locales:\s*\[([^\]]+)\]")
LOCALES_SHORTHAND_REGEX = re.compile(r"\blocales\s*(?:,|\Z)")
SPREAD_REGEX = re.compile(r"\.\.\.(\w+)")
DEFAULT_LOCALE_REGEX = re.compile(r"defaultLocale:\s*(\w+|[\"'][^\"']+[\"'])")
DEFAULT_LOCALE_SHORTHAND_REGEX = re.compile(r"\bdefaultLocale\s*(?:,|\Z)")
QUOTED_STRING_REGEX = re.compile(r"[\"']([^\"']+)[\"']")
IMPORT_EXTENSIONS = (".ts", ".js", ".mjs")


class ConfigError(Exception):
    """Raised when the translator cannot run with the configuration it was given."""


@dataclass(frozen=True)
class TranslatorConfig:
    root: Path
    locales: List[str]
    default_locale: str
    content_dir: str = DEFAULT_CONTENT_DIR
    model: str = DEFAULT_MODEL
    prompt: Optional[str] = None
    update_alternates: bool = True
    concurrency: int = DEFAULT_CONCURRENCY
    api_key: Optional[str] = None
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    translatable_fields: Tuple[str, ...] = ("title", "description")
    private_prefix: str = "_"
    marker_key: str = "_translateTo"
    metadata_key: str = "_ai-translator"
    alternates_key: str = "alternates"
    extensions: Tuple[str, ...] = field(default=(".md", ".mdx"))

    @property
    def content_path(self) -> Path:
        return self.root / self.content_dir

    def with_overrides(self, **overrides: Any) -> "TranslatorConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _resolve_import_path(import_path: str, from_dir: Path) -> Optional[Path]:
    if not import_path.startswith(("./", "../")):
        return None
    resolved = from_dir / import_path
    if resolved.is_file():
        return resolved
    for ext in IMPORT_EXTENSIONS:
        candidate = resolved.with_name(resolved.name + ext)
        if candidate.is_file():
            return candidate
    for ext in IMPORT_EXTENSIONS:
        candidate = resolved / f"index{ext}"
        if candidate.is_file():
            return candidate
    return None


def _resolve_variable(content: str, name: str, file_dir: Path, literal_pattern: str, seen=None) -> Optional[str]:
    """Find the literal a JS variable is bound to, following aliases and relative imports.

    ``literal_pattern`` matches the right-hand side of the binding and must have
    one group; its text is returned.
    """
    seen = set() if seen is None else seen
    if (file_dir, name) in seen:
        return None
    seen.add((file_dir, name))

    name_regex = re.escape(name)
    literal = re.search(rf"(?:const|let|var)\s+{name_regex}\s*=\s*{literal_pattern}", content)
    if literal:
        return literal.group(1)

    alias = re.search(rf"(?:export\s+)?const\s+{name_regex}\s*=\s*(\w+)\s*;", content)
    if alias and alias.group(1) != name:
        return _resolve_variable(content, alias.group(1), file_dir, literal_pattern, seen)

    imported = re.search(rf"import\s*\{{[^}}]*\b{name_regex}\b[^}}]*\}}\s*from\s*[\"']([^\"']+)[\"']", content)
    if imported:
        import_path = _resolve_import_path(imported.group(1), file_dir)
        if import_path is not None:
            logging.debug(f"CONFIG: Following import of '{name}' into {import_path}")
            return _resolve_variable(
                import_path.read_text(encoding="utf-8"), name, import_path.parent, literal_pattern, seen
            )
    return None


def resolve_locales_variable(content: str, name: str, file_dir: Path) -> List[str]:
    array = _resolve_variable(content, name, file_dir, r"\[([^\]]+)\]")
    return QUOTED_STRING_REGEX.findall(array) if array else []


def resolve_string_variable(content: str, name: str, file_dir: Path) -> Optional[str]:
    return _resolve_variable(content, name, file_dir, r"[\"']([^\"']+)[\"']")


def read_astro_i18n(root: Path) -> Tuple[List[str], Optional[str]]:
    """Pull ``locales`` / ``defaultLocale`` out of an Astro config without running it.

    Understands literal arrays and strings, ``[...name]`` spreads, shorthand
    properties and plain identifiers. Identifiers are looked up as
    ``const``/``let``/``var`` bindings in the config file, following aliases
    and relative ``import { name } from "./file"`` statements.
    """
    for name in ASTRO_CONFIG_FILES:
        config_path = root / name
        if not config_path.exists():
            continue
        content = config_path.read_text(encoding="utf-8")
        block_match = I18N_BLOCK_REGEX.search(content)
        if not block_match:
            logging.debug(f"CONFIG: {name} has no i18n block.")
            return [], None
        block = block_match.group(1)

        locales: List[str] = []
        locales_match = LOCALES_ARRAY_REGEX.search(block)
        if locales_match:
            spread = SPREAD_REGEX.search(locales_match.group(1))
            if spread:
                locales = resolve_locales_variable(content, spread.group(1), root)
            else:
                locales = QUOTED_STRING_REGEX.findall(locales_match.group(1))
        elif LOCALES_SHORTHAND_REGEX.search(block):
            locales = resolve_locales_variable(content, "locales", root)

        default_locale = None
        default_match = DEFAULT_LOCALE_REGEX.search(block)
        if default_match:
            value = default_match.group(1)
            if value[0] in "\"'":
                default_locale = value[1:-1]
            else:
                default_locale = resolve_string_variable(content, value, root)
        elif DEFAULT_LOCALE_SHORTHAND_REGEX.search(block):
            default_locale = resolve_string_variable(content, "defaultLocale", root)
        return locales, default_locale
    return [], None


def _split_locales(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ("false", "0", "no", "off")


def load_config(root: Optional[Path] = None, **overrides: Any) -> TranslatorConfig:
    """Resolve configuration from ``.env``, the environment, and the Astro config.

    Keyword overrides (typically CLI flags) win over everything else; ``None``
    values are ignored so unset flags fall through to the environment.
    """
    root = Path(root or os.getcwd()).resolve()
    env_path = root / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)

    locales = overrides.pop("locales", None) or _split_locales(os.environ.get("AI_TRANSLATE_LOCALES"))
    default_locale = overrides.pop("default_locale", None) or os.environ.get("AI_TRANSLATE_DEFAULT_LOCALE")
    if not locales:
        astro_locales, astro_default = read_astro_i18n(root)
        locales = astro_locales
        default_locale = default_locale or astro_default

    if not locales:
        raise ConfigError(
            "No locales found.\n\n"
            "Configure i18n in astro.config.mjs:\n"
            "  i18n: {\n"
            "    locales: ['en', 'ru', 'de'],\n"
            "    defaultLocale: 'en',\n"
            "  }\n"
            "or set AI_TRANSLATE_LOCALES=en,ru,de"
        )
    default_locale = default_locale or locales[0]
    if default_locale not in locales:
        locales = [default_locale] + list(locales)

    concurrency = os.environ.get("AI_TRANSLATE_CONCURRENCY")
    config = TranslatorConfig(
        root=root,
        locales=list(locales),
        default_locale=default_locale,
        content_dir=os.environ.get("AI_TRANSLATE_CONTENT_DIR", DEFAULT_CONTENT_DIR),
        model=os.environ.get("AI_TRANSLATE_MODEL", DEFAULT_MODEL),
        prompt=os.environ.get("AI_TRANSLATE_PROMPT") or None,
        update_alternates=_env_flag("AI_TRANSLATE_UPDATE_ALTERNATES", True),
        concurrency=int(concurrency) if concurrency else DEFAULT_CONCURRENCY,
        api_key=os.environ.get(API_KEY_VAR),
        endpoint_url=os.environ.get("OPENAI_API_ENDPOINT_URL", DEFAULT_ENDPOINT_URL),
    )
    return config.with_overrides(**overrides)


def has_api_key(root: Path) -> bool:
    env_path = root / ".env"
    return env_path.exists() and bool(dotenv_values(env_path).get(API_KEY_VAR))


def save_api_key(root: Path, api_key: str) -> List[str]:
    """Write the API key to ``root/.env`` and make sure git ignores ``.env``.

    Returns the names of the files that were changed.
    """
    env_path = root / ".env"
    env_path.touch(exist_ok=True)
    set_key(str(env_path), API_KEY_VAR, api_key)
    changed = [".env"]

    gitignore_path = root / ".gitignore"
    if gitignore_path.exists():
        gitignore = gitignore_path.read_text(encoding="utf-8")
        if ".env" not in (line.strip() for line in gitignore.splitlines()):
            separator = "" if not gitignore or gitignore.endswith("\n") else "\n"
            gitignore_path.write_text(f"{gitignore}{separator}.env\n", encoding="utf-8")
            changed.append(".gitignore")
    return changed
