"""AI translation for locale-organized Markdown/MDX content."""

from .alternates import merge_alternates, sync_alternates, sync_all_alternates
from .config import ConfigError, TranslatorConfig, load_config
from .core import TranslationResult, estimate, status, translate
from .frontmatter import Blank, Comment, Continuation, Field, parse_header, split_document
from .llm import LLMService, TranslationError
from .rewrite import patch_field, rewrite_header

__all__ = [
    "Blank",
    "Comment",
    "ConfigError",
    "Continuation",
    "Field",
    "LLMService",
    "TranslationError",
    "TranslationResult",
    "TranslatorConfig",
    "estimate",
    "load_config",
    "merge_alternates",
    "parse_header",
    "patch_field",
    "rewrite_header",
    "split_document",
    "status",
    "sync_all_alternates",
    "sync_alternates",
    "translate",
]
