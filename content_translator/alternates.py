"""Keep the ``alternates`` map consistent across a page's locale siblings.

Siblings are the files at ``target_path(base, locale)`` for every configured
locale. Only siblings that already declare ``alternates`` take part: their maps
are unioned in configured locale order (the first sibling to name a locale
wins that entry) and each participant that is missing entries is patched in
place. A converged set produces no writes.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .config import TranslatorConfig
from .documents import Document, document_base_path, load_document, scan_content
from .frontmatter import HeaderError, has_field, read_field
from .locales import target_path
from .rewrite import patch_field


def read_alternates(document: Document, config: TranslatorConfig) -> Optional[Dict[str, str]]:
    """Return the document's alternates map, or ``None`` if it has not opted in."""
    if not has_field(document.lines, config.alternates_key):
        return None
    value = read_field(document.lines, config.alternates_key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logging.warning(f"ALTERNATES: {document.relative_path}: '{config.alternates_key}' is not a mapping, ignoring.")
        return None
    return {str(locale): "" if link is None else str(link) for locale, link in value.items()}


def merge_alternates(maps: Iterable[Dict[str, str]]) -> Dict[str, str]:
    merged: Dict[str, str] = {}
    for alternates in maps:
        for locale, link in alternates.items():
            if locale not in merged:
                merged[locale] = link
    return merged


def load_siblings(base: str, config: TranslatorConfig) -> List[Document]:
    siblings: List[Document] = []
    for locale in config.locales:
        path = config.content_path / target_path(base, locale, config)
        if not path.is_file():
            continue
        try:
            siblings.append(load_document(path, config))
        except HeaderError as e:
            logging.warning(f"ALTERNATES: Skipping {path}: {e}")
    return siblings


def sync_alternates(siblings: List[Document], config: TranslatorConfig) -> List[str]:
    """Converge the alternates maps of one sibling set; return the paths written."""
    order = {locale: index for index, locale in enumerate(config.locales)}
    participants = []
    for document in sorted(siblings, key=lambda d: (order.get(d.locale, len(order)), d.relative_path)):
        try:
            alternates = read_alternates(document, config)
        except HeaderError as e:
            logging.warning(f"ALTERNATES: Skipping {document.relative_path}: {e}")
            continue
        if alternates is None:
            continue
        participants.append((document, alternates))

    merged = merge_alternates(alternates for _, alternates in participants)
    modified: List[str] = []
    for document, alternates in participants:
        if alternates == merged:
            continue
        patched = patch_field(document.raw, config.alternates_key, merged)
        if patched is None:
            continue
        with open(document.path, "w", encoding="utf-8", newline="") as f:
            f.write(patched)
        modified.append(document.relative_path)
        added = sorted(set(merged) - set(alternates))
        logging.info(f"ALTERNATES: Updated {document.relative_path} (added: {', '.join(added) or 'none'}).")
    return modified


def sync_base_paths(bases: Iterable[str], config: TranslatorConfig) -> List[str]:
    modified: List[str] = []
    for base in sorted(set(bases)):
        modified.extend(sync_alternates(load_siblings(base, config), config))
    return modified


def sync_all_alternates(config: TranslatorConfig) -> List[str]:
    return sync_base_paths((document_base_path(d, config) for d in scan_content(config)), config)
