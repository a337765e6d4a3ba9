import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import TranslatorConfig
from .frontmatter import HeaderError, HeaderLine, load_header_data, parse_header, split_document
from .locales import base_path, locale_of, parse_translate_to

HASH_LENGTH = 12


@dataclass
class Document:
    path: Path
    relative_path: str
    locale: str
    raw: str
    header: Optional[str]
    body: str
    hash: str
    translate_to: Union[List[str], bool] = False
    data: Dict[str, Any] = field(default_factory=dict)
    lines: List[HeaderLine] = field(default_factory=list)

    @property
    def content(self) -> str:
        return self.body.strip()


def hash_content(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def load_document(path: Path, config: TranslatorConfig) -> Document:
    """Read one content file. Raises ``HeaderError`` for a header that is not YAML."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        raw = f.read()
    relative_path = path.relative_to(config.content_path).as_posix()
    locale = locale_of(relative_path, config)
    parts = split_document(raw)

    if parts is None:
        return Document(path, relative_path, locale, raw, None, raw, hash_content(raw))

    data = load_header_data(parts.header)
    return Document(
        path=path,
        relative_path=relative_path,
        locale=locale,
        raw=raw,
        header=parts.header,
        body=parts.body,
        hash=hash_content(raw),
        translate_to=parse_translate_to(data.get(config.marker_key), locale, config),
        data=data,
        lines=parse_header(parts.header),
    )


def document_base_path(document: Document, config: TranslatorConfig) -> str:
    return base_path(document.relative_path, document.locale, config)


def scan_content(config: TranslatorConfig) -> List[Document]:
    content_path = config.content_path
    if not content_path.is_dir():
        logging.warning(f"SCAN: Content directory {content_path} does not exist.")
        return []

    documents: List[Document] = []
    for path in sorted(content_path.rglob("*")):
        if not path.is_file() or path.suffix not in config.extensions:
            continue
        try:
            documents.append(load_document(path, config))
        except HeaderError as e:
            logging.warning(f"SCAN: Skipping {path}: {e}")
    logging.debug(f"SCAN: Found {len(documents)} document(s) under {content_path}.")
    return documents
