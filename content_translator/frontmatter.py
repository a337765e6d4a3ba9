"""Line-level model of a document's frontmatter header.

The header is never round-tripped through a YAML dumper. Instead every line is
classified into one of four kinds and kept as its raw text, so anything the
rewriter does not explicitly touch is emitted byte-for-byte. Only top-level
(zero-indent) ``key: value`` lines are recognised as fields; nested maps,
list items and folded scalars are opaque continuation lines owned by the
nearest preceding field.
"""

import json
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from .locales import is_external_url

COMMENT_MARKER = "#"
INDENT = "  "

FRONTMATTER_REGEX = re.compile(
    r"\A---[ \t]*(?P<newline>\r?\n)(?:(?P<header>.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL
)
FIELD_REGEX = re.compile(r"^(?P<key>[A-Za-z_][\w.-]*)[ \t]*:(?:[ \t]+(?P<value>.*?))?[ \t]*$")
LEADING_WHITESPACE_REGEX = re.compile(r"^[ \t]*")
# Strings that a YAML loader would not read back as the same plain string.
UNSAFE_PLAIN_START_REGEX = re.compile(r"^[\s\-?:,\[\]{}#&*!|>'\"%@`]")
NUMERIC_REGEX = re.compile(r"^[-+]?(?:\d[\d_]*(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?$|^0[xo][0-9a-fA-F_]+$|^[-+]?\.(?:inf|nan)$", re.IGNORECASE)
RESERVED_WORDS = {"true", "false", "yes", "no", "on", "off", "null", "~"}
BOOL_TAG = "tag:yaml.org,2002:bool"


class HeaderError(Exception):
    """Raised when a header cannot be loaded as YAML for read-only lookups."""


class HeaderLoader(yaml.SafeLoader):
    """SafeLoader that only reads ``true`` / ``false`` as booleans.

    Locale codes such as ``no`` stay strings instead of turning into ``False``.
    """


HeaderLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
HeaderLoader.add_implicit_resolver(BOOL_TAG, re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"), list("tTfF"))


@dataclass(frozen=True)
class Comment:
    raw: str


@dataclass(frozen=True)
class Blank:
    raw: str


@dataclass(frozen=True)
class Field:
    raw: str
    key: str
    value: str
    indent: int = 0


@dataclass(frozen=True)
class Continuation:
    raw: str
    indent: int


HeaderLine = Union[Comment, Blank, Field, Continuation]


@dataclass(frozen=True)
class DocumentParts:
    header: str
    body: str
    # (start, end) offsets of the header text, None when the delimiters are adjacent
    header_span: Optional[Tuple[int, int]]
    opening_end: int
    newline: str = "\n"

    def with_header(self, text: str, new_header: str) -> str:
        """Return ``text`` with its header replaced, leaving delimiters and body alone."""
        if self.newline != "\n":
            new_header = new_header.replace("\n", self.newline)
        if self.header_span is None:
            if not new_header:
                return text
            return text[:self.opening_end] + new_header + self.newline + text[self.opening_end:]
        start, end = self.header_span
        return text[:start] + new_header + text[end:]


def split_document(text: str) -> Optional[DocumentParts]:
    """Locate the ``---`` delimited header at the very start of ``text``.

    CRLF headers are handed back with ``\\n`` line ends; ``with_header``
    restores the document's own line ending.
    """
    match = FRONTMATTER_REGEX.match(text)
    if not match:
        return None
    header = match.group("header")
    newline = match.group("newline")
    span = match.span("header") if header is not None else None
    return DocumentParts(
        header=(header or "").replace(newline, "\n"),
        body=text[match.end():],
        header_span=span,
        opening_end=match.end("newline"),
        newline=newline,
    )


def classify_line(raw: str) -> HeaderLine:
    stripped = raw.strip()
    if not stripped:
        return Blank(raw)
    if stripped.startswith(COMMENT_MARKER):
        return Comment(raw)
    indent = len(LEADING_WHITESPACE_REGEX.match(raw).group(0))
    if indent == 0:
        match = FIELD_REGEX.match(raw)
        if match:
            return Field(raw, match.group("key"), match.group("value") or "")
    return Continuation(raw, indent)


def parse_header(header_text: str) -> List[HeaderLine]:
    """Classify every line of ``header_text``. Never fails.

    Lines are split on ``\\n`` exactly, so ``"\\n".join(line.raw ...)`` gives
    back the input unchanged.
    """
    if not header_text:
        return []
    return [classify_line(raw) for raw in header_text.split("\n")]


def field_blocks(lines: List[HeaderLine]) -> List[Tuple[Field, List[HeaderLine]]]:
    """Group each top-level field with every line up to the next field."""
    blocks: List[Tuple[Field, List[HeaderLine]]] = []
    for line in lines:
        if isinstance(line, Field):
            blocks.append((line, []))
        elif blocks:
            blocks[-1][1].append(line)
    return blocks


def has_field(lines: List[HeaderLine], key: str) -> bool:
    return any(isinstance(line, Field) and line.key == key for line in lines)


def read_field(lines: List[HeaderLine], key: str) -> Any:
    """Load a single field's value as YAML, or ``None`` if the field is absent."""
    for field, trailing in field_blocks(lines):
        if field.key != key:
            continue
        block = "\n".join([field.raw] + [line.raw for line in trailing])
        try:
            loaded = yaml.load(block, Loader=HeaderLoader)
        except yaml.YAMLError as e:
            raise HeaderError(f"Field '{key}' is not valid YAML: {e}") from e
        return loaded.get(key) if isinstance(loaded, dict) else None
    return None


def load_header_data(header_text: str) -> Dict[str, Any]:
    try:
        data = yaml.load(header_text, Loader=HeaderLoader) if header_text.strip() else {}
    except yaml.YAMLError as e:
        raise HeaderError(f"Header is not valid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise HeaderError(f"Header is not a mapping (got {type(data).__name__})")
    return data


def _is_safe_plain(value: str) -> bool:
    if UNSAFE_PLAIN_START_REGEX.match(value) or value != value.rstrip():
        return False
    if ": " in value or " #" in value or value.endswith(":") or "\n" in value:
        return False
    if value.lower() in RESERVED_WORDS or NUMERIC_REGEX.match(value):
        return False
    return True


def render_scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return "[" + ", ".join(render_scalar(item) for item in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{render_key(str(k))}: {render_scalar(v)}" for k, v in value.items()) + "}"
    text = str(value)
    if not text or is_external_url(text) or not _is_safe_plain(text):
        return json.dumps(text, ensure_ascii=False)
    return text


def render_key(key: str) -> str:
    if key.lower() in RESERVED_WORDS or NUMERIC_REGEX.match(key):
        return json.dumps(key)
    return key


def render_field(key: str, value: Any, indent: str = "") -> List[str]:
    """Render ``key: value`` as header lines in the canonical layout."""
    key = render_key(key)
    if isinstance(value, dict):
        if not value:
            return [f"{indent}{key}: {{}}"]
        lines = [f"{indent}{key}:"]
        for sub_key, sub_value in value.items():
            lines.extend(render_field(str(sub_key), sub_value, indent + INDENT))
        return lines
    if isinstance(value, str) and "\n" in value:
        lines = [f"{indent}{key}: >-"]
        for value_line in value.split("\n"):
            lines.append(f"{indent}{INDENT}{value_line}" if value_line else "")
        return lines
    return [f"{indent}{key}: {render_scalar(value)}"]
