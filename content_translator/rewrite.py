from typing import Any, Dict, List, Optional

from .frontmatter import (
    Blank,
    Comment,
    Continuation,
    HeaderLine,
    parse_header,
    render_field,
    split_document,
)

DEFAULT_METADATA_KEY = "_ai-translator"


def rewrite_header(
    lines: List[HeaderLine],
    source_fields: Dict[str, Any],
    replacements: Dict[str, Optional[str]],
    private_prefix: str = "_",
    marker_key: str = "_translateTo",
    metadata: Optional[Dict[str, Any]] = None,
    metadata_key: str = DEFAULT_METADATA_KEY,
) -> str:
    """Produce a translated header from a parsed source header in one pass.

    Private fields (``private_prefix``) are dropped with their nested lines;
    the marker field's slot is reused for the ``metadata`` block. Fields named
    in ``replacements`` get their new value and lose their old nested lines.
    Every other line is copied verbatim. Replacement keys the header never
    declared are appended, followed by the metadata block when the marker
    field was missing.
    """
    output: List[str] = []
    metadata_written = metadata is None
    replaced_keys = set()
    # True while continuation lines belong to a field that was dropped or re-rendered
    skipping = False

    for line in lines:
        if isinstance(line, (Comment, Blank)):
            output.append(line.raw)
            continue
        if isinstance(line, Continuation):
            if not skipping:
                output.append(line.raw)
            continue

        skipping = False
        if private_prefix and line.key.startswith(private_prefix):
            skipping = True
            if line.key == marker_key and not metadata_written:
                output.extend(render_field(metadata_key, metadata))
                metadata_written = True
            continue

        new_value = replacements.get(line.key)
        if new_value is None:
            output.append(line.raw)
            continue
        replaced_keys.add(line.key)
        if source_fields.get(line.key) == new_value:
            output.append(line.raw)
            continue
        output.extend(render_field(line.key, new_value))
        skipping = True

    for key, value in replacements.items():
        if value is not None and key not in replaced_keys:
            output.extend(render_field(key, value))
    if not metadata_written:
        output.extend(render_field(metadata_key, metadata))
    return "\n".join(output)


def patch_field(text: str, field_name: str, value: Any) -> Optional[str]:
    """Set one top-level header field of a whole document, keeping everything else.

    Returns the patched document, or ``None`` when the document has no header
    or already carries exactly this rendering of the field.
    """
    parts = split_document(text)
    if parts is None:
        return None

    rendered = render_field(field_name, value)
    output: List[str] = []
    replaced = False
    skipping = False
    for line in parse_header(parts.header):
        if isinstance(line, Continuation):
            if not skipping:
                output.append(line.raw)
            continue
        if isinstance(line, (Comment, Blank)):
            output.append(line.raw)
            continue
        skipping = line.key == field_name
        if not skipping:
            output.append(line.raw)
        elif not replaced:
            output.extend(rendered)
            replaced = True

    if not replaced:
        output.extend(rendered)

    patched = parts.with_header(text, "\n".join(output))
    if patched == text:
        return None
    return patched
