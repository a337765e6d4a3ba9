import pytest

from content_translator.frontmatter import load_header_data, parse_header
from content_translator.rewrite import patch_field, rewrite_header

HEADERS = [
    "title: A\n# note\nfoo: 1",
    "title: A\n\n  # indented comment\ntags:\n  - a\n  - b\nnested:\n  deep:\n    x: 1\n",
    "description: >-\n  folded\n  text\n\n# end",
    "",
    "# only a comment",
]


@pytest.mark.parametrize("header", HEADERS)
def test_rewrite_without_changes_is_identity(header):
    assert rewrite_header(parse_header(header), load_header_data(header), {}) == header


def test_replacing_one_field_keeps_order_and_comments():
    header = "title: A\n# note\nfoo: 1"
    result = rewrite_header(parse_header(header), {"title": "A"}, {"title": "Б"})
    assert result == "title: Б\n# note\nfoo: 1"


def test_private_fields_stripped_and_marker_replaced_by_metadata():
    header = "a: 1\n_translateTo: [ru]\nb: 2"
    result = rewrite_header(
        parse_header(header),
        {},
        {},
        private_prefix="_",
        marker_key="_translateTo",
        metadata={"source": "x.md", "hash": "abc123"},
    )
    assert result == "a: 1\n_ai-translator:\n  source: x.md\n  hash: abc123\nb: 2"


def test_private_field_continuations_are_dropped():
    header = "_draft:\n  reason: wip\n  - x\ntitle: A\n_translateTo:\n  - ru\n  - de\nz: 1"
    result = rewrite_header(parse_header(header), {}, {}, metadata={"source": "a.md"})
    assert result == "title: A\n_ai-translator:\n  source: a.md\nz: 1"


def test_metadata_appended_when_marker_missing():
    result = rewrite_header(parse_header("title: A"), {}, {}, metadata={"hash": "abc"})
    assert result == "title: A\n_ai-translator:\n  hash: abc"


def test_continuations_of_untouched_fields_survive_replacement():
    header = "title: Old\ntags:\n  - a\n  - b\ndescription: x"
    result = rewrite_header(parse_header(header), {}, {"title": "New", "description": "y"})
    assert result == "title: New\ntags:\n  - a\n  - b\ndescription: y"


def test_replaced_field_loses_its_old_continuations():
    header = "description: >\n  old folded\n  value\nfoo: 1"
    result = rewrite_header(parse_header(header), {}, {"description": "first line\nsecond line"})
    assert result == "description: >-\n  first line\n  second line\nfoo: 1"


def test_none_replacement_keeps_original_line():
    header = "title: 'Quoted Title'\ndescription: d"
    result = rewrite_header(parse_header(header), {}, {"title": None, "description": "D"})
    assert result == "title: 'Quoted Title'\ndescription: D"


def test_unchanged_replacement_keeps_original_formatting():
    header = "title: 'Same'\nfoo: 1"
    result = rewrite_header(parse_header(header), {"title": "Same"}, {"title": "Same"})
    assert result == header


def test_new_replacement_keys_are_appended_before_metadata():
    result = rewrite_header(parse_header("title: A"), {}, {"permalink": "/ru/about"}, metadata={"hash": "h"})
    assert result == "title: A\npermalink: /ru/about\n_ai-translator:\n  hash: h"


def test_replacement_values_needing_quotes_are_quoted():
    result = rewrite_header(parse_header("title: A"), {}, {"title": "Part 1: Intro"})
    assert result == 'title: "Part 1: Intro"'


DOC = "---\ntitle: A\n# keep me\nalternates:\n  en: \"\"\ntags:\n  - x\n---\n\nBody\n"


def test_patch_replaces_existing_field():
    result = patch_field(DOC, "alternates", {"en": "", "ru": "/ru/a"})
    assert result == "---\ntitle: A\n# keep me\nalternates:\n  en: \"\"\n  ru: /ru/a\ntags:\n  - x\n---\n\nBody\n"


def test_patch_appends_missing_field():
    result = patch_field("---\ntitle: A\n---\nBody", "alternates", {"de": "https://example.de"})
    assert result == "---\ntitle: A\nalternates:\n  de: \"https://example.de\"\n---\nBody"


def test_patch_scalar_value():
    assert patch_field("---\ntitle: A\nb: 1\n---\n", "title", "B") == "---\ntitle: B\nb: 1\n---\n"


def test_patch_is_idempotent():
    value = {"en": "", "ru": "/ru/a", "de": "https://example.de/a"}
    once = patch_field(DOC, "alternates", value)
    assert once is not None
    assert patch_field(once, "alternates", value) is None


def test_patch_without_header_is_noop():
    assert patch_field("# Title\n\nNo frontmatter here.\n", "alternates", {"en": ""}) is None


def test_patch_keeps_body_bytes():
    doc = "---\nalternates:\n  en: x\n---\n---\nnot a header\n---\n"
    result = patch_field(doc, "alternates", {"en": "x", "ru": "y"})
    assert result == "---\nalternates:\n  en: x\n  ru: y\n---\n---\nnot a header\n---\n"


def test_patch_keeps_crlf_line_endings():
    doc = "---\r\ntitle: A\r\n---\r\nBody\r\n"
    result = patch_field(doc, "alternates", {"en": ""})
    assert result == "---\r\ntitle: A\r\nalternates:\r\n  en: \"\"\r\n---\r\nBody\r\n"
    assert patch_field(result, "alternates", {"en": ""}) is None
