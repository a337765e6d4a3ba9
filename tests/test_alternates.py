from content_translator.alternates import (
    load_siblings,
    merge_alternates,
    read_alternates,
    sync_alternates,
    sync_all_alternates,
)
from content_translator.documents import load_document


def test_merge_is_first_seen_wins():
    merged = merge_alternates([{"en": "", "ru": "x"}, {"ru": "conflict", "de": "y"}])
    assert merged == {"en": "", "ru": "x", "de": "y"}
    assert list(merged) == ["en", "ru", "de"]


def test_read_alternates_opt_in(config, write_page):
    with_map = load_document(write_page("a.md", "---\nalternates:\n  en: \"\"\n---\n"), config)
    empty = load_document(write_page("b.md", "---\nalternates:\n---\n"), config)
    without = load_document(write_page("c.md", "---\ntitle: C\n---\n"), config)
    not_a_map = load_document(write_page("d.md", "---\nalternates: [en]\n---\n"), config)
    assert read_alternates(with_map, config) == {"en": ""}
    assert read_alternates(empty, config) == {}
    assert read_alternates(without, config) is None
    assert read_alternates(not_a_map, config) is None


def test_sync_unions_opted_in_siblings_only(config, write_page):
    a = write_page("about.md", "---\ntitle: About\nalternates:\n  en: \"\"\n  ru: x\n---\n\nHello\n")
    b = write_page("de/about.md", "---\ntitle: Über\nalternates:\n  de: y\n---\n\nHallo\n")
    c_text = "---\ntitle: О нас\n---\n\nПривет\n"
    c = write_page("ru/about.md", c_text)

    modified = sync_alternates(load_siblings("about.md", config), config)

    assert sorted(modified) == ["about.md", "de/about.md"]
    expected = {"en": "", "ru": "x", "de": "y"}
    assert read_alternates(load_document(a, config), config) == expected
    assert read_alternates(load_document(b, config), config) == expected
    assert c.read_text(encoding="utf-8") == c_text
    assert a.read_text(encoding="utf-8").endswith("---\n\nHello\n")

    assert sync_alternates(load_siblings("about.md", config), config) == []


def test_sync_conflict_keeps_first_locale_in_config_order(config, write_page):
    a = write_page("page.md", "---\nalternates:\n  ru: /ru/from-en\n---\n")
    b = write_page("de/page.md", "---\nalternates:\n  ru: /ru/from-de\n  de: /de/page\n---\n")

    sync_alternates(load_siblings("page.md", config), config)

    expected = {"ru": "/ru/from-en", "de": "/de/page"}
    assert read_alternates(load_document(a, config), config) == expected
    assert read_alternates(load_document(b, config), config) == expected


def test_external_urls_pass_through(config, write_page):
    write_page("post.md", "---\nalternates:\n  en: \"\"\n---\n")
    ru = write_page("ru/post.md", "---\nalternates:\n  fr: \"https://example.fr/post\"\n---\n")

    sync_alternates(load_siblings("post.md", config), config)

    text = ru.read_text(encoding="utf-8")
    assert '  fr: "https://example.fr/post"' in text
    assert read_alternates(load_document(ru, config), config) == {"fr": "https://example.fr/post", "en": ""}


def test_converged_set_writes_nothing(config, write_page):
    text = "---\nalternates:\n  en: \"\"\n  de: /de/x\n---\n"
    a = write_page("x.md", text)
    write_page("de/x.md", "---\nalternates: {de: /de/x, en: \"\"}\n---\n")
    before = a.stat().st_mtime_ns

    assert sync_alternates(load_siblings("x.md", config), config) == []
    assert a.stat().st_mtime_ns == before


def test_sync_all_alternates_walks_every_base_path(config, write_page):
    write_page("one.md", "---\nalternates:\n  en: \"\"\n---\n")
    write_page("ru/one.md", "---\nalternates:\n  ru: /ru/one\n---\n")
    write_page("blog/two.md", "---\ntitle: no opt in\n---\n")
    write_page("de/blog/two.md", "---\nalternates:\n  de: /de/two\n---\n")

    modified = sync_all_alternates(config)

    assert sorted(modified) == ["one.md", "ru/one.md"]


def test_sync_keeps_norwegian_locale_key(config, write_page):
    config = config.with_overrides(locales=["en", "no", "de"])
    en = write_page("about.md", "---\nalternates:\n  en: \"\"\n---\n")
    write_page("no/about.md", "---\nalternates:\n  no: /no/x\n---\n")
    write_page("de/about.md", "---\nalternates:\n  de: /de/x\n---\n")

    modified = sync_alternates(load_siblings("about.md", config), config)

    assert sorted(modified) == ["about.md", "de/about.md", "no/about.md"]
    text = en.read_text(encoding="utf-8")
    assert text == "---\nalternates:\n  en: \"\"\n  \"no\": /no/x\n  de: /de/x\n---\n"
    assert read_alternates(load_document(en, config), config) == {"en": "", "no": "/no/x", "de": "/de/x"}
    assert sync_alternates(load_siblings("about.md", config), config) == []


def test_sync_reads_crlf_documents(config, write_page):
    en = write_page("about.md", "---\r\nalternates:\r\n  en: \"\"\r\n---\r\nHi\r\n")
    write_page("ru/about.md", "---\nalternates:\n  ru: /ru/about\n---\n")

    assert sorted(sync_alternates(load_siblings("about.md", config), config)) == ["about.md", "ru/about.md"]
    assert en.read_bytes() == b"---\r\nalternates:\r\n  en: \"\"\r\n  ru: /ru/about\r\n---\r\nHi\r\n"
