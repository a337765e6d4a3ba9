"""Shared fixtures: a three-locale site under ``tmp_path``."""

from pathlib import Path

import pytest

from content_translator.config import TranslatorConfig


@pytest.fixture
def config(tmp_path: Path) -> TranslatorConfig:
    (tmp_path / "content").mkdir()
    return TranslatorConfig(
        root=tmp_path,
        locales=["en", "ru", "de"],
        default_locale="en",
        content_dir="content",
        model="gpt-4.1",
        concurrency=2,
    )


@pytest.fixture
def write_page(config: TranslatorConfig):
    def _write(relative_path: str, text: str) -> Path:
        path = config.content_path / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
