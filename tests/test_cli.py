from pathlib import Path

import pytest

import translate as cli

BASE_ARGS = ["--locales", "en,ru", "--default-locale", "en", "--content-dir", "content"]


def write(root: Path, relative_path: str, text: str) -> Path:
    path = root / "content" / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_format_helpers():
    assert cli.format_number(950) == "950"
    assert cli.format_number(12_300) == "12.3K"
    assert cli.format_number(2_500_000) == "2.50M"
    assert cli.format_cost(0.001) == "<$0.01"
    assert cli.format_cost(1.5) == "$1.50"


def test_status_command(tmp_path: Path, capsys) -> None:
    write(tmp_path, "about.md", "---\ntitle: About\n_translateTo: [ru]\n---\nHi\n")

    assert cli.main(BASE_ARGS + ["--root", str(tmp_path), "--status"]) == 0

    assert "about.md -> ru:pending" in capsys.readouterr().out


def test_dry_run_lists_pending_translations(tmp_path: Path, capsys) -> None:
    write(tmp_path, "about.md", "---\ntitle: About\n_translateTo: all\n---\nHi\n")

    assert cli.main(BASE_ARGS + ["--root", str(tmp_path), "--dry-run"]) == 0

    out = capsys.readouterr().out
    assert "about.md -> ru" in out
    assert not (tmp_path / "content" / "ru").exists()


def test_sync_alternates_command(tmp_path: Path) -> None:
    en = write(tmp_path, "about.md", "---\nalternates:\n  en: \"\"\n---\n")
    write(tmp_path, "ru/about.md", "---\nalternates:\n  ru: /ru/about\n---\n")

    assert cli.main(BASE_ARGS + ["--root", str(tmp_path), "--sync-alternates"]) == 0

    assert "  ru: /ru/about" in en.read_text(encoding="utf-8")


def test_missing_locales_exits_with_error(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("AI_TRANSLATE_LOCALES", raising=False)

    assert cli.main(["--root", str(tmp_path), "--status"]) == 1


def test_init_saves_api_key(tmp_path: Path, monkeypatch, capsys) -> None:
    answers = iter(["y", "sk-entered"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))

    assert cli.main(["init", "--root", str(tmp_path)]) == 0

    assert "OPENAI_API_KEY" in (tmp_path / ".env").read_text()
    assert "Next steps" in capsys.readouterr().out


def test_init_with_existing_key_asks_nothing(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / ".env").write_text("OPENAI_API_KEY=sk-present\n")
    monkeypatch.setattr("builtins.input", lambda prompt="": pytest.fail("unexpected prompt"))

    assert cli.main(["init", "--root", str(tmp_path)]) == 0
