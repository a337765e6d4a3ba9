# example:
#
# python3 translate.py --locales en,ru,de --default-locale en --content-dir src/content/pages about.mdx
# python3 translate.py --status
# python3 translate.py --sync-alternates
# python3 translate.py init
#
# In source files, add to the frontmatter:
#   _translateTo: [ru, de]   # translate to these locales
#   _translateTo: all        # translate to every configured locale
#   _translateTo: false      # don't translate

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from content_translator.alternates import sync_all_alternates
from content_translator.config import ASTRO_CONFIG_FILES, ConfigError, has_api_key, load_config, save_api_key
from content_translator.core import TranslationEstimate, TranslationProgress, estimate, status, translate

LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s'
RULE = "  " + "-" * 61
INIT_COMMAND = "init"
NEXT_STEPS = """  Setup complete! Next steps:

  1. Add _translateTo to your content files:

     _translateTo: [ja, de]   # translate to specific locales
     _translateTo: all        # translate to all locales
     _translateTo: false      # don't translate

  2. Check status:        python3 translate.py --status
  3. Preview:             python3 translate.py --dry-run
  4. Run translation:     python3 translate.py
"""


def format_number(num: int) -> str:
    if num >= 1_000_000:
        return f"{num / 1_000_000:.2f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)


def format_cost(usd: float) -> str:
    if usd < 0.01:
        return "<$0.01"
    return f"${usd:.2f}"


def display_estimate(est: TranslationEstimate) -> None:
    pending = est.pending
    skipped = [f for f in est.files if f.skipped]

    print("\n  TRANSLATION ESTIMATE\n")
    if not pending:
        print("  Nothing to translate! All files are up to date.\n")
        return

    print("  Files to translate:")
    for f in pending:
        print(f"     - {f.source} -> {f.target_locale} (~{format_number(f.input_tokens + f.output_tokens)} tokens)")
    if skipped:
        print(f"\n  Skipped: {len(skipped)} file(s) (already exist or planned from another source)")

    print(RULE)
    print(f"  Model:          {est.model}")
    print(f"  Translations:   {len(pending)}")
    print(f"  Input tokens:   ~{format_number(est.total_input_tokens)}")
    print(f"  Output tokens:  ~{format_number(est.total_output_tokens)}")
    print(f"  Total tokens:   ~{format_number(est.total_tokens)}")
    print(RULE)
    print(f"  Estimated cost: {format_cost(est.estimated_cost_usd)}")
    print(RULE + "\n")


def display_status(config) -> None:
    print(f"\nLocales: {', '.join(config.locales)}")
    print(f"Default: {config.default_locale}\n")
    entries = status(config)
    if not entries:
        print("No files marked for translation.")
        print("\nTo translate a file, add _translateTo to its frontmatter:")
        print("  _translateTo: [ja, de]")
        return
    for entry in entries:
        targets = ", ".join(f"{locale}:{state}" for locale, state in entry.targets.items())
        print(f"{entry.source} -> {targets}")


def confirm(question: str, default_yes: bool = True) -> bool:
    suffix = "[Y/n]" if default_yes else "[y/N]"
    answer = input(f"{question} {suffix} ").strip()
    if not answer:
        return default_yes
    return answer.lower().startswith("y")


def run_init(root: Path) -> int:
    print("\n  Content AI Translator setup\n")
    astro_config = next((root / name for name in ASTRO_CONFIG_FILES if (root / name).exists()), None)
    if astro_config is not None:
        print(f"  Found: {astro_config.name}\n")
    else:
        print("  No astro.config found; set AI_TRANSLATE_LOCALES in .env instead.\n")

    if has_api_key(root):
        print("  OPENAI_API_KEY found in .env\n")
    elif confirm("  Add OPENAI_API_KEY to .env?"):
        api_key = input("  Enter your OpenAI API key: ").strip()
        if api_key:
            for name in save_api_key(root, api_key):
                print(f"  Updated {name}")
            print("  API key saved to .env\n")

    print(NEXT_STEPS)
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="AI translation for locale-organized Markdown/MDX content.")
    parser.add_argument("file", nargs="?", help=f"Only translate sources whose path contains this text, or '{INIT_COMMAND}' to run setup.")
    parser.add_argument("--status", "-s", action="store_true", help="Show translation status.")
    parser.add_argument("--dry-run", "-n", action="store_true", help="Preview what would be translated.")
    parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing translations.")
    parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation.")
    parser.add_argument("--sync-alternates", action="store_true", help="Only synchronize alternates maps.")
    parser.add_argument("--no-alternates", action="store_true", help="Do not update alternates after translating.")
    parser.add_argument("--root", default=None, help="Project root (default: current directory).")
    parser.add_argument("--content-dir", default=None)
    parser.add_argument("--locales", default=None, help="Comma-separated locale codes.")
    parser.add_argument("--default-locale", default=None)
    parser.add_argument("--model", default=None)
    parser.add_argument("--concurrency", type=int, default=None)
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    if args.file == INIT_COMMAND:
        return run_init(Path(args.root or os.getcwd()).resolve())

    try:
        config = load_config(
            args.root,
            locales=[l.strip() for l in args.locales.split(",") if l.strip()] if args.locales else None,
            default_locale=args.default_locale,
            content_dir=args.content_dir,
            model=args.model,
            concurrency=args.concurrency,
            update_alternates=False if args.no_alternates else None,
        )
    except ConfigError as e:
        logging.error(f"{e}")
        return 1

    logging.info(f"Locales: {', '.join(config.locales)}; model: {config.model}")

    if args.status:
        display_status(config)
        return 0

    if args.sync_alternates:
        modified = sync_all_alternates(config)
        logging.info(f"Alternates updated in {len(modified)} file(s).")
        return 0

    est = estimate(config, file_filter=args.file, force=args.force)
    display_estimate(est)
    if not est.pending:
        print("Nothing to do. Use --force to re-translate existing files.\n")
        return 0

    if args.dry_run:
        print("  Dry run mode - no files will be created.\n")
        for f in est.pending:
            print(f"     - {f.source} -> {f.target_locale}")
        return 0

    if not args.yes and not confirm(f"\n  Proceed with translation? ({len(est.pending)} file(s), ~{format_cost(est.estimated_cost_usd)})"):
        print("\n  Translation cancelled.\n")
        return 0

    progress_bar = tqdm(total=len(est.pending), desc="Translating", unit="file")

    def on_progress(progress: TranslationProgress) -> None:
        progress_bar.n = progress.current
        progress_bar.set_postfix_str(f"{progress.current_file} -> {progress.target_locale}" if progress.current_file else "")
        progress_bar.refresh()

    try:
        results = translate(config, file_filter=args.file, force=args.force, on_progress=on_progress)
    except ConfigError as e:
        logging.error(f"{e}")
        return 1
    finally:
        progress_bar.close()

    created = [r for r in results if r.status == "created"]
    skipped = [r for r in results if r.status == "skipped"]
    errors = [r for r in results if r.status == "error"]
    alternates_updated = sorted({path for r in results for path in r.alternates_updated})

    print(RULE)
    print("  RESULTS")
    print(RULE)
    print(f"  Created:  {len(created)}")
    print(f"  Skipped:  {len(skipped)}")
    if alternates_updated:
        print(f"  Alternates updated: {len(alternates_updated)}")
        for path in alternates_updated:
            print(f"     -> {path}")
    if errors:
        print(f"  Errors:   {len(errors)}")
        for r in errors:
            print(f"     - {r.source} -> {r.locale}: {r.error}")
    print(RULE + "\n")

    logging.info("Translation process finished.")
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
