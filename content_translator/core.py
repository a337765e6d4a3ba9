import math
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from .alternates import load_siblings, sync_alternates
from .config import ConfigError, TranslatorConfig
from .documents import Document, document_base_path, scan_content
from .llm import LLMService, TranslatedContent, TranslationError, build_system_prompt, build_user_prompt
from .locales import is_external_url, target_path
from .rewrite import rewrite_header

CHARS_PER_TOKEN = 4
# USD per 1M tokens (input, output)
MODEL_PRICING: Dict[str, Tuple[float, float]] = {
    "gpt-4.1": (2.00, 8.00),
    "gpt-4.1-mini": (0.40, 1.60),
    "gpt-4.1-nano": (0.10, 0.40),
    "gpt-4o": (2.50, 10.00),
    "gpt-4o-mini": (0.15, 0.60),
}
DEFAULT_PRICING = MODEL_PRICING["gpt-4.1"]


@dataclass
class TranslationResult:
    source: str
    target: str
    locale: str
    status: str  # "created" | "skipped" | "error"
    error: Optional[str] = None
    reason: Optional[str] = None
    alternates_updated: List[str] = field(default_factory=list)


@dataclass
class TranslationProgress:
    current: int
    total: int
    current_file: str
    target_locale: str
    phase: str  # "starting" | "translating" | "done"


@dataclass
class TranslationUnit:
    document: Document
    target_locale: str
    target: str


@dataclass
class EstimateFile:
    source: str
    target_locale: str
    input_tokens: int
    output_tokens: int
    skipped: bool
    skip_reason: Optional[str] = None


@dataclass
class TranslationEstimate:
    files: List[EstimateFile]
    total_input_tokens: int
    total_output_tokens: int
    estimated_cost_usd: float
    model: str

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    @property
    def pending(self) -> List[EstimateFile]:
        return [f for f in self.files if not f.skipped]


@dataclass
class StatusEntry:
    source: str
    targets: Dict[str, str]  # locale -> "ai" | "exists" | "pending"


def internal_alternate(document: Document, locale: str, config: TranslatorConfig) -> Optional[str]:
    """The document's alternates permalink for ``locale`` unless it is empty or an external URL."""
    alternates = document.data.get(config.alternates_key)
    if not isinstance(alternates, dict):
        return None
    link = alternates.get(locale)
    if not isinstance(link, str) or not link or is_external_url(link):
        return None
    return link


def find_file_by_permalink(documents: List[Document], locale: str, permalink: str) -> Optional[Document]:
    for document in documents:
        if document.locale != locale:
            continue
        if document.data.get("permalink") == permalink:
            return document
        if document.path.stem == permalink:
            return document
    return None


def translatable_fields(document: Document, config: TranslatorConfig) -> Dict[str, str]:
    return {key: document.data[key] for key in config.translatable_fields if isinstance(document.data.get(key), str)}


def matches_file_filter(document: Document, file_filter: Optional[str]) -> bool:
    return not file_filter or file_filter in document.relative_path or file_filter in document.path.name


def plan_units(
    documents: List[Document],
    config: TranslatorConfig,
    file_filter: Optional[str] = None,
    force: bool = False,
) -> Tuple[List[TranslationUnit], List[TranslationResult]]:
    """Split every requested (document, locale) pair into work to do and skips.

    Each target path is planned at most once; later sources aiming at the
    same target are skipped as ``planned``.
    """
    units: List[TranslationUnit] = []
    skipped: List[TranslationResult] = []
    planned: Dict[str, str] = {}
    for document in documents:
        if not document.translate_to or not matches_file_filter(document, file_filter):
            continue
        base = document_base_path(document, config)
        for locale in document.translate_to:
            target = target_path(base, locale, config)
            if target in planned:
                logging.info(f"TRANSLATE: Skip {target} (planned from {planned[target]})")
                skipped.append(TranslationResult(document.relative_path, target, locale, "skipped", reason="planned"))
                continue
            if not force and (config.content_path / target).exists():
                logging.info(f"TRANSLATE: Skip {target} (exists)")
                skipped.append(TranslationResult(document.relative_path, target, locale, "skipped", reason="exists"))
                continue
            permalink = internal_alternate(document, locale, config)
            if not force and permalink and find_file_by_permalink(documents, locale, permalink):
                logging.info(f"TRANSLATE: Skip {target} ({permalink} exists)")
                skipped.append(TranslationResult(document.relative_path, target, locale, "skipped", reason=f"{permalink} exists"))
                continue
            planned[target] = document.relative_path
            units.append(TranslationUnit(document, locale, target))
    return units, skipped


def build_translated_document(
    unit: TranslationUnit,
    translated: TranslatedContent,
    config: TranslatorConfig,
    today: date,
) -> str:
    document = unit.document
    replacements: Dict[str, Optional[str]] = {
        key: translated.fields.get(key) for key in translatable_fields(document, config)
    }
    permalink = internal_alternate(document, unit.target_locale, config)
    if permalink:
        replacements["permalink"] = permalink
    metadata: Dict[str, Any] = {
        "source": document.relative_path,
        "hash": document.hash,
        "model": config.model,
        "date": today.isoformat(),
    }
    header = rewrite_header(
        document.lines,
        document.data,
        replacements,
        private_prefix=config.private_prefix,
        marker_key=config.marker_key,
        metadata=metadata,
        metadata_key=config.metadata_key,
    )
    return f"---\n{header}\n---\n\n{translated.content}\n"


def translate_unit(unit: TranslationUnit, config: TranslatorConfig, service: Any, today: date) -> TranslationResult:
    document = unit.document
    logging.info(f"TRANSLATE: {document.relative_path} -> {unit.target_locale}...")
    try:
        translated = service.translate_document(
            document.locale,
            unit.target_locale,
            translatable_fields(document, config),
            document.content,
            config.prompt,
        )
        output = build_translated_document(unit, translated, config, today)
        target_file = config.content_path / unit.target
        target_file.parent.mkdir(parents=True, exist_ok=True)
        target_file.write_text(output, encoding="utf-8")
    except (TranslationError, OSError) as e:
        logging.error(f"TRANSLATE: {document.relative_path} -> {unit.target_locale} failed: {e}")
        return TranslationResult(document.relative_path, unit.target, unit.target_locale, "error", error=str(e))
    logging.info(f"TRANSLATE: Created {unit.target}")
    return TranslationResult(document.relative_path, unit.target, unit.target_locale, "created")


def translate(
    config: TranslatorConfig,
    file_filter: Optional[str] = None,
    dry_run: bool = False,
    force: bool = False,
    service: Any = None,
    on_progress: Optional[Callable[[TranslationProgress], None]] = None,
    today: Optional[date] = None,
) -> List[TranslationResult]:
    """Translate every opted-in document into its missing locales.

    ``service`` is anything with an ``LLMService.translate_document`` compatible
    method; an ``LLMService`` is built from ``config`` when omitted. Units run
    concurrently and fail independently. After the run, alternates are synced
    for every page that gained a translation.
    """
    if service is None and not dry_run:
        if not config.api_key:
            raise ConfigError(
                "OPENAI_API_KEY not found.\n\n"
                "Add to .env file:\n"
                "  OPENAI_API_KEY=sk-...\n\n"
                "Or set environment variable."
            )
        service = LLMService(config.api_key, config.endpoint_url, config.model)
    today = today or date.today()

    documents = scan_content(config)
    units, results = plan_units(documents, config, file_filter, force)
    logging.info(f"TRANSLATE: Found {len(units)} translation(s) to run, {len(results)} skipped.")

    if dry_run:
        for unit in units:
            logging.info(f"TRANSLATE: Would create {unit.target}")
            results.append(TranslationResult(unit.document.relative_path, unit.target, unit.target_locale, "created"))
        return results

    total = len(units)
    if on_progress and total:
        on_progress(TranslationProgress(0, total, "", "", "starting"))

    unit_results: Dict[int, TranslationResult] = {}
    with ThreadPoolExecutor(max_workers=max(1, config.concurrency)) as executor:
        futures = {executor.submit(translate_unit, unit, config, service, today): index for index, unit in enumerate(units)}
        try:
            for future in as_completed(futures):
                index = futures[future]
                unit_results[index] = future.result()
                if on_progress:
                    unit = units[index]
                    phase = "done" if len(unit_results) == total else "translating"
                    on_progress(TranslationProgress(len(unit_results), total, unit.document.relative_path, unit.target_locale, phase))
        except KeyboardInterrupt:
            logging.warning("TRANSLATE: Interrupted, cancelling units that have not started.")
            for future in futures:
                future.cancel()
            raise

    completed = [(units[i], unit_results[i]) for i in sorted(unit_results)]
    results.extend(result for _, result in completed)

    if config.update_alternates:
        by_base: Dict[str, List[TranslationResult]] = {}
        for unit, result in completed:
            if result.status == "created":
                by_base.setdefault(document_base_path(unit.document, config), []).append(result)
        for base in sorted(by_base):
            modified = sync_alternates(load_siblings(base, config), config)
            for result in by_base[base]:
                result.alternates_updated = list(modified)

    return results


def status(config: TranslatorConfig) -> List[StatusEntry]:
    documents = scan_content(config)
    by_path = {document.relative_path: document for document in documents}
    entries: List[StatusEntry] = []
    for document in documents:
        if not document.translate_to:
            continue
        base = document_base_path(document, config)
        targets: Dict[str, str] = {}
        for locale in document.translate_to:
            found = by_path.get(target_path(base, locale, config))
            if found is None:
                permalink = internal_alternate(document, locale, config)
                if permalink:
                    found = find_file_by_permalink(documents, locale, permalink)
            if found is None:
                targets[locale] = "pending"
            else:
                targets[locale] = "ai" if config.metadata_key in found.data else "exists"
        entries.append(StatusEntry(document.relative_path, targets))
    return entries


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate(config: TranslatorConfig, file_filter: Optional[str] = None, force: bool = False) -> TranslationEstimate:
    """Approximate token usage and cost of a ``translate`` run with the same arguments."""
    documents = scan_content(config)
    units, skipped = plan_units(documents, config, file_filter, force)

    files: List[EstimateFile] = []
    for unit in units:
        document = unit.document
        fields = translatable_fields(document, config)
        prompt = config.prompt or build_system_prompt(document.locale, unit.target_locale)
        input_tokens = estimate_tokens(prompt) + estimate_tokens(build_user_prompt(fields, document.content))
        output_tokens = estimate_tokens(build_user_prompt(fields, document.content))
        files.append(EstimateFile(document.relative_path, unit.target_locale, input_tokens, output_tokens, skipped=False))
    for result in skipped:
        files.append(EstimateFile(result.source, result.locale, 0, 0, skipped=True, skip_reason=result.reason))

    total_input = sum(f.input_tokens for f in files)
    total_output = sum(f.output_tokens for f in files)
    input_price, output_price = MODEL_PRICING.get(config.model, DEFAULT_PRICING)
    cost = (total_input * input_price + total_output * output_price) / 1_000_000
    return TranslationEstimate(files, total_input, total_output, cost, config.model)
