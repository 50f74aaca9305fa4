"""
Per-file pipeline and batch runner.

Each file runs identify -> normalize -> classify in sequence. Files share no
mutable state, so a batch runs them concurrently on a thread pool and reports
every file's outcome in input order, failures included.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Sequence, Union

from spendsheet.classifier import DEFAULT_RULES, ClassificationRule, classify_records
from spendsheet.definitions import DEFAULT_DEFINITIONS, SourceDefinition, SourceKind
from spendsheet.loader import read_workbook
from spendsheet.logging_setup import get_logger
from spendsheet.normalizer import normalize
from spendsheet.records import TransactionRecord
from spendsheet.router import identify_source
from spendsheet.settings import PipelineConfig

logger = get_logger(__name__)

BatchInput = Union[str, Path, tuple[str, bytes]]


@dataclass
class FileResult:
    filename: str
    records: list[TransactionRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    source_key: str | None = None
    source_name: str | None = None
    sheet_name: str | None = None
    header_index: int | None = None
    debug_header: str | None = None
    error: str | None = None

    @property
    def identified(self) -> bool:
        return self.source_key is not None

    @property
    def failed(self) -> bool:
        return self.error is not None or not self.identified

    @property
    def failure_message(self) -> str:
        if self.error is not None:
            return f"읽기 실패: {self.error}"
        if not self.identified:
            return f"식별 실패. 헤더: [{self.debug_header}]"
        return ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "identified": self.identified,
            "source_key": self.source_key,
            "source_name": self.source_name,
            "sheet_name": self.sheet_name,
            "header_index": self.header_index,
            "debug_header": self.debug_header,
            "error": self.error,
            "record_count": len(self.records),
            "warnings": list(self.warnings),
        }


@dataclass
class BatchResult:
    files: list[FileResult] = field(default_factory=list)

    @property
    def records(self) -> list[TransactionRecord]:
        return [record for result in self.files for record in result.records]

    @property
    def failures(self) -> list[FileResult]:
        return [result for result in self.files if result.failed]

    def failure_rows(self) -> list[tuple[str, str]]:
        return [(result.filename, result.failure_message) for result in self.failures]


def process_workbook_bytes(
    filename: str,
    data: bytes,
    *,
    definitions: Sequence[SourceDefinition] = DEFAULT_DEFINITIONS,
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
    config: PipelineConfig | None = None,
    today: date | None = None,
) -> FileResult:
    """
    Run the full pipeline on one file's bytes.

    Identification failures come back as a FileResult without records. Read
    errors from the container parser (ValueError, ImportError) propagate.
    """
    config = config or PipelineConfig()
    workbook = read_workbook(data, filename, max_repair_passes=config.max_repair_passes)

    source = identify_source(filename, workbook, definitions, max_rows=config.max_search_rows)
    if not source.identified:
        return FileResult(filename=filename, debug_header=source.debug_header)

    records, warnings = normalize(filename, source, today=today, max_rows=config.max_data_rows)
    if source.definition.kind is SourceKind.PAYROLL_SUMMARY:
        # Payroll entries carry fixed categories; only the channel is derived.
        classify_records(records, rules=())
    else:
        classify_records(records, rules)
    return FileResult(
        filename=filename,
        records=records,
        warnings=warnings,
        source_key=source.definition.key,
        source_name=source.definition.name,
        sheet_name=source.sheet_name,
        header_index=source.header_index,
    )


def process_file(
    path: "str | Path",
    *,
    definitions: Sequence[SourceDefinition] = DEFAULT_DEFINITIONS,
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
    config: PipelineConfig | None = None,
    today: date | None = None,
) -> FileResult:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return process_workbook_bytes(
        path.name,
        path.read_bytes(),
        definitions=definitions,
        rules=rules,
        config=config,
        today=today,
    )


def _input_name(item: BatchInput) -> str:
    if isinstance(item, tuple):
        return item[0]
    return Path(item).name


def process_batch(
    inputs: Sequence[BatchInput],
    *,
    definitions: Sequence[SourceDefinition] = DEFAULT_DEFINITIONS,
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
    config: PipelineConfig | None = None,
    today: date | None = None,
) -> BatchResult:
    """Process paths or (filename, bytes) pairs; one file's error never stops the rest."""
    config = config or PipelineConfig()
    options = dict(definitions=definitions, rules=rules, config=config, today=today)

    def run_one(item: BatchInput) -> FileResult:
        try:
            if isinstance(item, tuple):
                filename, data = item
                return process_workbook_bytes(filename, data, **options)
            return process_file(item, **options)
        except Exception as exc:
            logger.error("[%s] Could not process file: %s", _input_name(item), exc)
            return FileResult(filename=_input_name(item), error=str(exc))

    if not inputs:
        return BatchResult()
    workers = min(config.concurrency, len(inputs))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="spendsheet") as pool:
        results = list(pool.map(run_one, inputs))

    batch = BatchResult(files=results)
    logger.info(
        "Processed %d files: %d records, %d failures",
        len(results),
        len(batch.records),
        len(batch.failures),
    )
    return batch
