from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from spendsheet import __version__ as TOOL_VERSION
from spendsheet.contracts import build_contract, build_run_summary
from spendsheet.loader import ALL_FORMATS, read_path
from spendsheet.logging_setup import configure_logging
from spendsheet.pipeline import BatchResult, process_batch
from spendsheet.router import identify_source
from spendsheet.settings import Settings, load_settings, starter_config
from spendsheet.writer import DEFAULT_FILENAME, EXPORT_HEADERS, write_workbook


EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_UNIDENTIFIED = 3
EXIT_PARTIAL = 6


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class SpendsheetArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True, default=str)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def timestamp_token() -> str:
    override = os.environ.get("SPENDSHEET_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, payload: str) -> None:
    ensure_parent(path)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def safe_output_path(path: Path) -> Path:
    if path.exists():
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


def process_default_paths(args: argparse.Namespace) -> tuple[Path, Path]:
    if args.output:
        output_path = Path(args.output)
        return output_path, output_path.with_name(output_path.stem + "-summary.json")
    out_dir = Path(args.out_dir) if args.out_dir else Path.cwd() / "spendsheet-output" / timestamp_token()
    return out_dir / DEFAULT_FILENAME, out_dir / "summary.json"


def load_cli_settings(config_path: str | None, concurrency: int | None = None) -> Settings:
    try:
        settings = load_settings(config_path)
        if concurrency is not None:
            settings = replace(settings, config=settings.config.with_limits({"concurrency": concurrency}))
    except ValueError as exc:
        raise CliError(f"Invalid configuration: {exc}", EXIT_COMMAND_ERROR) from exc
    return settings


def classify_backend_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ImportError, UnicodeDecodeError, ValueError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def exit_code_for_batch(batch: BatchResult) -> int:
    failures = batch.failures
    if not failures:
        return EXIT_SUCCESS
    if len(failures) == len(batch.files):
        if all(result.error is not None for result in failures):
            return EXIT_PARSE_FAILED
        return EXIT_UNIDENTIFIED
    return EXIT_PARTIAL


def validate_inputs(inputs: list[str]) -> list[Path]:
    paths = [Path(item) for item in inputs]
    missing = [str(path) for path in paths if not path.exists()]
    if missing:
        raise CliError(f"File not found: {', '.join(missing)}", EXIT_COMMAND_ERROR)
    unsupported = [str(path) for path in paths if path.suffix.lower() not in ALL_FORMATS]
    if unsupported:
        raise CliError(
            f"Unsupported file type: {', '.join(unsupported)}. Supported: {', '.join(sorted(ALL_FORMATS))}",
            EXIT_COMMAND_ERROR,
        )
    return paths


def render_process_text(batch: BatchResult, output_path: Path | None) -> str:
    lines = []
    for result in batch.files:
        if result.failed:
            lines.append(f"  FAILED  {result.filename}: {result.failure_message}")
            continue
        lines.append(
            f"  OK      {result.filename}: {result.source_name} "
            f"(sheet {result.sheet_name!r}, header row {result.header_index}) -> {len(result.records)} records"
        )
        for warning in result.warnings:
            lines.append(f"          warning: {warning}")
    lines.append(f"Files processed: {len(batch.files)}")
    lines.append(f"Records: {len(batch.records)}")
    lines.append(f"Failures: {len(batch.failures)}")
    if output_path is not None:
        lines.append(f"Workbook written: {output_path}")
    return "\n".join(lines) + "\n"


def build_process_payload(batch: BatchResult, inputs: list[str], output_path: Path | None) -> dict[str, Any]:
    warnings = [warning for result in batch.files for warning in result.warnings]
    status = "ok" if not batch.failures else ("failed" if len(batch.failures) == len(batch.files) else "partial")
    return {
        "contract": build_contract("spendsheet.process"),
        "run_summary": build_run_summary(
            command="process",
            inputs=inputs,
            status=status,
            output_path=str(output_path) if output_path else None,
            metrics={
                "files": len(batch.files),
                "records": len(batch.records),
                "failures": len(batch.failures),
            },
            warnings=warnings,
        ),
        "files": [result.to_dict() for result in batch.files],
        "records": [record.to_dict() for record in batch.records],
    }


def run_process(args: argparse.Namespace) -> int:
    try:
        paths = validate_inputs(args.inputs)
        settings = load_cli_settings(args.config, args.concurrency)

        output_path: Path | None = None
        summary_path: Path | None = None
        if not args.dry_run:
            output_path, summary_path = process_default_paths(args)
            output_path = safe_output_path(output_path)
            summary_path = safe_output_path(summary_path)

        batch = process_batch(
            paths,
            definitions=settings.definitions,
            rules=settings.rules,
            config=settings.config,
        )
        payload = build_process_payload(batch, [str(path) for path in paths], output_path)

        if output_path is not None:
            write_workbook(batch.records, output_path, failures=batch.failure_rows(), language=args.language)
            write_json(summary_path, payload)

        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_process_text(batch, output_path).rstrip(), quiet=args.quiet)
            if summary_path is not None:
                emit_human(f"Summary written: {summary_path}", quiet=args.quiet)
        return exit_code_for_batch(batch)
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_identify(args: argparse.Namespace) -> int:
    try:
        path = validate_inputs([args.input])[0]
        settings = load_cli_settings(args.config)
        workbook = read_path(path, max_repair_passes=settings.config.max_repair_passes)
        result = identify_source(
            path.name,
            workbook,
            settings.definitions,
            max_rows=settings.config.max_search_rows,
        )
        payload = {
            "contract": build_contract("spendsheet.identify"),
            "file": path.name,
            "identified": result.identified,
            "source_key": result.definition.key if result.definition else None,
            "source_name": result.definition.name if result.definition else None,
            "source_kind": result.definition.kind.value if result.definition else None,
            "sheet_name": result.sheet_name,
            "header_index": result.header_index if result.identified else None,
            "header_row": result.header_row,
            "debug_header": result.debug_header or None,
            "sheet_names": workbook.sheet_names,
        }
        if args.json:
            maybe_emit_json_stdout(payload, True)
        elif result.identified:
            print(f"{path.name}: {payload['source_name']} ({payload['source_key']})")
            print(f"Sheet: {result.sheet_name}  Header row: {result.header_index}")
            print(f"Header: {', '.join(result.header_row)}")
        else:
            print(f"{path.name}: not identified")
            print(f"Header probe: [{result.debug_header}]")
        return EXIT_SUCCESS if result.identified else EXIT_UNIDENTIFIED
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_json(config_path, starter_config())
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = SpendsheetArgumentParser(
        prog="spendsheet",
        description="Merge card, bank, and payroll spreadsheet exports into one expense workbook.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    process = subparsers.add_parser("process", help="Identify, normalize, and classify files into one workbook.")
    process.add_argument("inputs", nargs="+", help="Input file paths")
    process.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    process.add_argument("--output", help="Explicit workbook output path")
    process.add_argument("--language", choices=sorted(EXPORT_HEADERS), default="ko", help="Header language of the exported workbook")
    process.add_argument("--config", help="JSON config with limits, rules, and sources")
    process.add_argument("--concurrency", type=int, help="Files processed in parallel")
    process.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    process.add_argument("--dry-run", action="store_true", help="Process files without writing outputs")
    process.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    process.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    identify = subparsers.add_parser("identify", help="Report which source layout a file follows.")
    identify.add_argument("input", help="Input file path")
    identify.add_argument("--config", help="JSON config with limits, rules, and sources")
    identify.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    identify.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    identify.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default="spendsheet.json", help="Config output path")

    subparsers.add_parser("version", help="Print the tool version.")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if getattr(args, "verbose", False):
            configure_logging("DEBUG")
        elif getattr(args, "quiet", False):
            configure_logging("ERROR")
        else:
            configure_logging()
        if args.command == "process":
            return run_process(args)
        if args.command == "identify":
            return run_identify(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
