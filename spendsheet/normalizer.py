from __future__ import annotations

from datetime import date
from typing import Any, Sequence

from spendsheet.definitions import SourceKind
from spendsheet.field_mapper import NOT_FOUND, resolve_columns
from spendsheet.logging_setup import get_logger
from spendsheet.records import TransactionRecord
from spendsheet.router import IdentificationResult
from spendsheet.values import cell_text, extract_amount, is_blank, normalize_date, squash

logger = get_logger(__name__)

MAX_DATA_ROWS = 100_000

ROW_FIELDS = ("date", "time", "raw_description", "amount", "amount_alt")
PAYROLL_FIELDS = ("net_payment", "total_deduction")
DEFAULT_TOTALS_MARKER = "합계"

# (raw_description, item, category_main, category_mso) per synthetic payroll entry
PAYROLL_NET_ENTRY = ("급여 실지급액", "급여", "인건비", "판매비와관리비")
PAYROLL_TAX_ENTRY = ("원천세 공제", "원천세", "세금과공과", "판매비와관리비")
PAYROLL_PENSION_ENTRY = ("퇴직연금 적립", "퇴직연금", "퇴직급여", "판매비와관리비")


def _cell(row: Sequence[Any], index: int) -> Any:
    if index == NOT_FOUND or index >= len(row):
        return None
    return row[index]


def _missing_warnings(filename: str, missing: list[str]) -> list[str]:
    return [f"[{filename}] Column for '{name}' not found; treated as empty" for name in missing]


def normalize(
    filename: str,
    source: IdentificationResult,
    *,
    today: date | None = None,
    max_rows: int = MAX_DATA_ROWS,
) -> tuple[list[TransactionRecord], list[str]]:
    """Turn an identified sheet into records. Returns (records, warnings)."""
    if source.definition is None:
        raise ValueError(f"[{filename}] Cannot normalize a file whose source was not identified")
    if source.definition.kind is SourceKind.PAYROLL_SUMMARY:
        return summarize_payroll(filename, source, today=today, max_rows=max_rows)
    return normalize_rows(filename, source, max_rows=max_rows)


def normalize_rows(
    filename: str,
    source: IdentificationResult,
    *,
    max_rows: int = MAX_DATA_ROWS,
) -> tuple[list[TransactionRecord], list[str]]:
    definition = source.definition
    columns, missing = resolve_columns(source.header_row, definition.mapping, ROW_FIELDS)
    warnings = _missing_warnings(filename, missing)

    start = source.header_index + 1
    data_rows = source.rows[start : start + max_rows]
    if len(source.rows) - start > max_rows:
        warnings.append(f"[{filename}] Only the first {max_rows} data rows were read")

    records: list[TransactionRecord] = []
    for row in data_rows:
        if not row:
            continue
        raw_date = _cell(row, columns["date"])
        if is_blank(raw_date):
            continue

        amount = extract_amount(_cell(row, columns["amount"]))
        if not amount:
            amount = extract_amount(_cell(row, columns["amount_alt"]))

        raw_time = _cell(row, columns["time"])
        records.append(
            TransactionRecord(
                date=normalize_date(raw_date),
                time="" if is_blank(raw_time) else raw_time,
                amount=amount,
                raw_description=cell_text(_cell(row, columns["raw_description"])),
                raw_source=definition.name,
                raw_filename=filename,
            )
        )

    logger.info("[%s] Normalized %d rows from %s", filename, len(records), definition.name)
    return records, warnings


def find_totals_row(rows: Sequence[Sequence[Any]], marker: str) -> Sequence[Any] | None:
    """First row with any cell containing ``marker`` (case and whitespace ignored)."""
    needle = squash(marker).lower()
    for row in rows:
        if any(needle in squash(cell_text(value)).lower() for value in row):
            return row
    return None


def _payroll_record(entry: tuple[str, str, str, str], amount: float, posted: str, source_name: str, filename: str) -> TransactionRecord:
    raw_description, item, category_main, category_mso = entry
    return TransactionRecord(
        date=posted,
        amount=amount,
        raw_description=raw_description,
        raw_source=source_name,
        raw_filename=filename,
        item=item,
        category_main=category_main,
        category_mso=category_mso,
    )


def summarize_payroll(
    filename: str,
    source: IdentificationResult,
    *,
    today: date | None = None,
    max_rows: int = MAX_DATA_ROWS,
) -> tuple[list[TransactionRecord], list[str]]:
    """
    Post a payroll summary as three entries read from its totals row.

    Net payment is booked as personnel expense, total deduction as withheld
    income tax, and one twelfth of their sum as a retirement pension accrual.
    All three are dated ``today``: the document is a periodic summary, not a
    dated event.
    """
    definition = source.definition
    columns, missing = resolve_columns(source.header_row, definition.mapping, PAYROLL_FIELDS)
    warnings = _missing_warnings(filename, missing)

    marker = definition.mapping.get("totals_marker") or DEFAULT_TOTALS_MARKER
    if not isinstance(marker, str):
        marker = marker[0]
    start = source.header_index + 1
    totals = find_totals_row(source.rows[start : start + max_rows], marker)
    if totals is None:
        message = f"[{filename}] No totals row containing '{marker}' found; no payroll entries created"
        logger.warning(message)
        warnings.append(message)
        return [], warnings

    net = extract_amount(_cell(totals, columns["net_payment"]))
    deduction = extract_amount(_cell(totals, columns["total_deduction"]))
    pension = (net + deduction) / 12
    posted = (today or date.today()).isoformat()

    records = [
        _payroll_record(PAYROLL_NET_ENTRY, net, posted, definition.name, filename),
        _payroll_record(PAYROLL_TAX_ENTRY, deduction, posted, definition.name, filename),
        _payroll_record(PAYROLL_PENSION_ENTRY, pension, posted, definition.name, filename),
    ]
    logger.info("[%s] Payroll totals: net=%s deduction=%s pension=%s", filename, net, deduction, pension)
    return records, warnings
