from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Iterable, Sequence

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from spendsheet.records import TransactionRecord

EXPORT_HEADERS = {
    "ko": [
        "발생일시", "항목", "지출처", "총액", "계좌이체", "지출계좌",
        "현금(인출)", "신용카드", "신용카드상세", "중분류", "대분류",
    ],
    "en": [
        "Date", "Item", "Description", "Amount", "Transfer", "Account",
        "Cash", "Card", "Card Detail", "Mid Category", "Top Category",
    ],
}
SHEET_TITLES = {"ko": "지출내역_통합", "en": "Transactions"}
FAILURE_HEADERS = {"ko": ["파일명", "사유"], "en": ["File", "Reason"]}
FAILURE_TITLES = {"ko": "식별 실패", "en": "Failures"}

COLUMN_WIDTHS = [18, 15, 25, 12, 12, 15, 12, 12, 15, 15, 15]
FAILURE_WIDTHS = [30, 60]
DEFAULT_FILENAME = "지출내역_완료.xlsx"


def _style_sheet(ws, col_widths: list[int], header_color: str) -> None:
    """Bold white header on colour, frozen header row, fixed column widths."""
    fill = PatternFill("solid", fgColor=header_color)
    font = Font(bold=True, color="FFFFFF")
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def export_row(record: TransactionRecord) -> list[Any]:
    return [
        record.display_date,
        record.item,
        record.raw_description,
        record.amount,
        record.col_transfer,
        record.col_account,
        record.col_cash,
        record.col_card,
        record.col_card_detail,
        record.category_main,
        record.category_mso,
    ]


def build_export_rows(records: Iterable[TransactionRecord], language: str = "ko") -> list[list[Any]]:
    """Header row followed by one row per record, in export column order."""
    if language not in EXPORT_HEADERS:
        raise ValueError(f"Unsupported language '{language}'. Supported: {sorted(EXPORT_HEADERS)}")
    return [list(EXPORT_HEADERS[language])] + [export_row(record) for record in records]


def build_workbook(
    records: Iterable[TransactionRecord],
    failures: Sequence[tuple[str, str]] = (),
    language: str = "ko",
) -> openpyxl.Workbook:
    rows = build_export_rows(records, language)
    wb = openpyxl.Workbook()

    ws = wb.active
    ws.title = SHEET_TITLES[language]
    for row in rows:
        ws.append(row)
    _style_sheet(ws, COLUMN_WIDTHS, "4CAF50")   # green

    if failures:
        ws_fail = wb.create_sheet(FAILURE_TITLES[language])
        ws_fail.append(FAILURE_HEADERS[language])
        for filename, message in failures:
            ws_fail.append([filename, message])
        _style_sheet(ws_fail, FAILURE_WIDTHS, "E53935")   # red
        for cell in ws_fail["B"][1:]:
            cell.alignment = Alignment(wrap_text=True, vertical="top")
    return wb


def write_workbook(
    records: Iterable[TransactionRecord],
    output_path: Path,
    failures: Sequence[tuple[str, str]] = (),
    language: str = "ko",
) -> Path:
    output_path = Path(output_path)
    wb = build_workbook(records, failures, language)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output_path)
    return output_path


def workbook_bytes(
    records: Iterable[TransactionRecord],
    failures: Sequence[tuple[str, str]] = (),
    language: str = "ko",
) -> bytes:
    buffer = io.BytesIO()
    build_workbook(records, failures, language).save(buffer)
    return buffer.getvalue()
