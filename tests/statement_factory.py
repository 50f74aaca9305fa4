"""Builders for the statement files used across the test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from openpyxl import Workbook

KB_HEADER = ["이용일", "이용시간", "이용하신곳", "이용금액(원)"]
CITI_ACCOUNT_HEADER = ["거래일시", "적요", "찾으신금액", "맡기신금액", "잔액"]
PAYROLL_HEADER = ["성명", "기본급", "공제총액", "실지급액"]


def write_xlsx(path: Path, sheets: dict[str, list[list[Any]]]) -> Path:
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


def kb_card_rows() -> list[list[Any]]:
    return [
        ["KB국민카드 이용내역"],
        KB_HEADER,
        ["2025-01-10", "13:00", "스타벅스", 4500],
    ]


def payroll_rows(net: int = 3_000_000, deduction: int = 400_000) -> list[list[Any]]:
    return [
        ["2025년 1월 급여대장"],
        PAYROLL_HEADER,
        ["김민수", 2_000_000, 250_000, 1_750_000],
        ["이지은", 1_400_000, 150_000, 1_250_000],
        ["합계", 3_400_000, deduction, net],
    ]


def citi_account_html(rows: list[list[str]]) -> str:
    """An HTML 'xls' export with every <td> left unterminated."""
    lines = ["<html><body><table>"]
    for row in [CITI_ACCOUNT_HEADER] + rows:
        lines.append("<tr>" + "".join(f"<td>{cell}" for cell in row) + "</tr>")
    lines.append("</table></body></html>")
    return "\n".join(lines)
