"""
loader.py — spreadsheet container reader for spendsheet

Turns raw file bytes into an ordered list of sheets, each a grid of raw cell
values (numbers, strings, native datetimes, or None). Header detection is not
done here; every row of every sheet is returned as-is.

Supports: .xlsx .xlsm .xls .ods .csv, plus HTML tables saved as .xls/.xlsx
(common with Korean bank exports).

Public API:
    workbook = read_workbook(data, "statement.xls")
    workbook = read_path("statement.xlsx")
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from html.parser import HTMLParser
from pathlib import Path
from typing import Any, Iterator

import pandas as pd

from spendsheet.html_repair import MAX_REPAIR_PASSES, looks_like_html, repair_html
from spendsheet.logging_setup import get_logger

logger = get_logger(__name__)

# ── Format groups ──────────────────────────────────────────────────────────────
EXCEL_FORMATS = {".xlsx", ".xlsm", ".xls"}
ODS_FORMATS   = {".ods"}
TEXT_FORMATS  = {".csv", ".tsv", ".txt"}
ALL_FORMATS   = EXCEL_FORMATS | ODS_FORMATS | TEXT_FORMATS

KOREAN_ENCODING = "cp949"
LAST_RESORT_ENCODING = "latin-1"


@dataclass
class Workbook:
    sheet_names: list[str] = field(default_factory=list)
    sheets: dict[str, list[list[Any]]] = field(default_factory=dict)
    detected_format: str = ""

    def add_sheet(self, name: str, rows: list[list[Any]]) -> None:
        self.sheet_names.append(name)
        self.sheets[name] = rows


def _normalize_cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def _trim_row(values: list[Any]) -> list[Any]:
    """Drop trailing empty cells so a row's length is its physical width."""
    row = [_normalize_cell(v) for v in values]
    while row and row[-1] is None:
        row.pop()
    return row


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def detect_encoding(raw: bytes) -> str:
    """Best-guess text encoding via chardet; 'utf-8' when unsure."""
    import chardet

    result = chardet.detect(raw[:65536])
    detected = result.get("encoding")
    if not detected or (result.get("confidence") or 0.0) < 0.5:
        return "utf-8"
    return detected


def _candidate_encodings(raw: bytes) -> Iterator[str]:
    yield "utf-8"
    yield KOREAN_ENCODING
    # chardet only runs once both fixed guesses have failed.
    yield detect_encoding(raw)
    yield LAST_RESORT_ENCODING


def decode_text(raw: bytes) -> str:
    """Decode as UTF-8, then CP949, then the chardet guess, then latin-1."""
    for encoding in _candidate_encodings(raw):
        try:
            return raw.decode(encoding).replace("\x00", "")
        except (LookupError, UnicodeDecodeError):
            continue
    return raw.decode("utf-8", errors="replace")


# ══════════════════════════════════════════════════════════════════════════════
# HTML TABLES
# ══════════════════════════════════════════════════════════════════════════════

class _TableParser(HTMLParser):
    """Collect every <table> as a grid of cell strings."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.tables: list[list[list[Any]]] = []
        self._row: list[Any] | None = None
        self._cell: list[str] | None = None
        self._colspan = 1

    def _close_cell(self) -> None:
        if self._cell is None or self._row is None:
            return
        text = "".join(self._cell).strip()
        self._row.append(text or None)
        self._row.extend([None] * (self._colspan - 1))
        self._cell = None

    def _close_row(self) -> None:
        self._close_cell()
        if self._row is not None and self.tables:
            self.tables[-1].append(_trim_row(self._row))
        self._row = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "table":
            self.tables.append([])
        elif tag == "tr":
            self._close_row()
            if not self.tables:
                self.tables.append([])
            self._row = []
        elif tag in ("td", "th"):
            self._close_cell()
            if self._row is None:
                self._row = []
            self._cell = []
            try:
                self._colspan = max(1, int(dict(attrs).get("colspan") or 1))
            except ValueError:
                self._colspan = 1
        elif tag == "br" and self._cell is not None:
            self._cell.append("\n")

    def handle_endtag(self, tag: str) -> None:
        if tag in ("td", "th"):
            self._close_cell()
        elif tag == "tr":
            self._close_row()
        elif tag == "table":
            self._close_row()

    def handle_data(self, data: str) -> None:
        if self._cell is not None:
            self._cell.append(data)


def read_html_tables(text: str) -> list[list[list[Any]]]:
    parser = _TableParser()
    parser.feed(text)
    parser.close()
    parser._close_row()
    return parser.tables


def _load_html(data: bytes, max_repair_passes: int) -> Workbook:
    text = repair_html(decode_text(data), max_passes=max_repair_passes)
    workbook = Workbook(detected_format="html")
    for index, rows in enumerate(read_html_tables(text), start=1):
        workbook.add_sheet(f"Table{index}", rows)
    if not workbook.sheet_names:
        raise ValueError("HTML document contains no <table> elements")
    return workbook


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _load_excel(data: bytes, suffix: str) -> Workbook:

    engine = None
    # .xls requires xlrd; give a clear error if missing.
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd; run: pip install xlrd")
    if suffix in ODS_FORMATS:
        try:
            import odf  # noqa: F401
        except ImportError:
            raise ImportError(".ods files require odfpy; run: pip install odfpy")
        engine = "odf"

    try:
        frames = pd.read_excel(io.BytesIO(data), sheet_name=None, header=None, dtype=object, engine=engine)
    except Exception as exc:
        raise ValueError(f"Could not read workbook: {exc}") from exc

    workbook = Workbook(detected_format=suffix.lstrip("."))
    for name, df in frames.items():
        rows = [_trim_row(list(values)) for values in df.itertuples(index=False, name=None)]
        workbook.add_sheet(str(name), rows)
    return workbook


def _detect_delimiter(text: str) -> str:
    sample = "\n".join([line for line in text.splitlines() if line.strip()][:25])
    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            pass
    return ","


def _load_text(data: bytes, suffix: str) -> Workbook:
    text = decode_text(data).lstrip("\ufeff")
    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)
    rows = [_trim_row(row) for row in csv.reader(io.StringIO(text), delimiter=delimiter)]
    workbook = Workbook(detected_format=suffix.lstrip("."))
    workbook.add_sheet("Sheet1", rows)
    return workbook


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def read_workbook(data: bytes, filename: str, *, max_repair_passes: int = MAX_REPAIR_PASSES) -> Workbook:
    """
    Parse raw file bytes into a Workbook.

    HTML payloads are recognised by content, whatever the extension, repaired,
    and read table by table. Everything else is dispatched on the suffix.

    Raises:
        ValueError   if the format is unsupported or the container is unreadable.
        ImportError  if a required optional engine (xlrd, odfpy) is missing.
    """
    suffix = Path(filename).suffix.lower()

    if looks_like_html(data):
        logger.debug("[%s] HTML payload detected; repairing table markup", filename)
        return _load_html(data, max_repair_passes)

    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ValueError(f"Unsupported format '{suffix or '[missing extension]'}'. Supported: {supported}")

    if suffix in TEXT_FORMATS:
        return _load_text(data, suffix)
    return _load_excel(data, suffix)


def read_path(path: "str | Path", *, max_repair_passes: int = MAX_REPAIR_PASSES) -> Workbook:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return read_workbook(path.read_bytes(), path.name, max_repair_passes=max_repair_passes)
