from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd


EXCEL_EPOCH = datetime(1899, 12, 30)

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
COMPACT_DATE_RE = re.compile(r"^\d{8}$")
TIME_SPLIT_RE = re.compile(r"[\sT]+")
DATE_SEPARATOR_RE = re.compile(r"[./]")

WON_AMOUNT_RE = re.compile(r"^\s*(-?)\s*[₩￦]\s*(-?[\d,]+(?:\.\d+)?)")
LINE_BREAK_RE = re.compile(r"<br\s*/?>|\r|\n", re.IGNORECASE)
NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
WHITESPACE_RE = re.compile(r"\s+")


def is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def cell_text(value: Any) -> str:
    """Coerce a raw cell to a trimmed string; empty or missing cells become ''."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def squash(text: str) -> str:
    return WHITESPACE_RE.sub("", text)


def is_blank(value: Any) -> bool:
    return cell_text(value) == ""


def _fmt(dt: date) -> str:
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def serial_to_date(serial: float) -> date:
    # Whole seconds; float error must not cross a day boundary.
    seconds = round(float(serial) * 86400)
    return (EXCEL_EPOCH + timedelta(seconds=seconds)).date()


def normalize_date(value: Any) -> str:
    """
    Normalize a raw date cell to YYYY-MM-DD.

    Native dates are formatted from their calendar fields, numbers are read as
    spreadsheet serial dates, and strings are cleaned and parsed. Anything that
    cannot be parsed comes back as the cleaned string rather than raising.
    """
    if value is None or value is pd.NaT:
        return ""
    if isinstance(value, (datetime, date)):
        return _fmt(value)
    if is_number(value):
        if math.isnan(value):
            return ""
        try:
            return _fmt(serial_to_date(value))
        except OverflowError:
            return str(value)

    text = str(value).strip()
    if not text:
        return ""

    text = TIME_SPLIT_RE.split(text)[0]
    text = DATE_SEPARATOR_RE.sub("-", text)

    if COMPACT_DATE_RE.match(text):
        return f"{text[:4]}-{text[4:6]}-{text[6:8]}"
    if ISO_DATE_RE.match(text):
        return text

    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        parsed = pd.NaT
    if isinstance(parsed, pd.Timestamp) and not pd.isna(parsed):
        return _fmt(parsed)
    return text


def _to_float(text: str) -> float:
    digits = NON_NUMERIC_RE.sub("", text)
    if not digits:
        return 0.0
    try:
        number = float(digits)
    except ValueError:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def extract_amount(value: Any) -> float:
    """
    Extract a plain number from an amount cell.

    Numbers pass through. For text, a leading won amount wins
    ("₩36,411<br/>[USD]25.72" -> 36411); otherwise only the text before the
    first line break is kept, then everything but digits, '.' and '-' is
    dropped. Unparseable input is 0.
    """
    if value is None:
        return 0
    if is_number(value):
        if math.isnan(value):
            return 0
        return value

    text = str(value)
    won = WON_AMOUNT_RE.match(text)
    if won:
        amount = _to_float(won.group(2))
        return -amount if won.group(1) else amount

    text = LINE_BREAK_RE.split(text, maxsplit=1)[0]
    return _to_float(text)
