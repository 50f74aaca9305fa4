"""
Repair HTML tables exported with an .xls extension.

Some banks emit "spreadsheets" that are HTML tables with unterminated <td>
cells. The repair closes a cell whenever another <td starts before it was
closed, repeating until the text stops changing, then closes any cell still
open at a </tr>.
"""

from __future__ import annotations

import re

from spendsheet.logging_setup import get_logger

logger = get_logger(__name__)

MAX_REPAIR_PASSES = 50
SNIFF_BYTES = 500

UNCLOSED_CELL_RE = re.compile(r"(<td[^>]*>)([^<]*?)(<td)", re.IGNORECASE)
UNCLOSED_ROW_END_RE = re.compile(r"(<td[^>]*>)([^<]*?)(</tr>)", re.IGNORECASE)
HTML_MARKERS = (b"<html", b"<table")


def looks_like_html(data: bytes) -> bool:
    head = data[:SNIFF_BYTES].lower()
    return any(marker in head for marker in HTML_MARKERS)


def repair_html(text: str, max_passes: int = MAX_REPAIR_PASSES) -> str:
    previous_length = -1
    passes = 0
    while len(text) != previous_length:
        if passes >= max_passes:
            logger.warning("HTML repair stopped after %d passes without converging", max_passes)
            break
        previous_length = len(text)
        text = UNCLOSED_CELL_RE.sub(r"\1\2</td>\3", text)
        passes += 1
    return UNCLOSED_ROW_END_RE.sub(r"\1\2</td>\3", text)
