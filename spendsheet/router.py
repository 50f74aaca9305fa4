from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from spendsheet.definitions import DEFAULT_DEFINITIONS, SourceDefinition
from spendsheet.loader import Workbook
from spendsheet.logging_setup import get_logger
from spendsheet.matcher import MAX_SEARCH_ROWS, find_header_row
from spendsheet.values import cell_text

logger = get_logger(__name__)

PROBE_COLUMNS = 10
EMPTY_PROBE = "EMPTY"


@dataclass
class IdentificationResult:
    definition: SourceDefinition | None
    header_row: list[str] = field(default_factory=list)
    header_index: int = -1
    sheet_name: str | None = None
    rows: list[list[Any]] = field(default_factory=list)
    debug_header: str = ""

    @property
    def identified(self) -> bool:
        return self.definition is not None


def header_probe(workbook: Workbook) -> str:
    """First cells of the first sheet's first row, for troubleshooting failed files."""
    if not workbook.sheet_names:
        return EMPTY_PROBE
    rows = workbook.sheets.get(workbook.sheet_names[0]) or []
    if not rows or not rows[0]:
        return EMPTY_PROBE
    return ",".join(cell_text(value) for value in rows[0][:PROBE_COLUMNS])


def identify_source(
    filename: str,
    workbook: Workbook,
    definitions: Sequence[SourceDefinition] = DEFAULT_DEFINITIONS,
    max_rows: int = MAX_SEARCH_ROWS,
) -> IdentificationResult:
    """
    Find which source layout ``workbook`` follows.

    Sheets are scanned in workbook order and the first matching row wins, so a
    workbook with several matching sheets resolves to whichever comes first.
    """
    for sheet_name in workbook.sheet_names:
        rows = workbook.sheets.get(sheet_name) or []
        if not rows:
            continue
        match = find_header_row(rows, definitions, max_rows=max_rows)
        if match is None:
            continue
        logger.info(
            "[%s] Identified as %s in sheet %r (header row %d)",
            filename,
            match.definition.name,
            sheet_name,
            match.row_index,
        )
        return IdentificationResult(
            definition=match.definition,
            header_row=match.header_row,
            header_index=match.row_index,
            sheet_name=sheet_name,
            rows=rows,
        )

    probe = header_probe(workbook)
    logger.warning("[%s] Source identification failed. Header probe: %s", filename, probe)
    return IdentificationResult(definition=None, debug_header=probe)
