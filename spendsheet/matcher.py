from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from spendsheet.definitions import SourceDefinition
from spendsheet.values import cell_text, squash

MAX_SEARCH_ROWS = 500


@dataclass(frozen=True)
class SignatureMatch:
    row_index: int
    definition: SourceDefinition
    header_row: list[str]


def match_signature(cells: Sequence[str], signatures: Iterable[str]) -> bool:
    """True when every signature keyword is contained in some cell, ignoring whitespace."""
    squashed_cells = [squash(cell) for cell in cells]
    for signature in signatures:
        needle = squash(signature)
        if not any(needle in cell for cell in squashed_cells):
            return False
    return True


def match_row(
    row: Sequence[Any],
    definitions: Sequence[SourceDefinition],
) -> SourceDefinition | None:
    cells = [cell_text(value) for value in row]
    for definition in definitions:
        if not match_signature(cells, definition.signatures):
            continue
        if len(row) < len(definition.signatures):
            # Sparse row that only matched through merged/combined cells.
            continue
        return definition
    return None


def find_header_row(
    rows: Sequence[Sequence[Any]],
    definitions: Sequence[SourceDefinition],
    max_rows: int = MAX_SEARCH_ROWS,
) -> SignatureMatch | None:
    """Return the first row (within ``max_rows``) matching any definition."""
    for index, row in enumerate(rows[:max_rows]):
        if not row:
            continue
        definition = match_row(row, definitions)
        if definition is not None:
            return SignatureMatch(
                row_index=index,
                definition=definition,
                header_row=[cell_text(value) for value in row],
            )
    return None
