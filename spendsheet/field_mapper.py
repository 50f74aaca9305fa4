"""
Resolve logical fields to physical column indices.

Each candidate header name is tried against three strategies, strictest
first. The first strategy that finds a column wins; later strategies and
lower-priority candidates are never consulted.
"""

from __future__ import annotations

from typing import Callable, Iterable, Mapping, Sequence

from spendsheet.definitions import HeaderNames
from spendsheet.logging_setup import get_logger
from spendsheet.values import squash

logger = get_logger(__name__)

NOT_FOUND = -1


def _exact(header: str, candidate: str) -> bool:
    return header == candidate


def _fuzzy(header: str, candidate: str) -> bool:
    return squash(header) == squash(candidate)


def _contains(header: str, candidate: str) -> bool:
    return candidate in header


MATCH_STRATEGIES: tuple[tuple[str, Callable[[str, str], bool]], ...] = (
    ("exact", _exact),
    ("fuzzy", _fuzzy),
    ("substring", _contains),
)


def candidate_names(names: HeaderNames | Sequence[str] | None) -> list[str]:
    if not names:
        return []
    if isinstance(names, str):
        return [names]
    return [name for name in names if name]


def find_column(header_row: Sequence[str], names: HeaderNames | Sequence[str] | None) -> int:
    """Index of the column for ``names`` in ``header_row``, or -1 when absent."""
    for candidate in candidate_names(names):
        for _label, strategy in MATCH_STRATEGIES:
            for index, header in enumerate(header_row):
                if strategy(header, candidate):
                    return index
    return NOT_FOUND


def resolve_columns(
    header_row: Sequence[str],
    mapping: Mapping[str, HeaderNames],
    fields: Iterable[str],
) -> tuple[dict[str, int], list[str]]:
    """
    Resolve several logical fields at once.

    Returns (indices, missing). ``missing`` lists the fields that are configured
    in ``mapping`` but matched no column; unconfigured fields are simply -1.
    """
    indices: dict[str, int] = {}
    missing: list[str] = []
    for logical_field in fields:
        names = mapping.get(logical_field)
        index = find_column(header_row, names)
        indices[logical_field] = index
        if index == NOT_FOUND and candidate_names(names):
            missing.append(logical_field)
            logger.warning(
                "Column for %r not found (looked for %s) in header %s",
                logical_field,
                candidate_names(names),
                list(header_row),
            )
    return indices, missing
