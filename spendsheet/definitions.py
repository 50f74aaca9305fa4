"""
Source definitions: one per institution layout the router can recognise.

The catalog order is the matching priority. When more than one definition
matches the same header row, the earlier one wins, so definitions with longer
or more distinctive signatures sit ahead of the generic three-keyword card
layouts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Union

HeaderNames = Union[str, tuple[str, ...]]


class SourceKind(str, Enum):
    CARD_STATEMENT = "card_statement"
    ACCOUNT_STATEMENT = "account_statement"
    PAYROLL_SUMMARY = "payroll_summary"


@dataclass(frozen=True)
class SourceDefinition:
    key: str
    kind: SourceKind
    name: str
    signatures: tuple[str, ...]
    mapping: Mapping[str, HeaderNames] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "signatures", tuple(self.signatures))
        object.__setattr__(self, "mapping", MappingProxyType(dict(self.mapping)))


DEFAULT_DEFINITIONS: tuple[SourceDefinition, ...] = (
    SourceDefinition(
        key="samsung_card",
        kind=SourceKind.CARD_STATEMENT,
        name="삼성카드",
        signatures=("카드번호", "승인일자", "승인시각", "승인금액(원)"),
        mapping={
            "date": "승인일자",
            "time": "승인시각",
            "raw_description": "가맹점명",
            "amount": "승인금액(원)",
        },
    ),
    SourceDefinition(
        key="citi_account",
        kind=SourceKind.ACCOUNT_STATEMENT,
        name="씨티계좌",
        signatures=("거래일시", "적요", "찾으신금액", "맡기신금액"),
        mapping={
            "date": "거래일시",
            "time": "거래시간",
            "raw_description": "적요",
            "amount": "찾으신금액",
            "amount_alt": "맡기신금액",
        },
    ),
    SourceDefinition(
        key="citi_card",
        kind=SourceKind.CARD_STATEMENT,
        name="씨티카드",
        signatures=("이용일시", "이용카드", "가맹점명", "거래금액"),
        mapping={
            "date": "이용일시",
            "raw_description": "가맹점명",
            "amount": "거래금액",
        },
    ),
    SourceDefinition(
        key="payroll_summary",
        kind=SourceKind.PAYROLL_SUMMARY,
        name="급여대장",
        signatures=("성명", "지급액", "공제"),
        mapping={
            "net_payment": ("실지급액", "차인지급액"),
            "total_deduction": ("공제총액", "공제합계"),
            "totals_marker": "합계",
        },
    ),
    SourceDefinition(
        key="kb_card",
        kind=SourceKind.CARD_STATEMENT,
        name="KB국민카드",
        signatures=("이용일", "이용하신곳", "이용금액"),
        mapping={
            "date": "이용일",
            "time": "이용시간",
            "raw_description": "이용하신곳",
            "amount": "이용금액(원)",
            "amount_alt": "이용금액",
        },
    ),
    SourceDefinition(
        key="bc_card",
        kind=SourceKind.CARD_STATEMENT,
        name="비씨카드",
        signatures=("승인일시", "가맹점명", "승인금액"),
        mapping={
            "date": "승인일시",
            "raw_description": "가맹점명",
            "amount": "승인금액",
            "amount_alt": "거래금액",
        },
    ),
    SourceDefinition(
        key="shinhan_card",
        kind=SourceKind.CARD_STATEMENT,
        name="신한카드",
        signatures=("거래일", "가맹점명", "금액"),
        mapping={
            "date": "거래일",
            "raw_description": "가맹점명",
            "amount": "금액",
        },
    ),
)


def definition_from_dict(payload: Mapping[str, Any]) -> SourceDefinition:
    missing = [name for name in ("key", "kind", "name", "signatures") if name not in payload]
    if missing:
        raise ValueError(f"Source definition is missing {missing}: {dict(payload)}")
    try:
        kind = SourceKind(payload["kind"])
    except ValueError as exc:
        allowed = ", ".join(k.value for k in SourceKind)
        raise ValueError(f"Unknown source kind {payload['kind']!r}. Allowed: {allowed}") from exc
    signatures = payload["signatures"]
    if not isinstance(signatures, list) or not signatures:
        raise ValueError(f"Source {payload['key']!r} needs a non-empty signatures list")
    mapping: dict[str, HeaderNames] = {}
    for logical_field, names in (payload.get("mapping") or {}).items():
        mapping[logical_field] = tuple(names) if isinstance(names, list) else str(names)
    return SourceDefinition(
        key=str(payload["key"]),
        kind=kind,
        name=str(payload["name"]),
        signatures=tuple(str(s) for s in signatures),
        mapping=mapping,
    )


def definition_to_dict(definition: SourceDefinition) -> dict[str, Any]:
    return {
        "key": definition.key,
        "kind": definition.kind.value,
        "name": definition.name,
        "signatures": list(definition.signatures),
        "mapping": {
            logical_field: list(names) if isinstance(names, tuple) else names
            for logical_field, names in definition.mapping.items()
        },
    }


def definitions_from_list(payload: Any) -> tuple[SourceDefinition, ...]:
    """List order is kept as matching priority."""
    if not isinstance(payload, list):
        raise ValueError("Source catalog must be a JSON list.")
    return tuple(definition_from_dict(item) for item in payload)


def load_definitions(path: "str | Path") -> tuple[SourceDefinition, ...]:
    return definitions_from_list(json.loads(Path(path).read_text(encoding="utf-8")))
