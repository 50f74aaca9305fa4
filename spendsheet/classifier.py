"""
Keyword classification and payment-channel derivation.

Rules are evaluated in catalog order against each record's raw description.
The first rule with a matching keyword is applied and evaluation stops for
that record; rules never merge.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence

from spendsheet.logging_setup import get_logger
from spendsheet.records import PaymentChannel, TransactionRecord

logger = get_logger(__name__)

CARD_MARKER = "카드"
ACCOUNT_MARKER = "계좌"

CATEGORY_FIELDS = ("category_detail", "category_main", "category_mso")
UPDATE_FIELDS = ("item", "description_out") + CATEGORY_FIELDS


@dataclass(frozen=True)
class ClassificationRule:
    keywords: tuple[str, ...]
    updates: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = set(self.updates) - set(UPDATE_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported rule update fields: {sorted(unknown)}")
        object.__setattr__(self, "keywords", tuple(self.keywords))
        object.__setattr__(self, "updates", MappingProxyType(dict(self.updates)))

    def matches(self, description: str) -> bool:
        lowered = description.lower()
        return any(keyword.lower() in lowered for keyword in self.keywords if keyword)

    def apply(self, record: TransactionRecord) -> None:
        updates = self.updates
        if "item" in updates:
            record.item = updates["item"]
        if "description_out" in updates and not record.item:
            record.item = updates["description_out"]
        for name in CATEGORY_FIELDS:
            if name in updates:
                setattr(record, name, updates[name])


DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(("주차", "parking"), {"item": "주차료", "category_main": "차량유지비", "category_mso": "판매비와관리비"}),
    ClassificationRule(("주유", "오일", "SK에너지", "GS칼텍스"), {"item": "주유비", "category_main": "차량유지비", "category_mso": "판매비와관리비"}),
    ClassificationRule(("하이패스", "도로공사"), {"item": "통행료", "category_main": "여비교통비", "category_mso": "판매비와관리비"}),
    ClassificationRule(("택시", "카카오T", "코레일", "KTX"), {"item": "교통비", "category_main": "여비교통비", "category_mso": "판매비와관리비"}),
    ClassificationRule(("스타벅스", "투썸", "이디야", "커피", "카페"), {"item": "음료", "category_detail": "커피", "category_main": "복리후생비", "category_mso": "판매비와관리비"}),
    ClassificationRule(("배달의민족", "요기요", "쿠팡이츠", "식당", "김밥"), {"item": "식대", "category_main": "복리후생비", "category_mso": "판매비와관리비"}),
    ClassificationRule(("쿠팡", "다이소", "오피스디포"), {"item": "소모품", "category_main": "소모품비", "category_mso": "판매비와관리비"}),
    ClassificationRule(("KT", "SKT", "LG U+", "LGU+"), {"item": "통신요금", "category_main": "통신비", "category_mso": "판매비와관리비"}),
    ClassificationRule(("한국전력", "도시가스", "수도"), {"item": "공과금", "category_main": "수도광열비", "category_mso": "판매비와관리비"}),
    ClassificationRule(("APPLE.COM", "GOOGLE", "구독"), {"item": "앱 구독료", "category_main": "지급수수료", "category_mso": "판매비와관리비"}),
    ClassificationRule(("약품", "의약품", "약국"), {"item": "약품", "category_main": "의약품비", "category_mso": "매출원가"}),
    ClassificationRule(("이자",), {"item": "이자", "category_main": "이자비용", "category_mso": "영업외비용"}),
)


def classify_record(record: TransactionRecord, rules: Sequence[ClassificationRule]) -> ClassificationRule | None:
    for rule in rules:
        if rule.matches(record.raw_description):
            rule.apply(record)
            return rule
    return None


def payment_channel(raw_source: str) -> PaymentChannel:
    """Route by provenance name: card marker first, then account marker, else cash."""
    if CARD_MARKER in raw_source:
        return PaymentChannel.CARD
    if ACCOUNT_MARKER in raw_source:
        return PaymentChannel.TRANSFER
    return PaymentChannel.CASH


def classify_records(
    records: Iterable[TransactionRecord],
    rules: Sequence[ClassificationRule] = DEFAULT_RULES,
) -> list[TransactionRecord]:
    records = list(records)
    matched = 0
    for record in records:
        if classify_record(record, rules) is not None:
            matched += 1
    for record in records:
        record.channel = payment_channel(record.raw_source)
    logger.debug("Classified %d of %d records", matched, len(records))
    return records


def rule_from_dict(payload: Mapping[str, Any]) -> ClassificationRule:
    keywords = payload.get("keywords")
    if not isinstance(keywords, list) or not keywords:
        raise ValueError(f"Rule needs a non-empty keywords list: {dict(payload)}")
    updates = payload.get("updates") or {}
    if not isinstance(updates, dict):
        raise ValueError(f"Rule updates must be an object: {dict(payload)}")
    return ClassificationRule(
        keywords=tuple(str(k) for k in keywords),
        updates={str(k): str(v) for k, v in updates.items()},
    )


def rule_to_dict(rule: ClassificationRule) -> dict[str, Any]:
    return {"keywords": list(rule.keywords), "updates": dict(rule.updates)}


def rules_from_list(payload: Any) -> tuple[ClassificationRule, ...]:
    if not isinstance(payload, list):
        raise ValueError("Rule catalog must be a JSON list.")
    return tuple(rule_from_dict(item) for item in payload)


def load_rules(path: "str | Path") -> tuple[ClassificationRule, ...]:
    return rules_from_list(json.loads(Path(path).read_text(encoding="utf-8")))
