from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PaymentChannel(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


def new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass
class TransactionRecord:
    date: str
    amount: float
    raw_description: str
    raw_source: str
    raw_filename: str
    time: Any = ""
    item: str = ""
    category_detail: str = ""
    category_main: str = ""
    category_mso: str = ""
    channel: PaymentChannel | None = None
    id: str = field(default_factory=new_record_id)

    @property
    def display_date(self) -> str:
        return self.date

    def _channel_value(self, channel: PaymentChannel, value: Any) -> Any:
        return value if self.channel is channel else ""

    @property
    def col_cash(self) -> Any:
        return self._channel_value(PaymentChannel.CASH, self.amount)

    @property
    def col_card(self) -> Any:
        return self._channel_value(PaymentChannel.CARD, self.amount)

    @property
    def col_card_detail(self) -> str:
        return self._channel_value(PaymentChannel.CARD, self.raw_source)

    @property
    def col_transfer(self) -> Any:
        return self._channel_value(PaymentChannel.TRANSFER, self.amount)

    @property
    def col_account(self) -> str:
        return self._channel_value(PaymentChannel.TRANSFER, self.raw_source)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "time": self.time,
            "amount": self.amount,
            "raw_description": self.raw_description,
            "item": self.item,
            "category_detail": self.category_detail,
            "category_main": self.category_main,
            "category_mso": self.category_mso,
            "raw_source": self.raw_source,
            "raw_filename": self.raw_filename,
            "channel": self.channel.value if self.channel else None,
            "display_date": self.display_date,
            "col_transfer": self.col_transfer,
            "col_account": self.col_account,
            "col_cash": self.col_cash,
            "col_card": self.col_card,
            "col_card_detail": self.col_card_detail,
        }
