"""Order number, total and item count extraction from order emails."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from logic.rules import RuleSet

_ORDER_TOKEN = r"([a-z0-9][a-z0-9-]*\d[a-z0-9-]*)"
_AMOUNT = r"([$€£]\s?\d+(?:,\d{3})*(?:\.\d{2})?)"

ORDER_NUMBER_RULES = RuleSet(
    "order_number",
    [
        (rf"order\s*(?:number|no\.?|id)\s*[:#]?\s*{_ORDER_TOKEN}", "order_number"),
        (rf"order\s*#\s*{_ORDER_TOKEN}", "order_number"),
        (rf"order\s*:\s*{_ORDER_TOKEN}", "order_number"),
        (r"(?<![\w&])#\s*(\d{4,})", "order_number"),
    ],
)

ORDER_TOTAL_RULES = RuleSet(
    "order_total",
    [
        (rf"(?:order|grand)\s+total\s*:?\s*{_AMOUNT}", "order_total"),
        (rf"(?<![a-z])total\s*(?:charged|paid)?\s*:?\s*{_AMOUNT}", "order_total"),
        (rf"amount\s+(?:charged|paid)\s*:?\s*{_AMOUNT}", "order_total"),
    ],
)

ITEM_COUNT_RULES = RuleSet(
    "order_item_count",
    [
        (r"(?<!\d)(\d{1,3})\s+items?(?![a-z])", "order_item_count"),
        (r"items?\s*(?:\(|:)\s*(\d{1,3})", "order_item_count"),
    ],
)


@dataclass(frozen=True)
class OrderInfo:
    order_number: Optional[str] = None
    order_total: Optional[str] = None
    order_item_count: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.order_number is None and self.order_total is None and self.order_item_count is None


def extract_order_info(text: str) -> OrderInfo:
    """Extract whichever order fields are present; the rest stay ``None``."""

    number_match = ORDER_NUMBER_RULES.first_match(text or "")
    total_match = ORDER_TOTAL_RULES.first_match(text or "")
    count_match = ITEM_COUNT_RULES.first_match(text or "")

    return OrderInfo(
        order_number=number_match.group(1).upper() if number_match else None,
        order_total=re.sub(r"\s+", "", total_match.group(1)) if total_match else None,
        order_item_count=int(count_match.group(1)) if count_match else None,
    )


__all__ = ["ITEM_COUNT_RULES", "ORDER_NUMBER_RULES", "ORDER_TOTAL_RULES", "OrderInfo", "extract_order_info"]
