"""Mail query engine: builds bounded search queries and gathers message ids."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from logic.brands import SEED_BRANDS, brand_query_token
from models.quota import QuotaPolicy
from tools.gmail_client import MailProvider

logger = logging.getLogger(__name__)

PROMOTIONAL_QUERY = "category:promotions OR from:(noreply OR marketing OR deals OR offers OR newsletter)"


@dataclass(frozen=True)
class MessageRef:
    message_id: str
    source: str
    query: str


def brand_query(brand: str) -> str:
    return f"in:inbox from:{brand_query_token(brand)}"


def select_brands(
    seen_brands: Iterable[str],
    quota: QuotaPolicy,
    seed_brands: Sequence[str] = SEED_BRANDS,
    suppressed_brands: Iterable[str] = (),
) -> List[str]:
    """Brands already seen for the user, then the seed list, first ``max_brands`` kept.

    Suppressed brands never get a query, so they do not use up brand slots.
    """

    selected: List[str] = []
    seen_keys = {brand_query_token(brand) for brand in suppressed_brands}
    for brand in list(seen_brands) + list(seed_brands):
        key = brand_query_token(brand)
        if not key or key in seen_keys:
            continue
        seen_keys.add(key)
        selected.append(brand)
        if len(selected) >= quota.max_brands:
            break
    return selected


class MailQueryEngine:
    """Run the promotional query and the brand queries under a quota policy.

    Only identifiers are returned; each full message is fetched separately.
    A message matched by several queries keeps the source of the first one.
    """

    def __init__(self, provider: MailProvider, seed_brands: Optional[Sequence[str]] = None) -> None:
        self.provider = provider
        self.seed_brands = list(seed_brands) if seed_brands is not None else list(SEED_BRANDS)

    def collect(
        self,
        access_token: str,
        quota: QuotaPolicy,
        seen_brands: Iterable[str] = (),
        suppressed_brands: Iterable[str] = (),
    ) -> List[MessageRef]:
        refs: List[MessageRef] = []
        known_ids = set()

        def add(ids: Iterable[str], source: str, query: str) -> None:
            for message_id in ids:
                if message_id in known_ids:
                    continue
                known_ids.add(message_id)
                refs.append(MessageRef(message_id=message_id, source=source, query=query))

        if quota.promotional_limit:
            add(
                self.provider.list_message_ids(access_token, PROMOTIONAL_QUERY, quota.promotional_limit),
                "promotional_query",
                PROMOTIONAL_QUERY,
            )

        if quota.max_messages_per_brand:
            for brand in select_brands(seen_brands, quota, self.seed_brands, suppressed_brands):
                query = brand_query(brand)
                add(
                    self.provider.list_message_ids(access_token, query, quota.max_messages_per_brand),
                    "inbox_query",
                    query,
                )

        logger.info(
            "Collected message ids",
            extra={"message_count": len(refs), "max_fetches": quota.max_fetches},
        )
        return refs


__all__ = ["MailQueryEngine", "MessageRef", "PROMOTIONAL_QUERY", "brand_query", "select_brands"]
