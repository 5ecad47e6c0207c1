"""Quota policy bounding external calls per mail scan."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class QuotaPolicy:
    """Upper bounds for one mail scan.

    The promotional query gets half of ``max_messages``; each of at most
    ``max_brands`` brand queries gets ``max_messages_per_brand``. A run
    therefore issues at most ``max_messages / 2 + max_brands * max_messages_per_brand``
    message fetches.
    """

    max_messages: int = 50
    max_brands: int = 8
    max_messages_per_brand: int = 10

    def __post_init__(self) -> None:
        for name in ("max_messages", "max_brands", "max_messages_per_brand"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")

    @property
    def promotional_limit(self) -> int:
        if self.max_messages == 0:
            return 0
        return max(1, self.max_messages // 2)

    @property
    def max_fetches(self) -> int:
        return self.promotional_limit + self.max_brands * self.max_messages_per_brand


__all__ = ["QuotaPolicy"]
