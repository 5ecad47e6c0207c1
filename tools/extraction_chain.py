"""Ordered product extraction strategies and the chain that merges them.

Each strategy returns a partial result; the chain only copies values into
fields that are still empty, so caller-supplied fields and values found by
an earlier tier are never overwritten. The chain stops as soon as the
required fields (title, brand, image) are all resolved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from fits_app.logging_config import log_event
from logic.brands import brand_from_url
from tools.extraction_service import ExtractionServiceClient, ExtractionServiceError
from tools.product_page_fetcher import (
    InvalidProductURLError,
    ProductPageFetchError,
    fetch_product_page,
)
from tools.product_parser import extract_with_patterns, title_from_url

LOGGER = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "brand_name", "image")


@dataclass
class ExtractionResult:
    fields: Dict[str, Any] = field(default_factory=dict)
    succeeded: bool = False
    reason: str = ""


class ExtractionStrategy(ABC):
    """One tier of the extraction chain."""

    name: str = "strategy"

    @abstractmethod
    def extract(self, url: str) -> ExtractionResult:
        """Return whatever fields this tier can resolve for ``url``."""


class RemoteServiceStrategy(ExtractionStrategy):
    """Tier A: structured extraction through the remote scrape service."""

    name = "remote_service"

    def __init__(self, client: ExtractionServiceClient) -> None:
        self.client = client

    def extract(self, url: str) -> ExtractionResult:
        if not self.client.available:
            return ExtractionResult(reason="unavailable")
        try:
            fields = self.client.extract_fields(url)
        except ExtractionServiceError as exc:
            return ExtractionResult(reason=str(exc))
        fields["brand_name"] = brand_from_url(url)
        return ExtractionResult(fields=fields, succeeded=True)


class DirectFetchStrategy(ExtractionStrategy):
    """Tier B: fetch the raw page and run the regex alternatives."""

    name = "direct_fetch"

    def __init__(self, fetcher: Callable[..., str] = fetch_product_page, timeout_seconds: float = 10.0) -> None:
        self.fetcher = fetcher
        self.timeout_seconds = timeout_seconds

    def extract(self, url: str) -> ExtractionResult:
        try:
            html = self.fetcher(url, timeout=self.timeout_seconds)
        except (InvalidProductURLError, ProductPageFetchError) as exc:
            return ExtractionResult(reason=f"fetch_failed: {exc}")
        fields = extract_with_patterns(html, url)
        fields["brand_name"] = brand_from_url(url)
        return ExtractionResult(fields=fields, succeeded=True)


class UrlHeuristicStrategy(ExtractionStrategy):
    """Tier C: title-case the final URL path segment."""

    name = "url_heuristic"

    def extract(self, url: str) -> ExtractionResult:
        title = title_from_url(url)
        if not title:
            return ExtractionResult(reason="no_path_segment")
        return ExtractionResult(fields={"title": title}, succeeded=True)


def _is_set(value: Any) -> bool:
    return value not in (None, "")


def missing_fields(fields: Dict[str, Any]) -> List[str]:
    missing = []
    for name in REQUIRED_FIELDS:
        if name == "image":
            if not (_is_set(fields.get("image_url")) or _is_set(fields.get("stored_image_path"))):
                missing.append(name)
        elif not _is_set(fields.get(name)):
            missing.append(name)
    return missing


def merge_fields(current: Dict[str, Any], found: Dict[str, Any]) -> List[str]:
    """Copy values from ``found`` into unset keys of ``current``; return the keys filled."""

    filled = []
    for key, value in found.items():
        if not _is_set(value) or _is_set(current.get(key)):
            continue
        if key == "image_url" and _is_set(current.get("stored_image_path")):
            continue
        current[key] = value
        filled.append(key)
    return filled


class ExtractionChain:
    """Run strategies front to back until the required fields are resolved."""

    def __init__(self, strategies: Sequence[ExtractionStrategy]) -> None:
        self.strategies = list(strategies)

    def run(self, url: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        merged = dict(fields)
        for strategy in self.strategies:
            if not missing_fields(merged):
                break
            result = strategy.extract(url)
            filled = merge_fields(merged, result.fields) if result.succeeded else []
            log_event(
                LOGGER,
                logging.INFO if result.succeeded else logging.WARNING,
                "extraction_tier_finished",
                tier=strategy.name,
                succeeded=result.succeeded,
                reason=result.reason,
                filled=filled,
            )
        return merged


def default_chain(client: ExtractionServiceClient, timeout_seconds: float = 10.0) -> ExtractionChain:
    return ExtractionChain(
        [
            RemoteServiceStrategy(client),
            DirectFetchStrategy(timeout_seconds=timeout_seconds),
            UrlHeuristicStrategy(),
        ]
    )


__all__ = [
    "DirectFetchStrategy",
    "ExtractionChain",
    "ExtractionResult",
    "ExtractionStrategy",
    "RemoteServiceStrategy",
    "UrlHeuristicStrategy",
    "default_chain",
    "merge_fields",
    "missing_fields",
]
