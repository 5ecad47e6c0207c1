"""Canonical labels for catalog categories and ingested message metadata.

This module centralises the closed vocabularies used across the pipelines:
catalog categories produced by the categorizer, message categories produced
by the classifier and the query sources an ingested message can come from.
Helper functions keep validation consistent between models, stores and the
HTTP layer.
"""

from typing import List


def _normalize_key(value: str) -> str:
    """Normalise a free-form string into a taxonomy key."""

    return value.strip().lower().replace("_", "-").replace(" ", "-")


CATALOG_CATEGORIES: List[str] = [
    "polo-shirts",
    "button-shirts",
    "t-shirts",
    "shirts",
    "jeans",
    "shorts",
    "pants",
    "jackets",
    "sweaters",
    "hoodies",
    "activewear",
    "shoes",
]

# Unmatched items land here rather than in an explicit "uncategorized" bucket.
DEFAULT_CATALOG_CATEGORY = "shirts"

MESSAGE_CATEGORIES: List[str] = ["promotion", "order_confirmation", "shipping", "other"]
MESSAGE_SOURCES: List[str] = ["promotional_query", "inbox_query"]

UNKNOWN_ITEM = "Unknown Item"
UNKNOWN_BRAND = "Unknown Brand"


def validate_catalog_category(value: str) -> str:
    """Validate and normalise a catalog category value.

    Raises a :class:`ValueError` if the category is not part of the canonical
    taxonomy.
    """

    key = _normalize_key(value)
    if key not in CATALOG_CATEGORIES:
        raise ValueError(f"Unsupported category '{value}'. Allowed: {CATALOG_CATEGORIES}")
    return key


def validate_message_category(value: str) -> str:
    key = value.strip().lower()
    if key not in MESSAGE_CATEGORIES:
        raise ValueError(f"Unsupported message category '{value}'. Allowed: {MESSAGE_CATEGORIES}")
    return key


def validate_message_source(value: str) -> str:
    key = value.strip().lower()
    if key not in MESSAGE_SOURCES:
        raise ValueError(f"Unsupported message source '{value}'. Allowed: {MESSAGE_SOURCES}")
    return key


__all__ = [
    "CATALOG_CATEGORIES",
    "DEFAULT_CATALOG_CATEGORY",
    "MESSAGE_CATEGORIES",
    "MESSAGE_SOURCES",
    "UNKNOWN_ITEM",
    "UNKNOWN_BRAND",
    "validate_catalog_category",
    "validate_message_category",
    "validate_message_source",
]
