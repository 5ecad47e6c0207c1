"""Catalog item data model and helpers."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from models.taxonomy import (
    DEFAULT_CATALOG_CATEGORY,
    UNKNOWN_BRAND,
    validate_catalog_category,
)


def _clean_optional(value: Any) -> Optional[str]:
    """Strip strings and collapse blanks to ``None``."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class CatalogItem:
    """An item in the user's closet, created from a URL, a photo or manual entry."""

    id: str
    user_id: str
    brand_name: str
    category: str = DEFAULT_CATALOG_CATEGORY
    product_name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    stored_image_path: Optional[str] = None
    price: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    source_url: Optional[str] = None
    purchase_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("CatalogItem requires a user_id")
        self.brand_name = _clean_optional(self.brand_name) or UNKNOWN_BRAND
        self.category = validate_catalog_category(self.category or DEFAULT_CATALOG_CATEGORY)
        for name in (
            "product_name",
            "description",
            "image_url",
            "stored_image_path",
            "price",
            "size",
            "color",
            "source_url",
        ):
            setattr(self, name, _clean_optional(getattr(self, name)))

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["purchase_date"] = self.purchase_date.isoformat() if self.purchase_date else None
        return payload


__all__ = ["CatalogItem"]
