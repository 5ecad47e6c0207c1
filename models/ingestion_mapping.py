"""Mapping logic from extracted product fields to :class:`CatalogItem`."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from logic.rules import RuleSet
from models.catalog_item import CatalogItem
from models.taxonomy import DEFAULT_CATALOG_CATEGORY, UNKNOWN_BRAND, UNKNOWN_ITEM

logger = logging.getLogger(__name__)

# First match wins, so the specific shirt shapes sit above plain "shirt".
CATEGORY_RULES = RuleSet(
    "catalog_category",
    [
        (r"polo|polo shirt", "polo-shirts"),
        (r"button|button-up|button down|dress shirt|formal shirt", "button-shirts"),
        (r"t-shirt|tee|graphic tee|basic tee", "t-shirts"),
        (r"shirt|blouse|top", "shirts"),
        (r"jean|denim", "jeans"),
        (r"short(?!s)|board short|swim short", "shorts"),
        (r"pant|trouser|chino", "pants"),
        (r"jacket|blazer|coat", "jackets"),
        (r"sweater|pullover|cardigan", "sweaters"),
        (r"hoodie|hooded|sweatshirt", "hoodies"),
        (r"active|athletic|workout|gym|sport|running|yoga|fitness", "activewear"),
        (r"shoe|sneaker|boot|sandal|heel|flat|footwear", "shoes"),
    ],
)


def categorize_product(title: str, description: str, url: str) -> str:
    """Guess a catalog category, defaulting to ``shirts`` when nothing matches."""

    text = f"{title or ''} {description or ''} {url or ''}".lower()
    category = CATEGORY_RULES.first_label(text)
    if category is None:
        logger.debug("No category keyword matched, using default", extra={"category": DEFAULT_CATALOG_CATEGORY})
        return DEFAULT_CATALOG_CATEGORY
    return category


_PURCHASE_DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d", "%b %d, %Y", "%B %d, %Y", "%d %b %Y", "%d %B %Y")


def parse_purchase_date(value: Any) -> Optional[datetime]:
    """Parse ISO dates plus the US and month-name forms people type into forms.

    Raises :class:`ValueError` for anything else.
    """

    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _PURCHASE_DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
            else:
                raise ValueError(f"Unrecognised purchase date {text!r}") from None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def map_extracted_fields_to_catalog_item(user_id: str, fields: Dict[str, Any]) -> CatalogItem:
    """Build a :class:`CatalogItem` from merged submission and extraction fields.

    Missing names become the ``Unknown Item`` / ``Unknown Brand`` placeholders;
    a missing category is filled by :func:`categorize_product`.
    """

    category = fields.get("category") or categorize_product(
        str(fields.get("title") or ""),
        str(fields.get("description") or ""),
        str(fields.get("url") or ""),
    )
    item = CatalogItem(
        id=str(uuid.uuid4()),
        user_id=user_id,
        product_name=fields.get("title") or UNKNOWN_ITEM,
        brand_name=fields.get("brand_name") or UNKNOWN_BRAND,
        description=fields.get("description"),
        image_url=fields.get("image_url"),
        stored_image_path=fields.get("stored_image_path"),
        price=fields.get("price"),
        size=fields.get("size"),
        color=fields.get("color"),
        category=category,
        source_url=fields.get("url"),
        purchase_date=parse_purchase_date(fields.get("purchase_date")),
    )
    logger.debug(
        "Mapped extracted fields to CatalogItem",
        extra={"category": item.category, "has_image": bool(item.image_url or item.stored_image_path)},
    )
    return item


__all__ = ["CATEGORY_RULES", "categorize_product", "map_extracted_fields_to_catalog_item", "parse_purchase_date"]
