"""HTML parsing utilities for retailer product pages.

Two parsers live here. :func:`parse_rendered_html` reads the rendered HTML
returned by the extraction service with BeautifulSoup. :func:`extract_with_patterns`
runs ordered regex alternatives over raw HTML fetched directly, which is
often a partial or script-heavy document where a tree parse finds little.
"""

from __future__ import annotations

import html as html_lib
import logging
import re
from typing import Dict, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from logic.rules import RuleSet

logger = logging.getLogger(__name__)

PRICE_PATTERN = re.compile(r"[$€£]\s?\d+(?:,\d{3})*(?:\.\d{2})?")
_WHITESPACE = re.compile(r"\s+")

TITLE_PATTERNS = RuleSet(
    "title",
    [
        (r"<title[^>]*>([^<]+)<", "title"),
        (r"<h1[^>]*class=\"[^\"]*product[^\"]*\"[^>]*>([^<]+)<", "title"),
        (r"<meta[^>]*property=\"og:title\"[^>]*content=\"([^\"]+)\"", "title"),
        (r"<h1[^>]*>([^<]+)<", "title"),
        (r"data-product-title=\"([^\"]+)\"", "title"),
        (r"productTitle[^>]*>([^<]+)<", "title"),
    ],
)

PRICE_PATTERNS = RuleSet(
    "price",
    [
        (r"[\"\s](\$\d+(?:,\d{3})*(?:\.\d{2})?)[\"\s]", "price"),
        (r"price[^>]*>.*?(\$\d+(?:,\d{3})*(?:\.\d{2})?)", "price"),
        (r"data-price=\"([^\"]+)\"", "price"),
        (r"price[^>]*:.*?(\$[\d,]+(?:\.\d{2})?)", "price"),
    ],
)

IMAGE_PATTERNS = RuleSet(
    "image_url",
    [
        (r"<meta[^>]*property=\"og:image\"[^>]*content=\"([^\"]+)\"", "image_url"),
        (r"<img[^>]*class=\"[^\"]*product[^\"]*\"[^>]*src=\"([^\"]+)\"", "image_url"),
        (r"<img[^>]*src=\"([^\"]+)\"[^>]*class=\"[^\"]*product[^\"]*\"", "image_url"),
        (r"data-src=\"([^\"]*\.(?:jpg|jpeg|png|webp)[^\"]*)\"", "image_url"),
        (r"<img[^>]*src=\"([^\"]*\.(?:jpg|jpeg|png|webp)[^\"]*)\"", "image_url"),
    ],
)

DESCRIPTION_PATTERNS = RuleSet(
    "description",
    [
        (r"<meta[^>]*name=\"description\"[^>]*content=\"([^\"]+)\"", "description"),
        (r"<meta[^>]*property=\"og:description\"[^>]*content=\"([^\"]+)\"", "description"),
        (r"product-description[^>]*>([^<]+)<", "description"),
    ],
)


def clean_text(value: Optional[str]) -> Optional[str]:
    """Unescape HTML entities and collapse whitespace; blank becomes ``None``."""

    if value is None:
        return None
    cleaned = _WHITESPACE.sub(" ", html_lib.unescape(value)).strip()
    return cleaned or None


def normalize_image_url(src: Optional[str], page_url: str) -> Optional[str]:
    """Make a scraped image URL absolute and HTTPS."""

    src = (src or "").strip()
    if not src:
        return None
    src = html_lib.unescape(src)
    if src.startswith("//"):
        src = "https:" + src
    elif src.startswith("/"):
        parsed = urlparse(page_url)
        src = f"{parsed.scheme}://{parsed.netloc}{src}"
    elif not re.match(r"^[a-z][a-z0-9+.-]*:", src, re.IGNORECASE):
        src = urljoin(page_url, src)
    if src.startswith("http://"):
        src = "https://" + src[len("http://"):]
    return src


def first_price(text: Optional[str]) -> Optional[str]:
    matched = PRICE_PATTERN.search(text or "")
    return re.sub(r"\s+", "", matched.group(0)) if matched else None


def title_from_url(url: str) -> Optional[str]:
    """Title-case the last path segment: ``/p/air-max-90`` -> ``Air Max 90``."""

    path = urlparse(url or "").path.rstrip("/")
    segment = path.rsplit("/", 1)[-1] if path else ""
    segment = re.sub(r"\.(?:html?|php|aspx?)$", "", segment, flags=re.IGNORECASE)
    words = re.sub(r"[-_]+", " ", segment).strip()
    if not words:
        return None
    return re.sub(r"\b\w", lambda found: found.group(0).upper(), words)


def _get_meta_content(soup: BeautifulSoup, key: str, attr: str = "property") -> str:
    tag = soup.find("meta", attrs={attr: key})
    return tag["content"].strip() if tag and tag.get("content") else ""


def _extract_image_url(soup: BeautifulSoup) -> str:
    og_image = _get_meta_content(soup, "og:image")
    if og_image:
        return og_image

    link_image = soup.find("link", rel="image_src")
    if link_image and link_image.get("href"):
        return link_image["href"]

    first_img = soup.find("img", src=True)
    if first_img:
        return first_img["src"]

    return ""


def parse_rendered_html(html: str, url: str) -> Dict[str, Optional[str]]:
    """Parse rendered product HTML, preferring Open Graph metadata."""

    soup = BeautifulSoup(html or "", "html.parser")
    heading = soup.find("h1")
    title = (
        _get_meta_content(soup, "og:title")
        or (soup.title.get_text() if soup.title else "")
        or (heading.get_text() if heading else "")
    )
    description = _get_meta_content(soup, "og:description") or _get_meta_content(
        soup, "description", attr="name"
    )
    parsed = {
        "title": clean_text(title),
        "description": clean_text(description),
        "image_url": normalize_image_url(_extract_image_url(soup), url),
        "price": first_price(soup.get_text(" ")),
    }
    logger.debug("Parsed rendered HTML", extra={"fields": {k: bool(v) for k, v in parsed.items()}})
    return parsed


def extract_with_patterns(html: str, url: str) -> Dict[str, Optional[str]]:
    """Run the ordered regex alternatives for each field over raw HTML."""

    def first(rules: RuleSet) -> Optional[str]:
        matched = rules.first_match(html or "")
        return matched.group(1) if matched else None

    parsed = {
        "title": clean_text(first(TITLE_PATTERNS)),
        "price": clean_text(first(PRICE_PATTERNS)),
        "image_url": normalize_image_url(first(IMAGE_PATTERNS), url),
        "description": clean_text(first(DESCRIPTION_PATTERNS)),
    }
    logger.debug("Pattern extraction finished", extra={"fields": {k: bool(v) for k, v in parsed.items()}})
    return parsed


__all__ = [
    "DESCRIPTION_PATTERNS",
    "IMAGE_PATTERNS",
    "PRICE_PATTERNS",
    "TITLE_PATTERNS",
    "clean_text",
    "extract_with_patterns",
    "first_price",
    "normalize_image_url",
    "parse_rendered_html",
    "title_from_url",
]
