"""Tools for fetching product pages from retailer URLs."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

import requests

from tools.observability import instrument_tool

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}


class InvalidProductURLError(ValueError):
    """Raised when the provided URL is not a valid HTTP or HTTPS URL."""


class ProductPageFetchError(RuntimeError):
    """Raised when the product page cannot be retrieved successfully."""


def validate_product_url(url: str) -> None:
    parsed = urlparse(url or "")
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise InvalidProductURLError(f"Unsupported or invalid URL: {url}")


@instrument_tool("fetch_product_page")
def fetch_product_page(url: str, timeout: Optional[float] = 10.0) -> str:
    """Fetch the raw HTML for a retailer product page.

    Args:
        url: HTTP or HTTPS URL pointing to a retailer product page.
        timeout: Optional network timeout in seconds.

    Returns:
        The HTML content of the page as text.

    Raises:
        InvalidProductURLError: If the URL is not HTTP/HTTPS or missing a host.
        ProductPageFetchError: For network issues or non-2xx responses.
    """

    validate_product_url(url)
    try:
        response = requests.get(url, headers=BROWSER_HEADERS, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Network error fetching product page", extra={"error": str(exc)})
        raise ProductPageFetchError(f"Network error fetching {url}: {exc}") from exc

    if not 200 <= response.status_code < 300:
        logger.warning(
            "Non-success status when fetching product page",
            extra={"status_code": response.status_code},
        )
        raise ProductPageFetchError(f"Failed to fetch {url}: HTTP {response.status_code}")

    logger.debug(
        "Fetched product page successfully",
        extra={"status_code": response.status_code, "length": len(response.text)},
    )
    return response.text


__all__ = [
    "BROWSER_HEADERS",
    "InvalidProductURLError",
    "ProductPageFetchError",
    "fetch_product_page",
    "validate_product_url",
]
