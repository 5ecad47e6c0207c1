"""Client for the remote structured-extraction (scrape) service."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fits_app.config import DEFAULT_EXTRACTION_SERVICE_URL
from tools.observability import instrument_tool
from tools.product_parser import clean_text, first_price, normalize_image_url, parse_rendered_html

LOGGER = logging.getLogger(__name__)


class ExtractionServiceError(RuntimeError):
    """Raised when the extraction service call fails or returns nothing usable."""


class ExtractionServiceUnavailable(ExtractionServiceError):
    """Raised when no extraction service is configured."""


class ScrapeMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    og_image: Optional[str] = Field(default=None, alias="ogImage")
    og_title: Optional[str] = Field(default=None, alias="ogTitle")
    og_description: Optional[str] = Field(default=None, alias="ogDescription")


class ScrapeData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    markdown: Optional[str] = None
    html: Optional[str] = None
    metadata: ScrapeMetadata = ScrapeMetadata()


class ScrapeResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = True
    data: Optional[ScrapeData] = None


class ExtractionServiceClient:
    """Request rendered content and metadata for a product URL."""

    def __init__(
        self,
        api_key: Optional[str],
        service_url: str = DEFAULT_EXTRACTION_SERVICE_URL,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.service_url = service_url
        self.timeout_seconds = timeout_seconds

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    @instrument_tool("extraction_service_scrape")
    def scrape(self, url: str) -> ScrapeData:
        if not self.available:
            raise ExtractionServiceUnavailable("Extraction service is not configured")

        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        body = {"url": url, "formats": ["markdown", "html"], "onlyMainContent": True}
        try:
            response = requests.post(
                self.service_url, json=body, headers=headers, timeout=self.timeout_seconds
            )
        except requests.RequestException as exc:
            raise ExtractionServiceError(f"Extraction service unreachable: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise ExtractionServiceError(f"Extraction service returned HTTP {response.status_code}")

        try:
            parsed = ScrapeResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ExtractionServiceError("Extraction service returned an unexpected payload") from exc
        if not parsed.success or parsed.data is None:
            raise ExtractionServiceError("Extraction service reported failure")
        return parsed.data

    def extract_fields(self, url: str) -> Dict[str, Any]:
        """Return title, description, image URL and price for ``url``.

        Metadata wins over values parsed from the rendered HTML; the price is
        the first currency amount in the page text.
        """

        data = self.scrape(url)
        from_html = parse_rendered_html(data.html or "", url) if data.html else {}
        metadata = data.metadata
        fields = {
            "title": clean_text(metadata.og_title or metadata.title) or from_html.get("title"),
            "description": clean_text(metadata.og_description or metadata.description)
            or from_html.get("description"),
            "image_url": normalize_image_url(metadata.og_image, url) or from_html.get("image_url"),
            "price": first_price(data.markdown) or from_html.get("price"),
        }
        LOGGER.debug("Extraction service fields", extra={"fields": {k: bool(v) for k, v in fields.items()}})
        return fields


__all__ = [
    "ExtractionServiceClient",
    "ExtractionServiceError",
    "ExtractionServiceUnavailable",
    "ScrapeData",
    "ScrapeResponse",
]
