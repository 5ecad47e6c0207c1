"""Product extraction chain and catalog ingestion tests."""

from __future__ import annotations

import base64
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from agents.catalog_ingestion import CatalogIngestionAgent
from logic.validation import ItemSubmission
from tools import blob_store as blob_store_module
from tools.blob_store import LocalBlobStore
from tools.extraction_chain import (
    DirectFetchStrategy,
    ExtractionChain,
    ExtractionResult,
    ExtractionStrategy,
    RemoteServiceStrategy,
    UrlHeuristicStrategy,
    default_chain,
)
from tools.extraction_service import ExtractionServiceClient
from tools.ingestion_store import SQLiteIngestionStore
from tools.product_page_fetcher import InvalidProductURLError, ProductPageFetchError, fetch_product_page
from tools.product_parser import (
    extract_with_patterns,
    normalize_image_url,
    parse_rendered_html,
    title_from_url,
)

AIR_MAX_HTML = """
<html>
  <head>
    <title>Air Max 90</title>
    <meta property="og:image" content="//static.nike.com/air-max-90.jpg" />
  </head>
  <body><h1>Air Max 90</h1></body>
</html>
"""


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", payload: Dict[str, Any] | None = None) -> None:
        self.status_code = status_code
        self.text = text
        self._payload = payload

    def json(self) -> Dict[str, Any]:
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload


class StaticStrategy(ExtractionStrategy):
    def __init__(self, name: str, fields: Dict[str, Any], succeeded: bool = True) -> None:
        self.name = name
        self.fields = fields
        self.succeeded = succeeded
        self.calls: List[str] = []

    def extract(self, url: str) -> ExtractionResult:
        self.calls.append(url)
        return ExtractionResult(fields=dict(self.fields), succeeded=self.succeeded)


def _agent(tmp_path: Path, chain: ExtractionChain) -> CatalogIngestionAgent:
    store = SQLiteIngestionStore(tmp_path / "fits.db")
    return CatalogIngestionAgent(store=store, chain=chain, blob_store=LocalBlobStore(tmp_path / "blobs"))


def test_fetch_product_page_sends_browser_headers(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: Dict[str, Any] = {}

    def fake_get(url: str, headers: Dict[str, str] | None = None, timeout: float = 10.0):
        calls["url"] = url
        calls["headers"] = headers
        calls["timeout"] = timeout
        return FakeResponse(text="<html>ok</html>")

    monkeypatch.setattr("tools.product_page_fetcher.requests.get", fake_get)
    html = fetch_product_page("https://example.com/product/123", timeout=5)
    assert "ok" in html
    assert calls["timeout"] == 5
    assert "Mozilla" in calls["headers"]["User-Agent"]


def test_fetch_product_page_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(InvalidProductURLError):
        fetch_product_page("ftp://example.com/bad")

    monkeypatch.setattr(
        "tools.product_page_fetcher.requests.get", lambda *args, **kwargs: FakeResponse(status_code=404)
    )
    with pytest.raises(ProductPageFetchError):
        fetch_product_page("https://example.com/missing")


def test_pattern_extraction_from_raw_html() -> None:
    parsed = extract_with_patterns(AIR_MAX_HTML, "https://www.nike.com/t/air-max-90")
    assert parsed["title"] == "Air Max 90"
    assert parsed["image_url"] == "https://static.nike.com/air-max-90.jpg"
    assert parsed["price"] is None
    assert parsed["description"] is None


def test_pattern_extraction_unescapes_and_finds_price() -> None:
    html = (
        '<html><head><title>Tom &amp; Jerry Tee</title>'
        '<meta name="description" content="Soft &quot;vintage&quot; cotton"></head>'
        '<body><span class="price"> $24.00 </span></body></html>'
    )
    parsed = extract_with_patterns(html, "https://shop.test/p/tee")
    assert parsed["title"] == "Tom & Jerry Tee"
    assert parsed["description"] == 'Soft "vintage" cotton'
    assert parsed["price"] == "$24.00"


def test_normalize_image_url_variants() -> None:
    page = "https://shop.test/p/1"
    assert normalize_image_url("//cdn.test/a.jpg", page) == "https://cdn.test/a.jpg"
    assert normalize_image_url("/img/a.jpg", page) == "https://shop.test/img/a.jpg"
    assert normalize_image_url("http://cdn.test/a.jpg", page) == "https://cdn.test/a.jpg"
    assert normalize_image_url("", page) is None


def test_title_from_url() -> None:
    assert title_from_url("https://shop.test/products/air-max-90?color=red") == "Air Max 90"
    assert title_from_url("https://shop.test/products/linen-shirt/") == "Linen Shirt"
    assert title_from_url("https://shop.test/") is None


def test_parse_rendered_html_prefers_open_graph() -> None:
    html = """
    <html>
      <head>
        <title>Fallback title</title>
        <meta property="og:title" content="Cozy Wool Coat" />
        <meta property="og:description" content="Warm &amp; light" />
        <meta property="og:image" content="/images/coat.jpg" />
      </head>
      <body><p>Now only $189.00</p></body>
    </html>
    """
    parsed = parse_rendered_html(html, "https://shop.test/coat")
    assert parsed["title"] == "Cozy Wool Coat"
    assert parsed["description"] == "Warm & light"
    assert parsed["image_url"] == "https://shop.test/images/coat.jpg"
    assert parsed["price"] == "$189.00"


def test_chain_never_overwrites_caller_fields() -> None:
    tier_a = StaticStrategy("a", {"title": "Scraped Title", "brand_name": "Scraped", "image_url": "https://img/a.jpg"})
    chain = ExtractionChain([tier_a])
    merged = chain.run("https://shop.test/p/1", {"title": "My Jacket", "url": "https://shop.test/p/1"})
    assert merged["title"] == "My Jacket"
    assert merged["brand_name"] == "Scraped"
    assert merged["image_url"] == "https://img/a.jpg"


def test_chain_stops_once_required_fields_resolved() -> None:
    tier_a = StaticStrategy("a", {"title": "A", "brand_name": "Brand", "image_url": "https://img/a.jpg"})
    tier_b = StaticStrategy("b", {"price": "$10"})
    ExtractionChain([tier_a, tier_b]).run("https://shop.test/p/1", {})
    assert tier_a.calls and not tier_b.calls


def test_chain_skips_failed_tier_results() -> None:
    failed = StaticStrategy("a", {"title": "Ignored"}, succeeded=False)
    tier_b = StaticStrategy("b", {"title": "From B"})
    merged = ExtractionChain([failed, tier_b]).run("https://shop.test/p/1", {})
    assert merged["title"] == "From B"


def test_stored_image_blocks_scraped_image() -> None:
    tier = StaticStrategy("a", {"title": "A", "image_url": "https://img/scraped.jpg"})
    merged = ExtractionChain([tier]).run("https://shop.test/p/1", {"stored_image_path": "u1/1.jpg"})
    assert "image_url" not in merged
    assert merged["title"] == "A"


def test_tier_fallback_when_service_unavailable(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        "tools.product_page_fetcher.requests.get",
        lambda *args, **kwargs: FakeResponse(text=AIR_MAX_HTML),
    )
    chain = default_chain(ExtractionServiceClient(api_key=None))
    agent = _agent(tmp_path, chain)

    result = agent.ingest("user-1", ItemSubmission(url="https://www.nike.com/t/air-max-90"))

    item = result["item"]
    assert result["success"] is True
    assert item["product_name"] == "Air Max 90"
    assert item["brand_name"] == "Nike"
    assert item["price"] is None
    assert item["image_url"] == "https://static.nike.com/air-max-90.jpg"
    assert item["category"] == "shirts"
    assert item["source_url"] == "https://www.nike.com/t/air-max-90"


def test_url_heuristic_when_fetch_fails(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        "tools.product_page_fetcher.requests.get", lambda *args, **kwargs: FakeResponse(status_code=403)
    )
    agent = _agent(tmp_path, default_chain(ExtractionServiceClient(api_key=None)))

    item = agent.ingest("user-1", ItemSubmission(url="https://shop.test/products/linen-shirt"))["item"]

    assert item["product_name"] == "Linen Shirt"
    assert item["brand_name"] == "Unknown Brand"
    assert item["category"] == "shirts"


def test_remote_service_tier_resolves_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    posted: Dict[str, Any] = {}

    def fake_post(url: str, json: Dict[str, Any], headers: Dict[str, str], timeout: float):
        posted["url"] = url
        posted["body"] = json
        posted["headers"] = headers
        return FakeResponse(
            payload={
                "success": True,
                "data": {
                    "markdown": "# Trail Jacket\nNow $129.00, was $180.00",
                    "metadata": {
                        "title": "Trail Jacket | Patagonia",
                        "description": "Packable shell",
                        "ogImage": "https://cdn.patagonia.com/jacket.jpg",
                    },
                },
            }
        )

    def fail_get(*args, **kwargs):
        raise AssertionError("direct fetch should not run")

    monkeypatch.setattr("tools.extraction_service.requests.post", fake_post)
    monkeypatch.setattr("tools.product_page_fetcher.requests.get", fail_get)

    client = ExtractionServiceClient(api_key="secret", service_url="https://scrape.test/v1/scrape")
    chain = ExtractionChain([RemoteServiceStrategy(client), DirectFetchStrategy(), UrlHeuristicStrategy()])
    merged = chain.run("https://www.patagonia.com/product/trail-jacket", {})

    assert posted["url"] == "https://scrape.test/v1/scrape"
    assert posted["headers"]["Authorization"] == "Bearer secret"
    assert merged["title"] == "Trail Jacket | Patagonia"
    assert merged["brand_name"] == "Patagonia"
    assert merged["price"] == "$129.00"
    assert merged["image_url"] == "https://cdn.patagonia.com/jacket.jpg"


def test_remote_service_failure_falls_through(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "tools.extraction_service.requests.post", lambda *args, **kwargs: FakeResponse(status_code=500)
    )
    monkeypatch.setattr(
        "tools.product_page_fetcher.requests.get", lambda *args, **kwargs: FakeResponse(text=AIR_MAX_HTML)
    )
    chain = default_chain(ExtractionServiceClient(api_key="secret"))
    merged = chain.run("https://www.nike.com/t/air-max-90", {})
    assert merged["title"] == "Air Max 90"
    assert merged["brand_name"] == "Nike"


def test_caller_fields_survive_full_ingestion(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        "tools.product_page_fetcher.requests.get", lambda *args, **kwargs: FakeResponse(text=AIR_MAX_HTML)
    )
    agent = _agent(tmp_path, default_chain(ExtractionServiceClient(api_key=None)))

    item = agent.ingest(
        "user-1",
        ItemSubmission(url="https://www.nike.com/t/air-max-90", title="My Jacket", category="jackets"),
    )["item"]

    assert item["product_name"] == "My Jacket"
    assert item["category"] == "jackets"
    assert item["brand_name"] == "Nike"


def test_uploaded_image_is_stored_and_wins(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(
        "tools.product_page_fetcher.requests.get", lambda *args, **kwargs: FakeResponse(text=AIR_MAX_HTML)
    )
    agent = _agent(tmp_path, default_chain(ExtractionServiceClient(api_key=None)))
    payload = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()

    item = agent.ingest(
        "user-1", ItemSubmission(url="https://www.nike.com/t/air-max-90", uploaded_image=payload)
    )["item"]

    assert item["stored_image_path"].startswith("user-1/")
    assert item["stored_image_path"].endswith(".png")
    assert item["image_url"] is None
    assert (tmp_path / "blobs" / item["stored_image_path"]).read_bytes() == b"\x89PNG fake"


def test_manual_entry_without_url(tmp_path: Path) -> None:
    agent = _agent(tmp_path, ExtractionChain([]))
    item = agent.ingest("user-1", ItemSubmission(title="Grey Hoodie", brand_name="Gap"))["item"]
    assert item["category"] == "hoodies"
    assert item["brand_name"] == "Gap"
    assert agent.store.list_catalog_items("user-1")[0].product_name == "Grey Hoodie"


def test_uploads_in_the_same_millisecond_get_distinct_keys(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(blob_store_module, "time", SimpleNamespace(time=lambda: 1_717_243_200.0))
    store = LocalBlobStore(tmp_path / "blobs")
    first_payload = base64.b64encode(b"first").decode()
    second_payload = base64.b64encode(b"second").decode()

    first = store.store_image("user-1", first_payload)
    second = store.store_image("user-1", second_payload)

    assert first.path != second.path
    assert first.path.startswith("user-1/1717243200000-")
    assert (tmp_path / "blobs" / first.path).read_bytes() == b"first"
    assert (tmp_path / "blobs" / second.path).read_bytes() == b"second"
