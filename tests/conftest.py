"""Shared test fixtures."""

from decimal import Decimal
from pathlib import Path

import pytest

from storefront_sync.browser.page import PageSnapshot
from storefront_sync.browser.session import BrowserSession
from storefront_sync.common.config_loader import PipelineSettings, load_pipeline_settings, load_selectors
from storefront_sync.errors import NavigationTimeout, SelectorWaitTimeout, SessionError, StoreWriteError
from storefront_sync.models import ExtractedProduct, Vendor
from storefront_sync.sync.store import InMemoryCatalogStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"

SHOPIFY_PRODUCT_URL = "https://boutique-lina.example.com/products/robe-lin"
SHOPIFY_COLLECTION_URL = "https://boutique-lina.example.com/collections/robes"
WOO_LISTING_URL = "https://atelier-nord.example.com/boutique/"
WOO_PRODUCT_URL = "https://atelier-nord.example.com/produit/chemise-lin/"
GENERIC_LISTING_URL = "https://maison-claire.example.com/collection/luminaires"
GENERIC_PRODUCT_URL = "https://maison-claire.example.com/produit/lampe-opaline"


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class FakeSession(BrowserSession):
    """
    Browser session serving fixture HTML per URL.

    Unknown URLs time out, like a page that never loads.
    """

    def __init__(self, pages, settings=None):
        super().__init__(settings or PipelineSettings())
        self.pages = dict(pages)
        self.visited = []
        self.closed = False
        self._url = ""
        self._html = ""

    def navigate(self, url, wait_until="domcontentloaded", timeout_ms=None):
        self.visited.append(url)
        if url not in self.pages:
            raise NavigationTimeout(f"Timed out loading {url}")
        self._url = url
        self._html = self.pages[url]

    def wait_for_network_idle(self, timeout_ms=None):
        return None

    def wait_for(self, selector, timeout_ms=None):
        if self.snapshot().soup.select_one(selector) is None:
            raise SelectorWaitTimeout(f"Selector {selector!r} not found")

    def evaluate(self, script, arg=None):
        raise SessionError("No JavaScript in fake session")

    def content(self):
        return self._html

    @property
    def current_url(self):
        return self._url

    def snapshot(self):
        return PageSnapshot.from_html(self._url, self._html)

    def close(self):
        self.closed = True


class FailingStore(InMemoryCatalogStore):
    """In-memory store that rejects writes for chosen external ids."""

    def __init__(self, vendors=None, fail_external_ids=()):
        super().__init__(vendors)
        self.fail_external_ids = set(fail_external_ids)
        self.last_synced_calls = 0

    def create(self, vendor_id, external_id, fields):
        if external_id in self.fail_external_ids:
            raise StoreWriteError(f"Disk full while writing {external_id}")
        return super().create(vendor_id, external_id, fields)

    def update(self, record_id, fields):
        with self._lock:
            record = self._records.get(record_id)
        if record is not None and record.external_id in self.fail_external_ids:
            raise StoreWriteError(f"Disk full while writing {record.external_id}")
        return super().update(record_id, fields)

    def set_vendor_last_synced(self, vendor_id, when):
        self.last_synced_calls += 1
        super().set_vendor_last_synced(vendor_id, when)


@pytest.fixture
def fixtures_dir():
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def load_html():
    """Return a loader for HTML fixtures by file name."""
    return read_fixture


@pytest.fixture
def settings():
    """Settings from the repo's config/pipeline.yaml."""
    return load_pipeline_settings()


@pytest.fixture
def selectors():
    """Selector candidates from the repo's config/selectors.yaml."""
    return load_selectors()


@pytest.fixture
def make_snapshot():
    """Build a PageSnapshot from a fixture file (or raw HTML) and a URL."""
    def _make(url, fixture=None, html=None):
        if fixture is not None:
            html = read_fixture(fixture)
        return PageSnapshot.from_html(url, html or "")
    return _make


@pytest.fixture
def urls():
    """URLs the fixture pages are served under."""
    return {
        "shopify_product": SHOPIFY_PRODUCT_URL,
        "shopify_collection": SHOPIFY_COLLECTION_URL,
        "woo_listing": WOO_LISTING_URL,
        "woo_product": WOO_PRODUCT_URL,
        "generic_listing": GENERIC_LISTING_URL,
        "generic_product": GENERIC_PRODUCT_URL,
    }


@pytest.fixture
def site_pages():
    """Every fixture page keyed by the URL it is served under."""
    return {
        SHOPIFY_PRODUCT_URL: read_fixture("shopify_product.html"),
        SHOPIFY_COLLECTION_URL: read_fixture("shopify_collection.html"),
        WOO_LISTING_URL: read_fixture("woocommerce_listing.html"),
        WOO_PRODUCT_URL: read_fixture("woocommerce_product.html"),
        GENERIC_LISTING_URL: read_fixture("generic_listing.html"),
        GENERIC_PRODUCT_URL: read_fixture("generic_product.html"),
    }


@pytest.fixture
def fake_session(site_pages, settings):
    """A FakeSession serving all fixture pages."""
    return FakeSession(site_pages, settings)


@pytest.fixture
def make_session(settings):
    """Factory for FakeSessions serving a custom set of pages."""
    def _make(pages):
        return FakeSession(pages, settings)
    return _make


@pytest.fixture
def vendor():
    return Vendor(
        id="vendor-1",
        website_url=SHOPIFY_COLLECTION_URL,
        store_name="Boutique Lina",
    )


@pytest.fixture
def store(vendor):
    return InMemoryCatalogStore([vendor])


@pytest.fixture
def make_failing_store(vendor):
    """Factory for stores that reject writes for the given external ids."""
    def _make(fail_external_ids=()):
        return FailingStore([vendor], fail_external_ids)
    return _make


@pytest.fixture
def minimal_product():
    """A product with only the required fields."""
    return ExtractedProduct(
        external_id="p-1",
        name="Robe Lin",
        price=Decimal("49.90"),
    )


@pytest.fixture
def full_product():
    """A fully populated product."""
    return ExtractedProduct(
        external_id="p-2",
        name="Chemise Lin",
        price=Decimal("45.00"),
        description="Chemise en lin lavé, col officier, boutons en nacre.",
        brand="Atelier Nord",
        category="Chemises",
        sku="CL-01",
        product_url="https://atelier-nord.example.com/produit/chemise-lin/",
        image_url="https://atelier-nord.example.com/img/chemise-lin.jpg",
        image_urls=["https://atelier-nord.example.com/img/chemise-lin.jpg"],
        colors=["Blanc", "Bleu ciel"],
        sizes=["S", "M", "L"],
        stock=12,
    )
