"""
Enrichment Pass

Listing cards rarely carry a description or sizes. For listing products
with a product URL and a missing or short description (or no sizes), the
detail page is visited and the dispatcher re-run in single-product mode.

The merge is non-destructive: a detail value is used only where the
listing value is empty. Name, price and external id always come from the
listing. Failures leave the product unchanged and never stop the pass.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, List, Optional

from ..common.cancellation import CancellationToken
from ..common.config_loader import PipelineSettings
from ..errors import EnrichmentFailure, NavigationTimeout, StorefrontSyncError
from ..models import ExtractedProduct, SiteProfile

if TYPE_CHECKING:
    from ..browser.session import BrowserSession
    from .dispatcher import ExtractionDispatcher

logger = logging.getLogger(__name__)

MERGEABLE_FIELDS = (
    'description',
    'image_url',
    'image_urls',
    'product_url',
    'sku',
    'brand',
    'category',
    'colors',
    'sizes',
    'stock',
    'weight',
    'dimensions',
    'attributes',
)


def _is_empty(value) -> bool:
    return value is None or value == "" or value == [] or value == {}


def merge_products(listing: ExtractedProduct, detail: ExtractedProduct) -> ExtractedProduct:
    """
    Fill the listing product's empty fields from the detail product.

    Returns a new product; neither input is modified. Variants are
    re-derived from the merged colors and sizes.
    """
    updates = {
        'image_urls': list(listing.image_urls),
        'colors': list(listing.colors),
        'sizes': list(listing.sizes),
        'attributes': dict(listing.attributes),
    }
    for name in MERGEABLE_FIELDS:
        if _is_empty(getattr(listing, name)) and not _is_empty(getattr(detail, name)):
            value = getattr(detail, name)
            if isinstance(value, list):
                value = list(value)
            elif isinstance(value, dict):
                value = dict(value)
            updates[name] = value

    merged = dataclasses.replace(listing, **updates)
    merged.rebuild_variants()
    return merged


class EnrichmentPass:
    """
    Visits detail pages for incomplete listing products.

    Usage:
        enrichment = EnrichmentPass(dispatcher, settings)
        products = enrichment.run(session, products, profile, vendor_id="v1")
    """

    def __init__(self, dispatcher: ExtractionDispatcher, settings: PipelineSettings):
        self.dispatcher = dispatcher
        self.settings = settings

    def needs_enrichment(self, product: ExtractedProduct) -> bool:
        if not product.product_url:
            return False
        short_description = len(product.description or "") < self.settings.short_description_length
        return short_description or not product.sizes

    def run(
        self,
        session: BrowserSession,
        products: List[ExtractedProduct],
        profile: SiteProfile,
        vendor_id: str = "",
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[ExtractedProduct]:
        """
        Enrich up to `enrichment_limit` products.

        Args:
            session: Open browser session (navigated away from the listing)
            products: Deduplicated listing products
            profile: Site classification
            vendor_id: Vendor id for log lines
            cancel_token: Checked before each detail page

        Returns:
            New list with enriched products in place of the originals
        """
        result = list(products)
        candidates = [i for i, p in enumerate(result) if self.needs_enrichment(p)]
        candidates = candidates[: self.settings.enrichment_limit]

        if not candidates:
            return result

        logger.info("Enriching %d product(s) vendor=%s", len(candidates), vendor_id)
        enriched = 0

        for index in candidates:
            if cancel_token is not None and cancel_token.is_cancelled:
                logger.info("Enrichment cancelled vendor=%s", vendor_id)
                break

            product = result[index]
            try:
                detail = self.fetch_detail(session, product.product_url, profile)
                result[index] = merge_products(product, detail)
                enriched += 1
                logger.debug("Enriched vendor=%s external_id=%s from %s",
                             vendor_id, product.external_id, product.product_url)
            except (StorefrontSyncError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Enrichment failed vendor=%s external_id=%s: %s: %s",
                               vendor_id, product.external_id, type(e).__name__, e)

        logger.info("Enriched %d/%d product(s) vendor=%s", enriched, len(candidates), vendor_id)
        return result

    def fetch_detail(self, session: BrowserSession, url: str, profile: SiteProfile) -> ExtractedProduct:
        """
        Load a detail page and extract its product.

        Raises:
            NavigationTimeout: If the page does not load in time
            EnrichmentFailure: If no product can be extracted from the page
        """
        session.navigate(url, timeout_ms=self.settings.enrichment_navigation_timeout_ms)
        try:
            session.wait_for_network_idle(self.settings.enrichment_network_idle_timeout_ms)
        except NavigationTimeout as e:
            logger.debug("Continuing without network idle on %s: %s", url, e)

        result = self.dispatcher.dispatch(session.snapshot(), profile, single_product=True)
        if not result.products:
            raise EnrichmentFailure(f"No product found on {url}")
        return result.products[0]
